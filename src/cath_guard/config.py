"""Configuration management service with Pydantic Settings.

This module provides centralized configuration management for the
CATH Guard application, loading and validating environment variables
at startup.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    """Database connection settings.

    Storage is kept in memory when no URL is configured.
    """

    model_config = SettingsConfigDict(env_prefix="")

    url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="SQLAlchemy async connection string",
    )
    echo: bool = Field(
        default=False,
        alias="DATABASE_ECHO",
        description="Log emitted SQL statements",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate database URL format."""
        if v is None:
            return v
        if not v.startswith(("postgresql+asyncpg://", "sqlite+aiosqlite://")):
            raise ValueError(
                "DATABASE_URL must use postgresql+asyncpg:// or sqlite+aiosqlite://"
            )
        return v

    @property
    def enabled(self) -> bool:
        """Check if SQL storage is configured."""
        return self.url is not None


class RedisSettings(BaseSettings):
    """Redis connection settings for the event stream."""

    model_config = SettingsConfigDict(env_prefix="")

    url: str | None = Field(
        default=None,
        alias="REDIS_URL",
        description="Redis connection string",
    )
    stream_name: str = Field(
        default="cath_guard_events",
        alias="REDIS_STREAM_NAME",
        description="Redis Stream receiving broadcast events",
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate Redis URL format."""
        if v is None:
            return v
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("REDIS_URL must start with redis:// or rediss://")
        return v

    @property
    def enabled(self) -> bool:
        """Check if the Redis event stream is enabled."""
        return self.url is not None


class Deep3Settings(BaseSettings):
    """Deep3 risk analysis settings.

    The mock analyzer is used when no API URL is configured.
    """

    model_config = SettingsConfigDict(env_prefix="DEEP3_")

    api_url: str | None = Field(
        default=None,
        alias="DEEP3_API_URL",
        description="Deep3 API base URL",
    )
    api_key: SecretStr | None = Field(
        default=None,
        alias="DEEP3_API_KEY",
        description="Optional Deep3 API key",
    )
    timeout_seconds: float = Field(
        default=10.0,
        alias="DEEP3_TIMEOUT_SECONDS",
        description="HTTP timeout for Deep3 requests",
        gt=0,
    )
    mock_latency_seconds: float = Field(
        default=0.8,
        alias="DEEP3_MOCK_LATENCY_SECONDS",
        description="Minimum simulated latency of the mock analyzer",
        ge=0,
    )

    @field_validator("api_url")
    @classmethod
    def validate_url(cls, v: str | None) -> str | None:
        """Validate API URL format."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            raise ValueError("DEEP3_API_URL must be an HTTP(S) endpoint")
        return v

    @property
    def use_mock(self) -> bool:
        """Check if the mock analyzer should be used."""
        return self.api_url is None


class PricingSettings(BaseSettings):
    """Price supplier settings."""

    model_config = SettingsConfigDict(env_prefix="PRICING_")

    source: Literal["static", "jupiter"] = Field(
        default="static",
        alias="PRICING_SOURCE",
        description="Price source",
    )
    cache_ttl_seconds: float = Field(
        default=60.0,
        alias="PRICING_CACHE_TTL_SECONDS",
        description="Seconds a fetched price stays fresh",
        gt=0,
    )
    jupiter_url: str = Field(
        default="https://api.jup.ag/price/v2",
        alias="PRICING_JUPITER_URL",
        description="Jupiter price API endpoint",
    )
    cath_mint: str | None = Field(
        default=None,
        alias="PRICING_CATH_MINT",
        description="CATH token mint address for Jupiter quotes",
    )


class TierSettings(BaseSettings):
    """Tier resolution thresholds."""

    model_config = SettingsConfigDict(env_prefix="TIER_")

    pro_threshold: Decimal = Field(
        default=Decimal("50"),
        alias="TIER_PRO_THRESHOLD",
        description="CATH balance granting Pro",
        ge=0,
    )
    pro_plus_threshold: Decimal = Field(
        default=Decimal("100"),
        alias="TIER_PRO_PLUS_THRESHOLD",
        description="CATH balance granting Pro+",
        ge=0,
    )
    base_fee_waiver_sol: Decimal = Field(
        default=Decimal("0.1"),
        alias="TIER_BASE_FEE_WAIVER_SOL",
        description="CATH holdings value in SOL that waives the base fee",
        ge=0,
    )


class BillingSettings(BaseSettings):
    """Bot and transaction fee settings."""

    model_config = SettingsConfigDict(env_prefix="BILLING_")

    monthly_fee_sol: Decimal = Field(
        default=Decimal("0.0009"),
        alias="BILLING_MONTHLY_FEE_SOL",
        description="Monthly fee per additional bot in SOL",
        ge=0,
    )
    transaction_fee_percent: Decimal = Field(
        default=Decimal("0.005"),
        alias="BILLING_TRANSACTION_FEE_PERCENT",
        description="Taker fee as a fraction of the trade amount",
        ge=0,
        le=1,
    )
    included_bots: int = Field(
        default=2,
        alias="BILLING_INCLUDED_BOTS",
        description="Bots per wallet exempt from the monthly fee",
        ge=0,
    )
    max_bots_per_wallet: int = Field(
        default=5,
        alias="BILLING_MAX_BOTS_PER_WALLET",
        description="Maximum bots a wallet may own",
        ge=1,
    )
    inactive_delete_days: int = Field(
        default=30,
        alias="BILLING_INACTIVE_DELETE_DAYS",
        description="Days of inactivity before a non-included bot is deleted",
        ge=1,
    )


class LifecycleSettings(BaseSettings):
    """Bot lifecycle scheduler settings."""

    model_config = SettingsConfigDict(env_prefix="LIFECYCLE_")

    interval_seconds: float = Field(
        default=3600.0,
        alias="LIFECYCLE_INTERVAL_SECONDS",
        description="Seconds between lifecycle sweeps",
        gt=0,
    )


class Settings(BaseSettings):
    """Main application settings.

    Loads configuration from environment variables with support for
    .env files via python-dotenv.

    Example:
        ```python
        from cath_guard.config import get_settings

        settings = get_settings()
        print(settings.billing.monthly_fee_sol)
        print(settings.log_level)
        ```
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Nested configuration groups
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    deep3: Deep3Settings = Field(default_factory=Deep3Settings)
    pricing: PricingSettings = Field(default_factory=PricingSettings)
    tiers: TierSettings = Field(default_factory=TierSettings)
    billing: BillingSettings = Field(default_factory=BillingSettings)
    lifecycle: LifecycleSettings = Field(default_factory=LifecycleSettings)

    # Application settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        alias="LOG_LEVEL",
        description="Logging level",
    )
    http_host: str = Field(
        default="0.0.0.0",
        alias="HTTP_HOST",
        description="Interface the HTTP API binds to",
    )
    http_port: int = Field(
        default=8080,
        alias="HTTP_PORT",
        description="HTTP port for the API, WebSocket and metrics endpoints",
        ge=1,
        le=65535,
    )

    def get_logging_level(self) -> int:
        """Get the numeric logging level."""
        level: int = getattr(logging, self.log_level)
        return level

    def redacted_summary(self) -> dict[str, str | dict[str, str]]:
        """Get a summary of settings with secrets redacted.

        Returns:
            Dictionary of settings with sensitive values masked.
        """
        return {
            "database_url": (
                self._redact_url(self.database.url) if self.database.url else "(memory)"
            ),
            "redis_url": self._redact_url(self.redis.url) if self.redis.url else "(not set)",
            "deep3": {
                "api_url": self.deep3.api_url or "(mock)",
                "api_key": "(set)" if self.deep3.api_key else "(not set)",
            },
            "pricing": {
                "source": self.pricing.source,
                "cache_ttl_seconds": str(self.pricing.cache_ttl_seconds),
            },
            "tiers": {
                "pro_threshold": str(self.tiers.pro_threshold),
                "pro_plus_threshold": str(self.tiers.pro_plus_threshold),
                "base_fee_waiver_sol": str(self.tiers.base_fee_waiver_sol),
            },
            "billing": {
                "monthly_fee_sol": str(self.billing.monthly_fee_sol),
                "transaction_fee_percent": str(self.billing.transaction_fee_percent),
                "included_bots": str(self.billing.included_bots),
                "max_bots_per_wallet": str(self.billing.max_bots_per_wallet),
                "inactive_delete_days": str(self.billing.inactive_delete_days),
            },
            "lifecycle_interval_seconds": str(self.lifecycle.interval_seconds),
            "log_level": self.log_level,
            "http": f"{self.http_host}:{self.http_port}",
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact password from URL if present."""
        if "@" in url and "://" in url:
            protocol_end = url.index("://") + 3
            at_pos = url.index("@")
            creds_part = url[protocol_end:at_pos]
            if ":" in creds_part:
                username = creds_part.split(":")[0]
                return f"{url[:protocol_end]}{username}:***@{url[at_pos + 1 :]}"
        return url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        The Settings instance.

    Raises:
        ValidationError: If environment variables have invalid values.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache.

    Useful for testing when you need to reload settings with
    different environment variables.
    """
    get_settings.cache_clear()
