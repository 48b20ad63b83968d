"""SQLAlchemy models for persistent storage.

This module defines the database schema for wallets and the transactions,
arbitrage bots and NFT passes they own. Enum values are stored as their
string values.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


class WalletModel(Base):
    """SQLAlchemy model for connected wallets."""

    __tablename__ = "wallets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    address: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    tier: Mapped[str] = mapped_column(String(16), nullable=False, default="basic")
    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)
    solana_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    token_balance: Mapped[Decimal] = mapped_column(Numeric(30, 9), nullable=False)
    token_value_in_sol: Mapped[Decimal] = mapped_column(Numeric(30, 9), nullable=False)
    paid_tier: Mapped[str] = mapped_column(String(16), nullable=False, default="none")
    paid_tier_status: Mapped[str] = mapped_column(String(16), nullable=False, default="none")
    paid_tier_next_due: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    base_fee_status: Mapped[str] = mapped_column(String(16), nullable=False, default="none")
    base_fee_waived_reason: Mapped[str | None] = mapped_column(String(64), nullable=True)
    base_fee_next_due: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    has_app_purchase: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payment_currency: Mapped[str] = mapped_column(String(8), nullable=False, default="sol")
    connected_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("idx_wallets_address", "address"),)


class TransactionModel(Base):
    """SQLAlchemy model for classified token transactions."""

    __tablename__ = "transactions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    wallet_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False
    )
    signature: Mapped[str] = mapped_column(String(128), nullable=False)
    token_address: Mapped[str] = mapped_column(String(64), nullable=False)
    token_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    token_symbol: Mapped[str | None] = mapped_column(String(32), nullable=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(30, 9), nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    local_classification: Mapped[str] = mapped_column(String(8), nullable=False)
    local_threat_level: Mapped[str] = mapped_column(String(16), nullable=False)
    local_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    deep3_classification: Mapped[str | None] = mapped_column(String(16), nullable=True)
    deep3_risk_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    deep3_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    deep3_metadata: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    final_classification: Mapped[str] = mapped_column(String(8), nullable=False)
    final_threat_level: Mapped[str] = mapped_column(String(16), nullable=False)
    blocked: Mapped[bool] = mapped_column(Boolean, nullable=False)

    __table_args__ = (
        Index("idx_transactions_wallet", "wallet_id"),
        Index("idx_transactions_timestamp", "timestamp"),
    )


class ArbitrageBotModel(Base):
    """SQLAlchemy model for arbitrage bots."""

    __tablename__ = "arbitrage_bots"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    wallet_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False
    )
    bot_name: Mapped[str] = mapped_column(String(100), nullable=False)
    wallet_address: Mapped[str] = mapped_column(String(64), nullable=False)
    strategy: Mapped[str] = mapped_column(String(32), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    min_profit_threshold: Mapped[Decimal] = mapped_column(Numeric(20, 9), nullable=False)
    max_risk_score: Mapped[int] = mapped_column(Integer, nullable=False)
    max_trade_size: Mapped[Decimal] = mapped_column(Numeric(30, 9), nullable=False)
    slippage_tolerance: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    target_pairs: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    dex_allowlist: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    auto_pause_config: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    payment_status: Mapped[str] = mapped_column(String(16), nullable=False, default="current")
    is_included_bot: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    inactive_since: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    next_payment_due: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("idx_arbitrage_bots_wallet", "wallet_id"),)


class NftPassModel(Base):
    """SQLAlchemy model for NFT entitlement passes."""

    __tablename__ = "nft_passes"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    wallet_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("wallets.id", ondelete="CASCADE"), nullable=False
    )
    pass_name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    mint_address: Mapped[str | None] = mapped_column(String(64), nullable=True)
    benefit_type: Mapped[str] = mapped_column(String(16), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    tier_upgrade: Mapped[str | None] = mapped_column(String(16), nullable=True)
    free_bot_slots: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=lambda: datetime.now(UTC)
    )

    __table_args__ = (Index("idx_nft_passes_wallet", "wallet_id"),)
