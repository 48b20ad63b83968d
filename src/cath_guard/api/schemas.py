"""Request body schemas for the HTTP API.

Bodies use camelCase keys; snake_case keys are accepted as well.
"""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated, Any, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from cath_guard.models import (
    BenefitType,
    BotPatch,
    BotStrategy,
    NftPass,
    PaidTier,
    PassPatch,
    PaymentCurrency,
    PaymentStatus,
    SubscriptionStatus,
    UserTier,
    Wallet,
    WalletPatch,
)
from cath_guard.services.bots import BotConfig
from cath_guard.services.transactions import IncomingTransfer

DexName = Literal["raydium", "orca", "jupiter", "phoenix"]


def _as_utc(value: datetime) -> datetime:
    """Treat timestamps without an offset as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


UtcDatetime = Annotated[datetime, AfterValidator(_as_utc)]


class RequestModel(BaseModel):
    """Base for request bodies."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def set_fields(self) -> dict[str, Any]:
        """Return the fields explicitly present in the request."""
        return {name: getattr(self, name) for name in self.model_fields_set}


# ----------------------------------------------------------------------
# Wallets
# ----------------------------------------------------------------------


class ConnectWalletRequest(RequestModel):
    address: str = Field(min_length=1, max_length=64)
    nickname: str | None = Field(default=None, max_length=100)
    solana_name: str | None = Field(default=None, max_length=100)
    token_balance: Decimal = Field(default=Decimal("0"), ge=0)
    paid_tier: PaidTier = PaidTier.NONE
    paid_tier_status: SubscriptionStatus = SubscriptionStatus.NONE
    has_app_purchase: bool = False
    payment_currency: PaymentCurrency = PaymentCurrency.SOL

    def to_wallet(self) -> Wallet:
        return Wallet(
            address=self.address,
            nickname=self.nickname,
            solana_name=self.solana_name,
            token_balance=self.token_balance,
            paid_tier=self.paid_tier,
            paid_tier_status=self.paid_tier_status,
            has_app_purchase=self.has_app_purchase,
            payment_currency=self.payment_currency,
        )


class UpdateWalletRequest(RequestModel):
    """Wallet fields a client may change. The tier is never set directly."""

    nickname: str | None = Field(default=None, max_length=100)
    solana_name: str | None = Field(default=None, max_length=100)
    token_balance: Decimal = Field(default=Decimal("0"), ge=0)
    paid_tier: PaidTier = PaidTier.NONE
    paid_tier_status: SubscriptionStatus = SubscriptionStatus.NONE
    paid_tier_next_due: UtcDatetime | None = None
    has_app_purchase: bool = False
    payment_currency: PaymentCurrency = PaymentCurrency.SOL

    def to_patch(self) -> WalletPatch:
        return WalletPatch(**self.set_fields())


# ----------------------------------------------------------------------
# Transactions
# ----------------------------------------------------------------------


class SimulateTransactionRequest(RequestModel):
    wallet_address: str = Field(min_length=1)
    token_address: str
    token_name: str | None = None
    token_symbol: str | None = None
    amount: Decimal = Field(default=Decimal("0"), ge=0)

    def to_transfer(self) -> IncomingTransfer:
        return IncomingTransfer(
            wallet_address=self.wallet_address,
            token_address=self.token_address,
            token_name=self.token_name,
            token_symbol=self.token_symbol,
            amount=self.amount,
        )


# ----------------------------------------------------------------------
# Arbitrage bots
# ----------------------------------------------------------------------


class AutoPauseSchema(RequestModel):
    enabled: bool = True
    volatility_threshold: float = Field(default=20, ge=0, le=100)
    max_daily_loss: float = Field(default=5, ge=0, le=100)
    max_consecutive_losses: int = Field(default=5, ge=1, le=20)


class BotTemplateSchema(RequestModel):
    """Shareable bot configuration template."""

    name: str = Field(min_length=1, max_length=100)
    strategy: BotStrategy
    min_profit_threshold: Decimal = Field(default=Decimal("0.01"), ge=Decimal("0.001"), le=1)
    max_risk_score: int = Field(default=50, ge=0, le=100)
    max_trade_size: Decimal = Field(default=Decimal("10"), gt=0, le=1000)
    slippage_tolerance: Decimal = Field(default=Decimal("0.5"), ge=0, le=10)
    target_pairs: list[str] = Field(default_factory=lambda: ["SOL/USDC", "SOL/USDT"], min_length=1)
    dex_allowlist: list[DexName] = Field(
        default_factory=lambda: ["raydium", "orca"], min_length=1
    )
    auto_pause: AutoPauseSchema | None = None

    def to_config(self) -> BotConfig:
        return BotConfig(
            bot_name=self.name,
            strategy=self.strategy,
            min_profit_threshold=self.min_profit_threshold,
            max_risk_score=self.max_risk_score,
            max_trade_size=self.max_trade_size,
            slippage_tolerance=self.slippage_tolerance,
            target_pairs=tuple(self.target_pairs),
            dex_allowlist=tuple(self.dex_allowlist),
            auto_pause_config=self.auto_pause.model_dump() if self.auto_pause else None,
        )


class ImportBotRequest(RequestModel):
    wallet_id: str
    template: BotTemplateSchema


class CreateBotRequest(RequestModel):
    wallet_id: str
    bot_name: str = Field(min_length=1, max_length=100)
    strategy: BotStrategy = BotStrategy.DEX_ARBITRAGE
    wallet_address: str | None = None
    min_profit_threshold: Decimal = Field(default=Decimal("0.01"), ge=0)
    max_risk_score: int = Field(default=50, ge=0, le=100)
    max_trade_size: Decimal = Field(default=Decimal("10"), gt=0)
    slippage_tolerance: Decimal = Field(default=Decimal("0.5"), ge=0)
    target_pairs: list[str] = Field(default_factory=lambda: ["SOL/USDC", "SOL/USDT"])
    dex_allowlist: list[str] = Field(default_factory=lambda: ["raydium", "orca", "jupiter"])
    auto_pause_config: dict[str, Any] | None = None

    def to_config(self) -> BotConfig:
        return BotConfig(
            bot_name=self.bot_name,
            strategy=self.strategy,
            wallet_address=self.wallet_address,
            min_profit_threshold=self.min_profit_threshold,
            max_risk_score=self.max_risk_score,
            max_trade_size=self.max_trade_size,
            slippage_tolerance=self.slippage_tolerance,
            target_pairs=tuple(self.target_pairs),
            dex_allowlist=tuple(self.dex_allowlist),
            auto_pause_config=self.auto_pause_config,
        )


class UpdateBotRequest(RequestModel):
    bot_name: str = Field(default="", min_length=1, max_length=100)
    active: bool = False
    strategy: BotStrategy = BotStrategy.DEX_ARBITRAGE
    min_profit_threshold: Decimal = Field(default=Decimal("0.01"), ge=0)
    max_risk_score: int = Field(default=50, ge=0, le=100)
    max_trade_size: Decimal = Field(default=Decimal("10"), gt=0)
    slippage_tolerance: Decimal = Field(default=Decimal("0.5"), ge=0)
    target_pairs: list[str] = Field(default_factory=list)
    dex_allowlist: list[str] = Field(default_factory=list)
    auto_pause_config: dict[str, Any] | None = None
    payment_status: PaymentStatus = PaymentStatus.CURRENT

    def to_patch(self) -> BotPatch:
        changes = self.set_fields()
        for key in ("target_pairs", "dex_allowlist"):
            if key in changes:
                changes[key] = tuple(changes[key])
        return BotPatch(**changes)


# ----------------------------------------------------------------------
# NFT passes
# ----------------------------------------------------------------------


class CreatePassRequest(RequestModel):
    wallet_id: str
    benefit_type: BenefitType
    pass_name: str = Field(default="", max_length=100)
    mint_address: str | None = None
    is_active: bool = True
    expires_at: UtcDatetime | None = None
    tier_upgrade: UserTier | None = None
    free_bot_slots: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_benefit(self) -> CreatePassRequest:
        if self.benefit_type == BenefitType.TIER_UPGRADE and self.tier_upgrade is None:
            raise ValueError("tierUpgrade is required for tier_upgrade passes")
        if self.benefit_type == BenefitType.FREE_BOT_SLOT and self.free_bot_slots < 1:
            raise ValueError("freeBotSlots must be at least 1 for free_bot_slot passes")
        return self

    def to_pass(self) -> NftPass:
        return NftPass(
            wallet_id=self.wallet_id,
            benefit_type=self.benefit_type,
            pass_name=self.pass_name,
            mint_address=self.mint_address,
            is_active=self.is_active,
            expires_at=self.expires_at,
            tier_upgrade=self.tier_upgrade,
            free_bot_slots=self.free_bot_slots,
        )


class UpdatePassRequest(RequestModel):
    is_active: bool = True
    expires_at: UtcDatetime | None = None
    tier_upgrade: UserTier | None = None
    free_bot_slots: int = Field(default=0, ge=0)

    def to_patch(self) -> PassPatch:
        return PassPatch(**self.set_fields())
