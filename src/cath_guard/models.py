"""Shared domain models: enums, entities and typed partial updates.

Entities are frozen dataclasses. Repositories never mutate them in place;
updates are expressed as patch objects whose unset fields are left alone and
whose set fields (including an explicit ``None``) overwrite the stored value.
"""

from __future__ import annotations

import dataclasses
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, TypeVar


class UserTier(str, Enum):
    """Subscription level gating feature access."""

    BASIC = "basic"
    PRO = "pro"
    PRO_PLUS = "pro_plus"


class ThreatLevel(str, Enum):
    """Threat severity shown to the user."""

    SAFE = "safe"
    SUSPICIOUS = "suspicious"
    DANGER = "danger"
    BLOCKED = "blocked"

    @property
    def severity(self) -> int:
        """Rank used to check that merges never lower severity."""
        return _THREAT_SEVERITY[self]


class TokenClassification(str, Enum):
    """Action taken for an incoming token."""

    ALLOW = "allow"
    WARN = "warn"
    BLOCK = "block"

    @property
    def severity(self) -> int:
        """Rank used to check that merges never lower severity."""
        return _CLASSIFICATION_SEVERITY[self]


_THREAT_SEVERITY = {
    ThreatLevel.SAFE: 0,
    ThreatLevel.SUSPICIOUS: 1,
    ThreatLevel.DANGER: 2,
    ThreatLevel.BLOCKED: 3,
}

_CLASSIFICATION_SEVERITY = {
    TokenClassification.ALLOW: 0,
    TokenClassification.WARN: 1,
    TokenClassification.BLOCK: 2,
}


class PaidTier(str, Enum):
    """Tier bought through a paid subscription."""

    NONE = "none"
    PRO = "pro"
    PRO_PLUS = "pro_plus"


class SubscriptionStatus(str, Enum):
    """State of a wallet's paid subscription."""

    NONE = "none"
    CURRENT = "current"
    FAILED = "failed"
    CANCELED = "canceled"


class BaseFeeStatus(str, Enum):
    """State of the wallet's base monthly fee."""

    NONE = "none"
    CURRENT = "current"
    FAILED = "failed"
    WAIVED = "waived"


class PaymentStatus(str, Enum):
    """Monthly payment state of an arbitrage bot."""

    CURRENT = "current"
    FAILED = "failed"
    WAIVED = "waived"


class BenefitType(str, Enum):
    """Benefit granted by an NFT pass."""

    FEE_WAIVER = "fee_waiver"
    TIER_UPGRADE = "tier_upgrade"
    FREE_BOT_SLOT = "free_bot_slot"


class BotStrategy(str, Enum):
    """Trading strategy run by an arbitrage bot."""

    DEX_ARBITRAGE = "dex_arbitrage"
    LIQUIDITY_PROVISION = "liquidity_provision"
    MARKET_MAKING = "market_making"


class PaymentCurrency(str, Enum):
    """Currency a wallet prefers to pay fees in."""

    SOL = "sol"
    CATH = "cath"
    USDC = "usdc"


def _new_id() -> str:
    return str(uuid.uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


@dataclass(frozen=True)
class Wallet:
    """A connected wallet, the root aggregate for transactions, bots and passes.

    Attributes:
        address: Solana wallet address.
        tier: Cached projection of the last tier resolution. Never used as
            the source of truth at decision time.
        token_balance: Cached CATH balance.
        token_value_in_sol: Cached CATH holdings value in SOL.
        paid_tier: Tier bought through subscription.
        paid_tier_status: Subscription payment state.
        base_fee_status: Base monthly fee state.
        base_fee_waived_reason: Why the base fee is waived, if it is.
    """

    address: str
    tier: UserTier = UserTier.BASIC
    nickname: str | None = None
    solana_name: str | None = None
    token_balance: Decimal = Decimal("0")
    token_value_in_sol: Decimal = Decimal("0")
    paid_tier: PaidTier = PaidTier.NONE
    paid_tier_status: SubscriptionStatus = SubscriptionStatus.NONE
    paid_tier_next_due: datetime | None = None
    base_fee_status: BaseFeeStatus = BaseFeeStatus.NONE
    base_fee_waived_reason: str | None = None
    base_fee_next_due: datetime | None = None
    has_app_purchase: bool = False
    payment_currency: PaymentCurrency = PaymentCurrency.SOL
    id: str = field(default_factory=_new_id)
    connected_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "address": self.address,
            "tier": self.tier.value,
            "nickname": self.nickname,
            "solana_name": self.solana_name,
            "token_balance": str(self.token_balance),
            "token_value_in_sol": str(self.token_value_in_sol),
            "paid_tier": self.paid_tier.value,
            "paid_tier_status": self.paid_tier_status.value,
            "paid_tier_next_due": _iso(self.paid_tier_next_due),
            "base_fee_status": self.base_fee_status.value,
            "base_fee_waived_reason": self.base_fee_waived_reason,
            "base_fee_next_due": _iso(self.base_fee_next_due),
            "has_app_purchase": self.has_app_purchase,
            "payment_currency": self.payment_currency.value,
            "connected_at": self.connected_at.isoformat(),
        }


@dataclass(frozen=True)
class Transaction:
    """A classified incoming token transaction. Immutable once created.

    Raises:
        ValueError: If ``blocked`` disagrees with the final classification,
            or the final verdict is less severe than the local one.
    """

    wallet_id: str
    signature: str
    token_address: str
    local_classification: TokenClassification
    local_threat_level: ThreatLevel
    final_classification: TokenClassification
    final_threat_level: ThreatLevel
    blocked: bool
    token_name: str | None = None
    token_symbol: str | None = None
    amount: Decimal = Decimal("0")
    local_reason: str | None = None
    deep3_classification: str | None = None
    deep3_risk_score: int | None = None
    deep3_reason: str | None = None
    deep3_metadata: dict[str, Any] | None = None
    id: str = field(default_factory=_new_id)
    timestamp: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        if self.blocked != (self.final_classification == TokenClassification.BLOCK):
            raise ValueError("blocked must equal (final_classification == BLOCK)")
        if (
            self.final_classification.severity < self.local_classification.severity
            or self.final_threat_level.severity < self.local_threat_level.severity
        ):
            raise ValueError("final classification cannot be less severe than local")

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "wallet_id": self.wallet_id,
            "signature": self.signature,
            "token_address": self.token_address,
            "token_name": self.token_name,
            "token_symbol": self.token_symbol,
            "amount": str(self.amount),
            "timestamp": self.timestamp.isoformat(),
            "local_classification": self.local_classification.value,
            "local_threat_level": self.local_threat_level.value,
            "local_reason": self.local_reason,
            "deep3_classification": self.deep3_classification,
            "deep3_risk_score": self.deep3_risk_score,
            "deep3_reason": self.deep3_reason,
            "deep3_metadata": self.deep3_metadata,
            "final_classification": self.final_classification.value,
            "final_threat_level": self.final_threat_level.value,
            "blocked": self.blocked,
        }


@dataclass(frozen=True)
class ArbitrageBot:
    """An arbitrage bot owned by exactly one wallet.

    Bots always start inactive. ``inactive_since`` is ``None`` while the bot
    is active and stamped when it becomes inactive.
    """

    wallet_id: str
    bot_name: str
    wallet_address: str
    strategy: BotStrategy
    active: bool = False
    min_profit_threshold: Decimal = Decimal("0.01")
    max_risk_score: int = 50
    max_trade_size: Decimal = Decimal("10")
    slippage_tolerance: Decimal = Decimal("0.5")
    target_pairs: tuple[str, ...] = ("SOL/USDC", "SOL/USDT")
    dex_allowlist: tuple[str, ...] = ("raydium", "orca", "jupiter")
    auto_pause_config: dict[str, Any] | None = None
    payment_status: PaymentStatus = PaymentStatus.CURRENT
    is_included_bot: bool = False
    inactive_since: datetime | None = None
    next_payment_due: datetime | None = None
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "wallet_id": self.wallet_id,
            "bot_name": self.bot_name,
            "active": self.active,
            "wallet_address": self.wallet_address,
            "strategy": self.strategy.value,
            "min_profit_threshold": str(self.min_profit_threshold),
            "max_risk_score": self.max_risk_score,
            "max_trade_size": str(self.max_trade_size),
            "slippage_tolerance": str(self.slippage_tolerance),
            "target_pairs": list(self.target_pairs),
            "dex_allowlist": list(self.dex_allowlist),
            "auto_pause_config": self.auto_pause_config,
            "payment_status": self.payment_status.value,
            "is_included_bot": self.is_included_bot,
            "inactive_since": _iso(self.inactive_since),
            "next_payment_due": _iso(self.next_payment_due),
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class NftPass:
    """An entitlement pass held by a wallet.

    A pass is valid while ``is_active`` and not past ``expires_at``
    (``None`` means permanent).
    """

    wallet_id: str
    benefit_type: BenefitType
    pass_name: str = ""
    mint_address: str | None = None
    is_active: bool = True
    expires_at: datetime | None = None
    tier_upgrade: UserTier | None = None
    free_bot_slots: int = 0
    id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_now)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "wallet_id": self.wallet_id,
            "pass_name": self.pass_name,
            "mint_address": self.mint_address,
            "benefit_type": self.benefit_type.value,
            "is_active": self.is_active,
            "expires_at": _iso(self.expires_at),
            "tier_upgrade": self.tier_upgrade.value if self.tier_upgrade else None,
            "free_bot_slots": self.free_bot_slots,
            "created_at": self.created_at.isoformat(),
        }


# ---------------------------------------------------------------------------
# Partial updates
# ---------------------------------------------------------------------------


class Unset(Enum):
    """Marker type for patch fields that were not provided."""

    TOKEN = 0

    def __repr__(self) -> str:
        return "UNSET"


UNSET = Unset.TOKEN

EntityT = TypeVar("EntityT", Wallet, ArbitrageBot, NftPass)


@dataclass(frozen=True)
class _Patch:
    def changes(self) -> dict[str, Any]:
        """Return only the fields that were explicitly set."""
        return {
            f.name: getattr(self, f.name)
            for f in dataclasses.fields(self)
            if getattr(self, f.name) is not UNSET
        }

    def is_empty(self) -> bool:
        return not self.changes()

    def apply(self, entity: EntityT) -> EntityT:
        """Return a copy of ``entity`` with the set fields overwritten."""
        return dataclasses.replace(entity, **self.changes())


@dataclass(frozen=True)
class WalletPatch(_Patch):
    """Partial update for a Wallet."""

    tier: UserTier | Unset = UNSET
    nickname: str | None | Unset = UNSET
    solana_name: str | None | Unset = UNSET
    token_balance: Decimal | Unset = UNSET
    token_value_in_sol: Decimal | Unset = UNSET
    paid_tier: PaidTier | Unset = UNSET
    paid_tier_status: SubscriptionStatus | Unset = UNSET
    paid_tier_next_due: datetime | None | Unset = UNSET
    base_fee_status: BaseFeeStatus | Unset = UNSET
    base_fee_waived_reason: str | None | Unset = UNSET
    base_fee_next_due: datetime | None | Unset = UNSET
    has_app_purchase: bool | Unset = UNSET
    payment_currency: PaymentCurrency | Unset = UNSET


@dataclass(frozen=True)
class BotPatch(_Patch):
    """Partial update for an ArbitrageBot."""

    bot_name: str | Unset = UNSET
    active: bool | Unset = UNSET
    strategy: BotStrategy | Unset = UNSET
    min_profit_threshold: Decimal | Unset = UNSET
    max_risk_score: int | Unset = UNSET
    max_trade_size: Decimal | Unset = UNSET
    slippage_tolerance: Decimal | Unset = UNSET
    target_pairs: tuple[str, ...] | Unset = UNSET
    dex_allowlist: tuple[str, ...] | Unset = UNSET
    auto_pause_config: dict[str, Any] | None | Unset = UNSET
    payment_status: PaymentStatus | Unset = UNSET
    inactive_since: datetime | None | Unset = UNSET
    next_payment_due: datetime | None | Unset = UNSET


@dataclass(frozen=True)
class PassPatch(_Patch):
    """Partial update for an NftPass."""

    is_active: bool | Unset = UNSET
    expires_at: datetime | None | Unset = UNSET
    tier_upgrade: UserTier | None | Unset = UNSET
    free_bot_slots: int | Unset = UNSET
