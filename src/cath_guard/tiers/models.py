"""Data models and constants for tier resolution."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any

from cath_guard.models import UserTier

PRO_TIER_TOKENS = Decimal("50")
PRO_PLUS_TIER_TOKENS = Decimal("100")
BASE_FEE_WAIVER_SOL = Decimal("0.1")

# USD list prices
PRICES: dict[str, Decimal] = {
    "app_purchase": Decimal("0.99"),
    "base_fee": Decimal("0.99"),
    "pro_tier": Decimal("9.99"),
    "pro_plus_tier": Decimal("29.99"),
}


class TierSource(str, Enum):
    """Which signal decided the resolved tier."""

    CATH_HOLDINGS = "cath_holdings"
    NFT_PASS = "nft_pass"
    SUBSCRIPTION = "subscription"
    DEFAULT = "default"


@dataclass(frozen=True)
class ResolvedTier:
    """Outcome of a tier resolution with diagnostics.

    Attributes:
        tier: Effective tier.
        source: Signal that won.
        token_balance: CATH balance the resolution was computed from.
        token_value_in_sol: ``token_balance * price``.
        meets_pro_threshold: Holdings reach the Pro threshold.
        meets_pro_plus_threshold: Holdings reach the Pro+ threshold.
        has_paid_subscription: A current paid subscription exists, reported
            whichever branch won.
    """

    tier: UserTier
    source: TierSource
    token_balance: Decimal
    token_value_in_sol: Decimal
    meets_pro_threshold: bool
    meets_pro_plus_threshold: bool
    has_paid_subscription: bool

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "tier": self.tier.value,
            "source": self.source.value,
            "token_balance": str(self.token_balance),
            "token_value_in_sol": str(self.token_value_in_sol),
            "meets_pro_threshold": self.meets_pro_threshold,
            "meets_pro_plus_threshold": self.meets_pro_plus_threshold,
            "has_paid_subscription": self.has_paid_subscription,
        }


@dataclass(frozen=True)
class TierFeatures:
    """Feature flags unlocked by a tier."""

    local_classifier: bool
    deep3_integration: bool
    arbitrage_bots: bool
    realtime_monitoring: bool
    historical_data: bool
    custom_rules: bool


TIER_FEATURES: dict[UserTier, TierFeatures] = {
    UserTier.BASIC: TierFeatures(
        local_classifier=True,
        deep3_integration=False,
        arbitrage_bots=False,
        realtime_monitoring=True,
        historical_data=False,
        custom_rules=False,
    ),
    UserTier.PRO: TierFeatures(
        local_classifier=True,
        deep3_integration=True,
        arbitrage_bots=False,
        realtime_monitoring=True,
        historical_data=True,
        custom_rules=True,
    ),
    UserTier.PRO_PLUS: TierFeatures(
        local_classifier=True,
        deep3_integration=True,
        arbitrage_bots=True,
        realtime_monitoring=True,
        historical_data=True,
        custom_rules=True,
    ),
}
