"""Tier resolver.

The effective tier is decided by the first signal that applies, in strict
priority order:

    1. CATH holdings (Pro+ threshold, then Pro threshold)
    2. valid NFT passes granting a tier upgrade (highest wins)
    3. a current paid subscription
    4. the basic tier

The base-fee waiver is an independent predicate and does not take part in
the chain.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from decimal import Decimal

from cath_guard.billing.fees import is_pass_valid
from cath_guard.exceptions import TierResolutionError
from cath_guard.models import (
    BenefitType,
    NftPass,
    PaidTier,
    SubscriptionStatus,
    UserTier,
    Wallet,
)
from cath_guard.tiers.models import (
    BASE_FEE_WAIVER_SOL,
    PRO_PLUS_TIER_TOKENS,
    PRO_TIER_TOKENS,
    TIER_FEATURES,
    ResolvedTier,
    TierFeatures,
    TierSource,
)


def resolve_tier(
    wallet: Wallet,
    token_balance: Decimal,
    token_price_in_sol: Decimal,
    active_passes: Sequence[NftPass] = (),
    *,
    pro_threshold: Decimal = PRO_TIER_TOKENS,
    pro_plus_threshold: Decimal = PRO_PLUS_TIER_TOKENS,
    now: datetime | None = None,
) -> ResolvedTier:
    """Resolve the effective tier of a wallet.

    Args:
        wallet: Wallet whose subscription state is consulted.
        token_balance: Current CATH balance.
        token_price_in_sol: Current CATH price in SOL.
        active_passes: NFT passes held by the wallet.
        pro_threshold: Minimum balance for Pro via holdings.
        pro_plus_threshold: Minimum balance for Pro+ via holdings.
        now: Reference time for pass validity.

    Returns:
        ResolvedTier with the winning tier, its source and diagnostics.

    Raises:
        TierResolutionError: If the balance or price is negative.
    """
    if token_balance < 0:
        raise TierResolutionError(f"token_balance must be non-negative, got {token_balance}")
    if token_price_in_sol < 0:
        raise TierResolutionError(
            f"token_price_in_sol must be non-negative, got {token_price_in_sol}"
        )

    value_in_sol = token_balance * token_price_in_sol
    meets_pro_plus = token_balance >= pro_plus_threshold
    meets_pro = token_balance >= pro_threshold
    has_paid_subscription = (
        wallet.paid_tier_status == SubscriptionStatus.CURRENT
        and wallet.paid_tier != PaidTier.NONE
    )

    def _resolved(tier: UserTier, source: TierSource) -> ResolvedTier:
        return ResolvedTier(
            tier=tier,
            source=source,
            token_balance=token_balance,
            token_value_in_sol=value_in_sol,
            meets_pro_threshold=meets_pro,
            meets_pro_plus_threshold=meets_pro_plus,
            has_paid_subscription=has_paid_subscription,
        )

    if meets_pro_plus:
        return _resolved(UserTier.PRO_PLUS, TierSource.CATH_HOLDINGS)
    if meets_pro:
        return _resolved(UserTier.PRO, TierSource.CATH_HOLDINGS)

    upgrades = {
        p.tier_upgrade
        for p in active_passes
        if p.benefit_type == BenefitType.TIER_UPGRADE
        and p.tier_upgrade is not None
        and is_pass_valid(p, now=now)
    }
    if UserTier.PRO_PLUS in upgrades:
        return _resolved(UserTier.PRO_PLUS, TierSource.NFT_PASS)
    if UserTier.PRO in upgrades:
        return _resolved(UserTier.PRO, TierSource.NFT_PASS)

    if has_paid_subscription:
        return _resolved(UserTier(wallet.paid_tier.value), TierSource.SUBSCRIPTION)

    return _resolved(UserTier.BASIC, TierSource.DEFAULT)


def is_base_fee_waived(
    token_balance: Decimal,
    token_price_in_sol: Decimal,
    *,
    waiver_threshold_sol: Decimal = BASE_FEE_WAIVER_SOL,
) -> bool:
    """Return True if CATH holdings are worth at least the waiver threshold."""
    return token_balance * token_price_in_sol >= waiver_threshold_sol


def features_for(tier: UserTier) -> TierFeatures:
    """Return the feature flags unlocked by ``tier``."""
    return TIER_FEATURES[tier]
