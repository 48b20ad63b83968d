"""Tier layer - prioritized tier resolution and feature gating."""

from cath_guard.tiers.models import (
    PRICES,
    TIER_FEATURES,
    ResolvedTier,
    TierFeatures,
    TierSource,
)
from cath_guard.tiers.resolver import features_for, is_base_fee_waived, resolve_tier

__all__ = [
    "PRICES",
    "ResolvedTier",
    "TIER_FEATURES",
    "TierFeatures",
    "TierSource",
    "features_for",
    "is_base_fee_waived",
    "resolve_tier",
]
