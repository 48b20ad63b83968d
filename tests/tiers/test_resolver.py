"""Tests for tier resolution and feature gating."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest

from cath_guard.exceptions import TierResolutionError
from cath_guard.models import (
    BenefitType,
    NftPass,
    PaidTier,
    SubscriptionStatus,
    UserTier,
    Wallet,
)
from cath_guard.tiers import (
    TierSource,
    features_for,
    is_base_fee_waived,
    resolve_tier,
)

NOW = datetime(2025, 6, 1, tzinfo=UTC)
PRICE = Decimal("0.005")


def upgrade_pass(tier: UserTier, **overrides: object) -> NftPass:
    fields: dict[str, object] = {
        "wallet_id": "w1",
        "benefit_type": BenefitType.TIER_UPGRADE,
        "tier_upgrade": tier,
    }
    fields.update(overrides)
    return NftPass(**fields)  # type: ignore[arg-type]


@pytest.fixture
def wallet() -> Wallet:
    return Wallet(address="wallet-address")


@pytest.fixture
def subscribed_wallet() -> Wallet:
    return Wallet(
        address="subscriber",
        paid_tier=PaidTier.PRO,
        paid_tier_status=SubscriptionStatus.CURRENT,
    )


class TestHoldings:
    """Tests for the holdings branch."""

    def test_pro_plus_at_threshold(self, wallet: Wallet) -> None:
        resolved = resolve_tier(wallet, Decimal("100"), PRICE)

        assert resolved.tier == UserTier.PRO_PLUS
        assert resolved.source == TierSource.CATH_HOLDINGS
        assert resolved.meets_pro_threshold is True
        assert resolved.meets_pro_plus_threshold is True
        assert resolved.token_value_in_sol == Decimal("0.500")

    def test_pro_between_thresholds(self, wallet: Wallet) -> None:
        resolved = resolve_tier(wallet, Decimal("50"), PRICE)

        assert resolved.tier == UserTier.PRO
        assert resolved.meets_pro_threshold is True
        assert resolved.meets_pro_plus_threshold is False

    def test_holdings_beat_passes_and_subscription(self, subscribed_wallet: Wallet) -> None:
        resolved = resolve_tier(
            subscribed_wallet,
            Decimal("60"),
            PRICE,
            [upgrade_pass(UserTier.PRO_PLUS)],
            now=NOW,
        )

        assert resolved.tier == UserTier.PRO
        assert resolved.source == TierSource.CATH_HOLDINGS
        assert resolved.has_paid_subscription is True

    def test_custom_thresholds(self, wallet: Wallet) -> None:
        resolved = resolve_tier(
            wallet,
            Decimal("10"),
            PRICE,
            pro_threshold=Decimal("5"),
            pro_plus_threshold=Decimal("10"),
        )
        assert resolved.tier == UserTier.PRO_PLUS

    def test_zero_price_still_grants_by_balance(self, wallet: Wallet) -> None:
        resolved = resolve_tier(wallet, Decimal("100"), Decimal("0"))

        assert resolved.tier == UserTier.PRO_PLUS
        assert resolved.token_value_in_sol == Decimal("0")


class TestPasses:
    """Tests for the NFT pass branch."""

    def test_highest_upgrade_wins(self, wallet: Wallet) -> None:
        passes = [upgrade_pass(UserTier.PRO), upgrade_pass(UserTier.PRO_PLUS)]

        resolved = resolve_tier(wallet, Decimal("0"), PRICE, passes, now=NOW)

        assert resolved.tier == UserTier.PRO_PLUS
        assert resolved.source == TierSource.NFT_PASS

    def test_pass_beats_subscription(self, subscribed_wallet: Wallet) -> None:
        resolved = resolve_tier(
            subscribed_wallet, Decimal("0"), PRICE, [upgrade_pass(UserTier.PRO_PLUS)], now=NOW
        )
        assert resolved.source == TierSource.NFT_PASS

    def test_expired_and_inactive_passes_ignored(self, wallet: Wallet) -> None:
        passes = [
            upgrade_pass(UserTier.PRO_PLUS, expires_at=NOW - timedelta(hours=1)),
            upgrade_pass(UserTier.PRO, is_active=False),
        ]

        resolved = resolve_tier(wallet, Decimal("0"), PRICE, passes, now=NOW)

        assert resolved.tier == UserTier.BASIC
        assert resolved.source == TierSource.DEFAULT

    def test_other_benefits_do_not_upgrade(self, wallet: Wallet) -> None:
        passes = [
            NftPass(wallet_id="w1", benefit_type=BenefitType.FEE_WAIVER),
            NftPass(wallet_id="w1", benefit_type=BenefitType.FREE_BOT_SLOT, free_bot_slots=1),
        ]
        resolved = resolve_tier(wallet, Decimal("0"), PRICE, passes, now=NOW)
        assert resolved.tier == UserTier.BASIC


class TestSubscription:
    """Tests for the paid subscription branch."""

    def test_current_subscription(self, subscribed_wallet: Wallet) -> None:
        resolved = resolve_tier(subscribed_wallet, Decimal("10"), PRICE)

        assert resolved.tier == UserTier.PRO
        assert resolved.source == TierSource.SUBSCRIPTION

    @pytest.mark.parametrize(
        "status", [SubscriptionStatus.FAILED, SubscriptionStatus.CANCELED]
    )
    def test_lapsed_subscription_falls_back(self, status: SubscriptionStatus) -> None:
        wallet = Wallet(address="a", paid_tier=PaidTier.PRO_PLUS, paid_tier_status=status)

        resolved = resolve_tier(wallet, Decimal("0"), PRICE)

        assert resolved.tier == UserTier.BASIC
        assert resolved.has_paid_subscription is False


class TestValidation:
    """Tests for malformed input."""

    def test_negative_balance_raises(self, wallet: Wallet) -> None:
        with pytest.raises(TierResolutionError, match="token_balance"):
            resolve_tier(wallet, Decimal("-1"), PRICE)

    def test_negative_price_raises(self, wallet: Wallet) -> None:
        with pytest.raises(TierResolutionError, match="token_price_in_sol"):
            resolve_tier(wallet, Decimal("1"), Decimal("-0.1"))


class TestBaseFeeWaiver:
    """Tests for the holdings-based base fee waiver."""

    def test_waived_at_threshold(self) -> None:
        assert is_base_fee_waived(Decimal("20"), PRICE)

    def test_not_waived_below_threshold(self) -> None:
        assert not is_base_fee_waived(Decimal("19"), PRICE)

    def test_custom_threshold(self) -> None:
        assert is_base_fee_waived(
            Decimal("10"), PRICE, waiver_threshold_sol=Decimal("0.05")
        )


class TestFeatures:
    """Tests for tier feature flags."""

    def test_basic(self) -> None:
        features = features_for(UserTier.BASIC)

        assert features.local_classifier is True
        assert features.deep3_integration is False
        assert features.arbitrage_bots is False

    def test_pro_unlocks_deep3_only(self) -> None:
        features = features_for(UserTier.PRO)

        assert features.deep3_integration is True
        assert features.arbitrage_bots is False

    def test_pro_plus_unlocks_bots(self) -> None:
        assert features_for(UserTier.PRO_PLUS).arbitrage_bots is True

    def test_resolved_to_dict(self, wallet: Wallet) -> None:
        data = resolve_tier(wallet, Decimal("100"), PRICE).to_dict()

        assert data["tier"] == "pro_plus"
        assert data["source"] == "cath_holdings"
        assert data["token_balance"] == "100"
