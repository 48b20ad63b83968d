"""Tier refresh flow: resolve a wallet's tier and refresh its cached state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from cath_guard.events.broadcaster import EventBroadcaster
from cath_guard.events.models import tier_update_event
from cath_guard.exceptions import SupplierError
from cath_guard.metrics import TIER_RESOLUTIONS_TOTAL
from cath_guard.models import BaseFeeStatus, Wallet, WalletPatch
from cath_guard.pricing.conversions import convert_sol_to_cath, convert_usd_to_sol
from cath_guard.pricing.suppliers import CATH, SOL, PriceSupplier
from cath_guard.storage.base import Repository
from cath_guard.tiers.models import (
    BASE_FEE_WAIVER_SOL,
    PRICES,
    PRO_PLUS_TIER_TOKENS,
    PRO_TIER_TOKENS,
    ResolvedTier,
)
from cath_guard.tiers.resolver import is_base_fee_waived, resolve_tier

logger = logging.getLogger(__name__)

HOLDINGS_WAIVER_REASON = "cath_holdings"


@dataclass(frozen=True)
class TierRefresh:
    """Result of refreshing a wallet's tier."""

    wallet: Wallet
    resolved: ResolvedTier
    base_fee_waived: bool
    tier_changed: bool


class TierService:
    """Resolves tiers from current wallet, price and pass state."""

    def __init__(
        self,
        repository: Repository,
        prices: PriceSupplier,
        *,
        broadcaster: EventBroadcaster | None = None,
        pro_threshold: Decimal = PRO_TIER_TOKENS,
        pro_plus_threshold: Decimal = PRO_PLUS_TIER_TOKENS,
        base_fee_waiver_sol: Decimal = BASE_FEE_WAIVER_SOL,
    ) -> None:
        self._repository = repository
        self._prices = prices
        self._broadcaster = broadcaster
        self._pro_threshold = pro_threshold
        self._pro_plus_threshold = pro_plus_threshold
        self._base_fee_waiver_sol = base_fee_waiver_sol

    async def resolve(self, wallet: Wallet) -> ResolvedTier:
        """Resolve the effective tier of ``wallet`` without persisting it."""
        price = await self._prices.price(CATH)
        return await self._resolve(wallet, price)

    async def quote_prices(self) -> dict[str, dict[str, str | None]]:
        """Quote every USD list price in SOL and CATH at current prices.

        A currency whose price is unavailable is quoted as None.
        """
        sol_price = await self._prices.price(SOL)
        cath_price = await self._prices.price(CATH)

        quotes: dict[str, dict[str, str | None]] = {}
        for item, usd in PRICES.items():
            sol: Decimal | None = None
            cath: Decimal | None = None
            try:
                sol = convert_usd_to_sol(usd, sol_price)
                cath = convert_sol_to_cath(sol, cath_price)
            except SupplierError as e:
                logger.warning(f"Cannot quote {item}: {e}")
            quotes[item] = {
                "usd": str(usd),
                "sol": str(sol) if sol is not None else None,
                "cath": str(cath) if cath is not None else None,
            }
        return quotes

    async def _resolve(self, wallet: Wallet, price: Decimal) -> ResolvedTier:
        passes = await self._repository.get_active_passes(wallet.id)
        resolved = resolve_tier(
            wallet,
            wallet.token_balance,
            price,
            passes,
            pro_threshold=self._pro_threshold,
            pro_plus_threshold=self._pro_plus_threshold,
        )
        TIER_RESOLUTIONS_TOTAL.labels(
            tier=resolved.tier.value, source=resolved.source.value
        ).inc()
        return resolved

    async def refresh(self, wallet_id: str) -> TierRefresh | None:
        """Resolve a wallet's tier and store the cached projection.

        The cached tier and holdings value are overwritten. The base fee is
        marked waived while holdings cover the waiver threshold, and a
        holdings-based waiver is lifted once they no longer do.

        Args:
            wallet_id: Wallet to refresh.

        Returns:
            TierRefresh, or None if the wallet does not exist.
        """
        wallet = await self._repository.get_wallet(wallet_id)
        if wallet is None:
            return None

        price = await self._prices.price(CATH)
        resolved = await self._resolve(wallet, price)
        waived = is_base_fee_waived(
            wallet.token_balance, price, waiver_threshold_sol=self._base_fee_waiver_sol
        )

        fee_changes: dict[str, Any] = {}
        if waived:
            fee_changes = {
                "base_fee_status": BaseFeeStatus.WAIVED,
                "base_fee_waived_reason": HOLDINGS_WAIVER_REASON,
            }
        elif (
            wallet.base_fee_status == BaseFeeStatus.WAIVED
            and wallet.base_fee_waived_reason == HOLDINGS_WAIVER_REASON
        ):
            fee_changes = {"base_fee_status": BaseFeeStatus.NONE, "base_fee_waived_reason": None}

        updated = await self._repository.update_wallet(
            wallet_id,
            WalletPatch(
                tier=resolved.tier,
                token_value_in_sol=resolved.token_value_in_sol,
                **fee_changes,
            ),
        )
        if updated is None:
            return None

        changed = wallet.tier != resolved.tier
        if changed:
            logger.info(
                f"Wallet {wallet.address} tier {wallet.tier.value} -> {resolved.tier.value} "
                f"(source: {resolved.source.value})"
            )
            if self._broadcaster is not None:
                await self._broadcaster.publish(tier_update_event(updated, resolved))

        return TierRefresh(
            wallet=updated, resolved=resolved, base_fee_waived=waived, tier_changed=changed
        )
