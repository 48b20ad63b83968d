"""Arbitrage bot management flow.

Bots are a Pro+ feature and are always created inactive. The first
``included_bots`` bots of a wallet (plus one per free slot granted by valid
passes) are fee-exempt; every later bot pays the monthly fee from the first
of the next month.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from cath_guard.billing.fees import (
    DEFAULT_INCLUDED_BOTS,
    MONTHLY_FEE_SOL,
    TRANSACTION_FEE_PERCENT,
    PaymentSummary,
    calculate_next_payment_due,
    calculate_transaction_fee,
    get_free_bot_slots,
    get_payment_summary,
)
from cath_guard.events.broadcaster import EventBroadcaster
from cath_guard.events.models import bot_update_event
from cath_guard.exceptions import BotLimitError, TierRequiredError
from cath_guard.models import (
    UNSET,
    ArbitrageBot,
    BotPatch,
    BotStrategy,
    PaymentStatus,
    UserTier,
    Wallet,
)
from cath_guard.services.tiers import TierService
from cath_guard.storage.base import Repository
from cath_guard.tiers.resolver import features_for

logger = logging.getLogger(__name__)

DEFAULT_MAX_BOTS_PER_WALLET = 5


@dataclass(frozen=True)
class BotConfig:
    """Requested configuration for a new bot."""

    bot_name: str
    strategy: BotStrategy
    wallet_address: str | None = None
    min_profit_threshold: Decimal = Decimal("0.01")
    max_risk_score: int = 50
    max_trade_size: Decimal = Decimal("10")
    slippage_tolerance: Decimal = Decimal("0.5")
    target_pairs: tuple[str, ...] = ("SOL/USDC", "SOL/USDT")
    dex_allowlist: tuple[str, ...] = ("raydium", "orca", "jupiter")
    auto_pause_config: dict[str, Any] | None = None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class BotService:
    """Creates, updates and deletes arbitrage bots."""

    def __init__(
        self,
        repository: Repository,
        tiers: TierService,
        *,
        broadcaster: EventBroadcaster | None = None,
        included_bots: int = DEFAULT_INCLUDED_BOTS,
        max_bots_per_wallet: int = DEFAULT_MAX_BOTS_PER_WALLET,
        monthly_fee: Decimal = MONTHLY_FEE_SOL,
        transaction_fee_percent: Decimal = TRANSACTION_FEE_PERCENT,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._tiers = tiers
        self._broadcaster = broadcaster
        self._included_bots = included_bots
        self._max_bots = max_bots_per_wallet
        self._monthly_fee = monthly_fee
        self._transaction_fee_percent = transaction_fee_percent
        self._clock = clock

    async def _has_bot_access(self, wallet: Wallet) -> tuple[bool, UserTier]:
        resolved = await self._tiers.resolve(wallet)
        return features_for(resolved.tier).arbitrage_bots, resolved.tier

    async def list_for_wallet(self, wallet_address: str) -> list[ArbitrageBot] | None:
        """Return a wallet's bots.

        Returns:
            The bots, an empty list when the wallet's tier has no bot access,
            or None if the wallet is unknown.
        """
        wallet = await self._repository.get_wallet_by_address(wallet_address)
        if wallet is None:
            return None
        allowed, _ = await self._has_bot_access(wallet)
        if not allowed:
            return []
        return await self._repository.get_bots_by_wallet(wallet.id)

    async def create(self, wallet_id: str, config: BotConfig) -> ArbitrageBot | None:
        """Create an inactive bot for a wallet.

        Args:
            wallet_id: Owning wallet.
            config: Requested bot configuration.

        Returns:
            The created bot, or None if the wallet is unknown.

        Raises:
            TierRequiredError: If the wallet does not resolve to Pro+.
            BotLimitError: If the wallet already owns the maximum number of bots.
        """
        wallet = await self._repository.get_wallet(wallet_id)
        if wallet is None:
            return None

        allowed, tier = await self._has_bot_access(wallet)
        if not allowed:
            raise TierRequiredError(UserTier.PRO_PLUS.value, tier.value)

        existing = await self._repository.get_bots_by_wallet(wallet_id)
        if len(existing) >= self._max_bots:
            raise BotLimitError(self._max_bots)

        now = self._clock()
        passes = await self._repository.get_active_passes(wallet_id)
        included_slots = self._included_bots + get_free_bot_slots(passes, now=now)
        is_included = len(existing) < included_slots

        bot = ArbitrageBot(
            wallet_id=wallet_id,
            bot_name=config.bot_name,
            wallet_address=config.wallet_address or wallet.address,
            strategy=config.strategy,
            active=False,
            min_profit_threshold=config.min_profit_threshold,
            max_risk_score=config.max_risk_score,
            max_trade_size=config.max_trade_size,
            slippage_tolerance=config.slippage_tolerance,
            target_pairs=config.target_pairs,
            dex_allowlist=config.dex_allowlist,
            auto_pause_config=config.auto_pause_config,
            payment_status=PaymentStatus.WAIVED if is_included else PaymentStatus.CURRENT,
            is_included_bot=is_included,
            inactive_since=now,
            next_payment_due=None if is_included else calculate_next_payment_due(now),
            created_at=now,
        )
        created = await self._repository.create_bot(bot)
        logger.info(
            f"Created bot {created.id} ({created.bot_name}) for wallet {wallet.address}, "
            f"included={created.is_included_bot}"
        )
        return created

    async def update(self, bot_id: str, patch: BotPatch) -> ArbitrageBot | None:
        """Apply a partial update to a bot.

        Activation clears ``inactive_since`` and deactivation stamps it, unless
        the patch sets ``inactive_since`` itself.

        Returns:
            The updated bot, or None if the bot does not exist.
        """
        bot = await self._repository.get_bot(bot_id)
        if bot is None:
            return None

        if patch.active is not UNSET and patch.inactive_since is UNSET:
            if patch.active and not bot.active:
                patch = BotPatch(**{**patch.changes(), "inactive_since": None})
            elif not patch.active and bot.active:
                patch = BotPatch(**{**patch.changes(), "inactive_since": self._clock()})

        updated = await self._repository.update_bot(bot_id, patch)
        if updated is not None and self._broadcaster is not None:
            await self._broadcaster.publish(bot_update_event(updated))
        return updated

    async def delete(self, bot_id: str) -> bool:
        deleted = await self._repository.delete_bot(bot_id)
        if deleted:
            logger.info(f"Deleted bot {bot_id}")
        return deleted

    async def payment_summary(self, wallet_id: str) -> PaymentSummary | None:
        """Summarize bot billing for a wallet, or None if it is unknown."""
        wallet = await self._repository.get_wallet(wallet_id)
        if wallet is None:
            return None
        bots = await self._repository.get_bots_by_wallet(wallet_id)
        passes = await self._repository.get_active_passes(wallet_id)
        return get_payment_summary(
            bots, passes, monthly_fee=self._monthly_fee, now=self._clock()
        )

    async def transaction_fee(self, wallet_id: str, amount: Decimal) -> Decimal | None:
        """Quote the taker fee for a bot trade of ``amount``.

        Returns:
            The fee (zero under a valid fee-waiver pass), or None if the
            wallet is unknown.
        """
        if await self._repository.get_wallet(wallet_id) is None:
            return None
        passes = await self._repository.get_active_passes(wallet_id)
        return calculate_transaction_fee(
            amount, passes, fee_percent=self._transaction_fee_percent, now=self._clock()
        )
