"""Payment and fee utilities for arbitrage bots and NFT passes.

All functions are pure apart from reading the wall clock, and every one
that depends on "now" accepts it as an optional keyword argument.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from cath_guard.models import ArbitrageBot, BenefitType, NftPass, PaymentStatus

MONTHLY_FEE_SOL = Decimal("0.0009")  # per additional bot per month
TRANSACTION_FEE_PERCENT = Decimal("0.005")  # 0.5% taker fee
INACTIVE_DELETE_DAYS = 30
DEFAULT_INCLUDED_BOTS = 2

SECONDS_PER_DAY = 86400


def _now(now: datetime | None) -> datetime:
    return now if now is not None else datetime.now(UTC)


def is_pass_valid(nft_pass: NftPass, *, now: datetime | None = None) -> bool:
    """Check that a pass is active and not expired.

    Args:
        nft_pass: The NFT pass.
        now: Reference time (defaults to the current UTC time).

    Returns:
        True if the pass is active and permanent or expiring in the future.
    """
    if not nft_pass.is_active:
        return False
    if nft_pass.expires_at is None:
        return True
    return nft_pass.expires_at > _now(now)


def has_fee_waiver(passes: Iterable[NftPass], *, now: datetime | None = None) -> bool:
    """Return True if any valid pass waives fees."""
    return any(
        p.benefit_type == BenefitType.FEE_WAIVER and is_pass_valid(p, now=now) for p in passes
    )


def calculate_bot_monthly_fee(
    bot: ArbitrageBot,
    active_passes: Sequence[NftPass],
    *,
    monthly_fee: Decimal = MONTHLY_FEE_SOL,
    now: datetime | None = None,
) -> Decimal:
    """Calculate the monthly fee for an arbitrage bot.

    Included bots never pay. Otherwise a valid fee-waiver pass zeroes the fee,
    and an inactive bot costs nothing.

    Args:
        bot: The arbitrage bot.
        active_passes: NFT passes held by the bot's wallet.
        monthly_fee: Per-bot monthly rate in SOL.
        now: Reference time for pass validity.

    Returns:
        Monthly fee in SOL.
    """
    if bot.is_included_bot:
        return Decimal("0")

    if has_fee_waiver(active_passes, now=now):
        return Decimal("0")

    return monthly_fee if bot.active else Decimal("0")


def calculate_transaction_fee(
    amount: Decimal,
    active_passes: Sequence[NftPass],
    *,
    fee_percent: Decimal = TRANSACTION_FEE_PERCENT,
    now: datetime | None = None,
) -> Decimal:
    """Calculate the taker fee for a trade, zero when a fee-waiver pass is valid."""
    if has_fee_waiver(active_passes, now=now):
        return Decimal("0")
    return amount * fee_percent


def get_free_bot_slots(passes: Iterable[NftPass], *, now: datetime | None = None) -> int:
    """Count the extra fee-exempt bot slots granted by valid passes."""
    return sum(
        p.free_bot_slots or 0
        for p in passes
        if p.benefit_type == BenefitType.FREE_BOT_SLOT and is_pass_valid(p, now=now)
    )


def calculate_next_payment_due(from_date: datetime | None = None) -> datetime:
    """Return midnight on the first day of the month after ``from_date``.

    The timezone of ``from_date`` is preserved. December rolls into January
    of the next year.
    """
    base = _now(from_date)
    if base.month == 12:
        return base.replace(
            year=base.year + 1, month=1, day=1, hour=0, minute=0, second=0, microsecond=0
        )
    return base.replace(month=base.month + 1, day=1, hour=0, minute=0, second=0, microsecond=0)


def should_auto_pause_bot(bot: ArbitrageBot) -> bool:
    """A bot is auto-paused when its payment failed while it is running."""
    return bot.payment_status == PaymentStatus.FAILED and bot.active


def should_delete_bot(
    bot: ArbitrageBot,
    *,
    inactive_days: int = INACTIVE_DELETE_DAYS,
    now: datetime | None = None,
) -> bool:
    """Check whether a bot has been inactive long enough to be deleted.

    Included bots may stay inactive indefinitely.

    Args:
        bot: The arbitrage bot.
        inactive_days: Days of inactivity after which the bot is deleted.
        now: Reference time (defaults to the current UTC time).

    Returns:
        True if the bot is not included and inactive for at least
        ``inactive_days`` days.
    """
    if bot.is_included_bot:
        return False

    if bot.inactive_since is None:
        return False

    elapsed = (_now(now) - bot.inactive_since).total_seconds() / SECONDS_PER_DAY
    return elapsed >= inactive_days


def calculate_total_monthly_cost(
    bots: Iterable[ArbitrageBot],
    active_passes: Sequence[NftPass],
    *,
    monthly_fee: Decimal = MONTHLY_FEE_SOL,
    now: datetime | None = None,
) -> Decimal:
    """Sum the monthly fees of all bots."""
    return sum(
        (
            calculate_bot_monthly_fee(bot, active_passes, monthly_fee=monthly_fee, now=now)
            for bot in bots
        ),
        Decimal("0"),
    )


@dataclass(frozen=True)
class PaymentSummary:
    """Bot billing overview for one wallet."""

    total_bots: int
    active_bots: int
    included_bots: int
    additional_bots: int
    monthly_cost_sol: Decimal
    has_fee_waiver: bool
    free_bot_slots: int
    next_payment_due: datetime

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "total_bots": self.total_bots,
            "active_bots": self.active_bots,
            "included_bots": self.included_bots,
            "additional_bots": self.additional_bots,
            "monthly_cost_sol": str(self.monthly_cost_sol),
            "has_fee_waiver": self.has_fee_waiver,
            "free_bot_slots": self.free_bot_slots,
            "next_payment_due": self.next_payment_due.isoformat(),
        }


def get_payment_summary(
    bots: Sequence[ArbitrageBot],
    active_passes: Sequence[NftPass],
    *,
    monthly_fee: Decimal = MONTHLY_FEE_SOL,
    now: datetime | None = None,
) -> PaymentSummary:
    """Build a payment summary for a wallet's bots.

    Args:
        bots: All bots owned by the wallet.
        active_passes: NFT passes held by the wallet.
        monthly_fee: Per-bot monthly rate in SOL.
        now: Reference time.

    Returns:
        PaymentSummary with counts, monthly cost and next due date.
    """
    active = [b for b in bots if b.active]
    included = [b for b in active if b.is_included_bot]
    return PaymentSummary(
        total_bots=len(bots),
        active_bots=len(active),
        included_bots=len(included),
        additional_bots=len(active) - len(included),
        monthly_cost_sol=calculate_total_monthly_cost(
            bots, active_passes, monthly_fee=monthly_fee, now=now
        ),
        has_fee_waiver=has_fee_waiver(active_passes, now=now),
        free_bot_slots=get_free_bot_slots(active_passes, now=now),
        next_payment_due=calculate_next_payment_due(now),
    )
