"""Billing layer - bot fees, transaction fees and payment lifecycle predicates."""

from cath_guard.billing.fees import (
    DEFAULT_INCLUDED_BOTS,
    INACTIVE_DELETE_DAYS,
    MONTHLY_FEE_SOL,
    TRANSACTION_FEE_PERCENT,
    PaymentSummary,
    calculate_bot_monthly_fee,
    calculate_next_payment_due,
    calculate_total_monthly_cost,
    calculate_transaction_fee,
    get_free_bot_slots,
    get_payment_summary,
    has_fee_waiver,
    is_pass_valid,
    should_auto_pause_bot,
    should_delete_bot,
)

__all__ = [
    "DEFAULT_INCLUDED_BOTS",
    "INACTIVE_DELETE_DAYS",
    "MONTHLY_FEE_SOL",
    "PaymentSummary",
    "TRANSACTION_FEE_PERCENT",
    "calculate_bot_monthly_fee",
    "calculate_next_payment_due",
    "calculate_total_monthly_cost",
    "calculate_transaction_fee",
    "get_free_bot_slots",
    "get_payment_summary",
    "has_fee_waiver",
    "is_pass_valid",
    "should_auto_pause_bot",
    "should_delete_bot",
]
