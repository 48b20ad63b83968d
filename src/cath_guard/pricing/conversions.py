"""USD / SOL / CATH conversion helpers."""

from __future__ import annotations

from decimal import Decimal

from cath_guard.exceptions import SupplierError


def convert_usd_to_sol(usd: Decimal, sol_price_in_usd: Decimal) -> Decimal:
    """Convert a USD amount to SOL."""
    if sol_price_in_usd <= 0:
        raise SupplierError("SOL price must be positive to convert USD")
    return usd / sol_price_in_usd


def convert_sol_to_cath(sol: Decimal, cath_price_in_sol: Decimal) -> Decimal:
    """Convert a SOL amount to CATH."""
    if cath_price_in_sol <= 0:
        raise SupplierError("CATH price must be positive to convert SOL")
    return sol / cath_price_in_sol


def convert_usd_to_cath(
    usd: Decimal, sol_price_in_usd: Decimal, cath_price_in_sol: Decimal
) -> Decimal:
    """Convert a USD amount to CATH via SOL."""
    return convert_sol_to_cath(convert_usd_to_sol(usd, sol_price_in_usd), cath_price_in_sol)
