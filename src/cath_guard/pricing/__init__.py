"""Pricing layer - price suppliers, TTL cache and currency conversions."""

from cath_guard.pricing.cache import CachedPrice, PriceCache
from cath_guard.pricing.conversions import (
    convert_sol_to_cath,
    convert_usd_to_cath,
    convert_usd_to_sol,
)
from cath_guard.pricing.suppliers import (
    CATH,
    SOL,
    CachedPriceSupplier,
    JupiterPriceSupplier,
    PriceSupplier,
    StaticPriceSupplier,
)

__all__ = [
    "CATH",
    "CachedPrice",
    "CachedPriceSupplier",
    "JupiterPriceSupplier",
    "PriceCache",
    "PriceSupplier",
    "SOL",
    "StaticPriceSupplier",
    "convert_sol_to_cath",
    "convert_usd_to_cath",
    "convert_usd_to_sol",
]
