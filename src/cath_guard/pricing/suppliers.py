"""Price suppliers for CATH and SOL.

Quote conventions:
    CATH is quoted in SOL.
    SOL is quoted in USD.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from decimal import Decimal, InvalidOperation
from typing import Protocol

import httpx

from cath_guard.exceptions import SupplierError
from cath_guard.metrics import SUPPLIER_FAILURES_TOTAL
from cath_guard.pricing.cache import PriceCache

logger = logging.getLogger(__name__)

CATH = "CATH"
SOL = "SOL"

MOCK_CATH_PRICE_IN_SOL = Decimal("0.005")
MOCK_SOL_PRICE_IN_USD = Decimal("100")

DEFAULT_JUPITER_URL = "https://api.jup.ag/price/v2"
WRAPPED_SOL_MINT = "So11111111111111111111111111111111111111112"
USDC_MINT = "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


class PriceSupplier(Protocol):
    """Anything that can quote a symbol."""

    async def price(self, symbol: str) -> Decimal: ...


class StaticPriceSupplier:
    """Fixed development prices."""

    def __init__(self, prices: Mapping[str, Decimal] | None = None) -> None:
        self._prices = dict(
            prices
            if prices is not None
            else {CATH: MOCK_CATH_PRICE_IN_SOL, SOL: MOCK_SOL_PRICE_IN_USD}
        )

    async def price(self, symbol: str) -> Decimal:
        try:
            return self._prices[symbol]
        except KeyError:
            raise SupplierError(f"No static price for {symbol}") from None


class JupiterPriceSupplier:
    """Price supplier backed by the Jupiter price API.

    Each symbol maps to a ``(token_mint, vs_token_mint)`` pair. CATH is only
    quotable once its mint address is configured.
    """

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_JUPITER_URL,
        cath_mint: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialize the supplier.

        Args:
            base_url: Jupiter price endpoint.
            cath_mint: Mint address of the CATH token.
            timeout: HTTP request timeout in seconds.
        """
        self.base_url = base_url
        self.timeout = timeout
        self._quotes: dict[str, tuple[str, str]] = {SOL: (WRAPPED_SOL_MINT, USDC_MINT)}
        if cath_mint:
            self._quotes[CATH] = (cath_mint, WRAPPED_SOL_MINT)

    async def price(self, symbol: str) -> Decimal:
        """Fetch the current price of ``symbol``.

        Raises:
            SupplierError: If the symbol is unknown or the response is unusable.
            httpx.HTTPError: On transport failures.
        """
        if symbol not in self._quotes:
            raise SupplierError(f"No Jupiter quote configured for {symbol}")

        mint, vs_token = self._quotes[symbol]
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            response = await client.get(self.base_url, params={"ids": mint, "vsToken": vs_token})
            response.raise_for_status()
            try:
                payload = response.json()
            except ValueError as e:
                raise SupplierError(f"Jupiter response for {symbol} is not JSON") from e

        try:
            return Decimal(str(payload["data"][mint]["price"]))
        except (KeyError, TypeError, InvalidOperation) as e:
            raise SupplierError(f"Malformed Jupiter response for {symbol}") from e


class CachedPriceSupplier:
    """Wraps a supplier with a TTL cache and stale fallback.

    A fresh cache entry is returned without calling the supplier. When the
    supplier fails, the last cached price is returned, or zero when nothing
    was ever cached.
    """

    def __init__(self, supplier: PriceSupplier, cache: PriceCache | None = None) -> None:
        self._supplier = supplier
        self._cache = cache or PriceCache()

    @property
    def cache(self) -> PriceCache:
        return self._cache

    async def price(self, symbol: str) -> Decimal:
        cached = self._cache.get(symbol)
        if cached is not None:
            return cached

        try:
            value = await self._supplier.price(symbol)
        except (SupplierError, httpx.HTTPError) as e:
            SUPPLIER_FAILURES_TOTAL.labels(supplier="price").inc()
            stale = self._cache.get_stale(symbol)
            if stale is not None:
                logger.warning(f"Price fetch for {symbol} failed ({e}), using cached {stale}")
                return stale
            logger.warning(f"Price fetch for {symbol} failed ({e}), no cached price")
            return Decimal("0")

        self._cache.set(symbol, value)
        return value

    async def cath_price_in_sol(self) -> Decimal:
        return await self.price(CATH)

    async def sol_price_in_usd(self) -> Decimal:
        return await self.price(SOL)
