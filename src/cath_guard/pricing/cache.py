"""Time-to-live price cache with an injectable clock."""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from decimal import Decimal

DEFAULT_PRICE_TTL_SECONDS = 60.0

Clock = Callable[[], float]


@dataclass(frozen=True)
class CachedPrice:
    """A price together with the clock reading at which it was stored."""

    value: Decimal
    updated_at: float


class PriceCache:
    """Per-symbol price cache.

    Entries are fresh for ``ttl_seconds`` after they are stored. Stale entries
    are kept so callers can fall back to them when a refresh fails.

    Example:
        ```python
        cache = PriceCache(ttl_seconds=60)
        cache.set("CATH", Decimal("0.005"))
        cache.get("CATH")  # Decimal("0.005") until the TTL elapses
        ```
    """

    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_PRICE_TTL_SECONDS,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialize the cache.

        Args:
            ttl_seconds: Seconds an entry stays fresh.
            clock: Monotonic time source in seconds.
        """
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CachedPrice] = {}

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, symbol: str) -> Decimal | None:
        """Return the cached price if it is still fresh, else None."""
        entry = self._entries.get(symbol)
        if entry is None:
            return None
        if self._clock() - entry.updated_at < self._ttl:
            return entry.value
        return None

    def get_stale(self, symbol: str) -> Decimal | None:
        """Return the last stored price regardless of age."""
        entry = self._entries.get(symbol)
        return entry.value if entry else None

    def set(self, symbol: str, value: Decimal) -> None:
        """Store a price stamped with the current clock reading."""
        self._entries[symbol] = CachedPrice(value=value, updated_at=self._clock())

    def clear(self) -> None:
        self._entries.clear()
