# backend/tradejournal/services/pricing.py
"""
Latest-price lookups for open position valuation.

- PriceCache: Thread-safe, bounded, TTL cache of the last fetched prices
- CachedPriceLookup: PriceLookup over a PriceProvider, backed by a PriceCache
- MappingPriceLookup: PriceLookup over a fixed symbol → price mapping

The cache is owned by whoever builds the lookup; nothing here is a module
global. A failing provider never fails valuation: CachedPriceLookup falls
back to the last cached value (however old) and finally to None, which the
aggregator turns into a last-known/entry price estimate.

Usage:
    cache = PriceCache(ttl_seconds=settings.price_cache_ttl_seconds)
    lookup = CachedPriceLookup(provider, cache)
    summary = portfolio_service.get_summary(db, portfolio_id, price_lookup=lookup)
"""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from decimal import Decimal

from tradejournal.services.constants import DEFAULT_PRICE_CACHE_TTL_SECONDS
from tradejournal.services.journal.types import as_price
from tradejournal.services.protocols import PriceProvider

logger = logging.getLogger(__name__)

# Upper bound on distinct symbols held by one cache
PRICE_CACHE_MAX_SIZE = 5000


def _normalize_symbol(symbol: str) -> str:
    return symbol.strip().upper()


@dataclass(frozen=True)
class CachedPrice:
    """A cached price and the time (seconds since epoch) it was stored."""
    value: Decimal
    timestamp: float

    def age(self, now: float) -> float:
        return now - self.timestamp


class PriceCache:
    """
    Thread-safe bounded cache of latest prices with a freshness window.

    Entries older than ttl_seconds are not returned by get() but are kept
    for get_stale(). Evicts least-recently-written symbols once maxsize is
    reached.
    """

    def __init__(
            self,
            ttl_seconds: float = DEFAULT_PRICE_CACHE_TTL_SECONDS,
            clock: Callable[[], float] = time.time,
            maxsize: int = PRICE_CACHE_MAX_SIZE,
    ) -> None:
        """
        Initialize the cache.

        Args:
            ttl_seconds: Freshness window of a cached price
            clock: Time source in seconds (injectable for tests)
            maxsize: Maximum number of symbols to keep
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
        self._ttl = ttl_seconds
        self._clock = clock
        self._maxsize = maxsize
        self._cache: OrderedDict[str, CachedPrice] = OrderedDict()
        self._lock = threading.Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, symbol: str, now: float | None = None) -> CachedPrice | None:
        """Return the cached price if it is still fresh."""
        current = self._clock() if now is None else now
        with self._lock:
            entry = self._cache.get(_normalize_symbol(symbol))
        if entry is None or entry.age(current) >= self._ttl:
            return None
        return entry

    def get_stale(self, symbol: str) -> CachedPrice | None:
        """Return the cached price regardless of age."""
        with self._lock:
            return self._cache.get(_normalize_symbol(symbol))

    def set(self, symbol: str, value: Decimal, timestamp: float | None = None) -> None:
        """Store a price, evicting the oldest symbol if at capacity."""
        key = _normalize_symbol(symbol)
        entry = CachedPrice(value=value, timestamp=self._clock() if timestamp is None else timestamp)
        with self._lock:
            if key in self._cache:
                self._cache.move_to_end(key)
            elif len(self._cache) >= self._maxsize:
                self._cache.popitem(last=False)
            self._cache[key] = entry

    def clear(self) -> None:
        """Clear all entries from the cache."""
        with self._lock:
            self._cache.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def __contains__(self, symbol: str) -> bool:
        with self._lock:
            return _normalize_symbol(symbol) in self._cache


class CachedPriceLookup:
    """
    PriceLookup that consults a provider at most once per TTL window.

    Resolution order for get_price(symbol):
        1. fresh cache entry
        2. provider.get_price(symbol), cached on success
        3. stale cache entry (provider returned nothing or raised)
        4. None
    """

    def __init__(self, provider: PriceProvider, cache: PriceCache | None = None) -> None:
        self._provider = provider
        self._cache = cache if cache is not None else PriceCache()

    @property
    def cache(self) -> PriceCache:
        return self._cache

    def get_price(self, symbol: str) -> Decimal | None:
        fresh = self._cache.get(symbol)
        if fresh is not None:
            return fresh.value

        try:
            price = as_price(self._provider.get_price(symbol))
        except Exception as e:
            logger.warning(f"Price provider failed for {symbol}: {e}")
            price = None

        if price is not None:
            self._cache.set(symbol, price)
            return price

        stale = self._cache.get_stale(symbol)
        if stale is not None:
            logger.debug(f"Using stale price for {symbol} ({stale.value})")
            return stale.value
        return None


class MappingPriceLookup:
    """PriceLookup over a fixed mapping; symbols are matched case-insensitively."""

    def __init__(self, prices: Mapping[str, Decimal | int | str]) -> None:
        self._prices: dict[str, Decimal] = {}
        for symbol, value in prices.items():
            price = as_price(value)
            if price is not None:
                self._prices[_normalize_symbol(symbol)] = price

    def get_price(self, symbol: str) -> Decimal | None:
        return self._prices.get(_normalize_symbol(symbol))
