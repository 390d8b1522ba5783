# backend/tradejournal/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- Existing classes satisfy protocols without modification
- Test doubles work without explicit inheritance
- The calculation core never imports a concrete price source or store
"""

from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal
from typing import Protocol, TYPE_CHECKING, runtime_checkable

if TYPE_CHECKING:
    from tradejournal.services.journal.types import HistoryEntry


@runtime_checkable
class PriceLookup(Protocol):
    """
    Read-only source of the latest known price per symbol.

    Required by the position aggregator. Returns None when no price is
    known; implementations must not raise for a missing symbol.
    """

    def get_price(self, symbol: str) -> Decimal | None:
        ...


class PriceProvider(Protocol):
    """
    Upstream market data feed wrapped by CachedPriceLookup.

    May raise or return None on failure; the wrapper absorbs both.
    """

    def get_price(self, symbol: str) -> Decimal | None:
        ...


class HistorySink(Protocol):
    """Append-only destination for trade history entries."""

    def append(self, entries: Iterable[HistoryEntry]) -> None:
        ...
