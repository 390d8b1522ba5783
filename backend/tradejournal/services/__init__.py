# backend/tradejournal/services/__init__.py
"""
Service layer for business logic.

Services:
- Have NO knowledge of any transport (no HTTP, no CLI parsing)
- Raise domain-specific exceptions
- Receive database sessions as parameters
- Are easily testable via dependency injection

Usage:
    from tradejournal.services import PortfolioService, TradeService
    from tradejournal.services import calculate_performance, export_trades_csv
    from tradejournal.services import (
        TradeAlreadyClosedError,
        InsufficientCashError,
        BoardLotError,
    )

Architecture:
    services/
    ├── __init__.py              # This file - main exports
    ├── exceptions.py            # Domain exceptions
    ├── constants.py             # Business constants and limits
    ├── protocols.py             # Price lookup / history sink interfaces
    ├── pricing.py               # TTL price cache and cached lookup
    ├── portfolio_service.py     # Portfolios, cash ledger, summaries
    ├── trade_service.py         # Trade lifecycle persistence
    ├── performance.py           # Statistics, equity curve, breakdowns
    ├── export.py                # CSV export of trades
    └── journal/                 # Pure domain core (no database)
        ├── types.py             # Trade, Transaction, ledger, result types
        ├── fees.py              # Commission / VAT / tax schedule
        ├── board_lot.py         # Exchange lot sizes
        ├── pnl.py               # Close, partial close, averaging in
        ├── calculators.py       # Open position and portfolio reducers
        └── ledger.py            # Cash ledger arithmetic
"""

# Exceptions
from tradejournal.services.exceptions import (
    ServiceError,
    InvalidArgumentError,
    BoardLotError,
    InconsistentStateError,
    TradeAlreadyClosedError,
    InsufficientCashError,
    ConcurrentModificationError,
    NotFoundError,
    PortfolioNotFoundError,
    TradeNotFoundError,
    TransactionNotFoundError,
)
# Export
from tradejournal.services.export import EXPORT_COLUMNS, export_trades_csv
# Performance
from tradejournal.services.performance import (
    PerformanceReport,
    TradeStatistics,
    calculate_performance,
    calculate_trade_statistics,
    key_metrics,
)
# Services
from tradejournal.services.portfolio_service import PortfolioService
# Pricing
from tradejournal.services.pricing import CachedPriceLookup, MappingPriceLookup, PriceCache
from tradejournal.services.protocols import HistorySink, PriceLookup, PriceProvider
from tradejournal.services.trade_service import SqlHistorySink, TradeService

__all__ = [
    # ==========================================================================
    # Services
    # ==========================================================================
    "PortfolioService",
    "TradeService",
    "SqlHistorySink",
    # Pricing
    "PriceLookup",
    "PriceProvider",
    "HistorySink",
    "PriceCache",
    "CachedPriceLookup",
    "MappingPriceLookup",
    # Performance
    "PerformanceReport",
    "TradeStatistics",
    "calculate_performance",
    "calculate_trade_statistics",
    "key_metrics",
    # Export
    "EXPORT_COLUMNS",
    "export_trades_csv",

    # ==========================================================================
    # Exceptions
    # ==========================================================================
    "ServiceError",
    "InvalidArgumentError",
    "BoardLotError",
    "InconsistentStateError",
    "TradeAlreadyClosedError",
    "InsufficientCashError",
    "ConcurrentModificationError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "TradeNotFoundError",
    "TransactionNotFoundError",
]
