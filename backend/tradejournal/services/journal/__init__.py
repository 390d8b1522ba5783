# backend/tradejournal/services/journal/__init__.py
"""
Journal calculation core.

Pure, storage-free computations for a trading journal:
- Fees of a buy or sell fill (compute_fees)
- Board lot rules (board_lot, validate_quantity, round_down_to_lot)
- Trade P&L and lifecycle transitions (close_trade, partial_close)
- Open position valuation (aggregate_open_positions)
- Portfolio equity summary (reduce_portfolio)
- Cash ledger bookkeeping (apply_transaction, apply_trade_open, ...)

Usage:
    from tradejournal.services.journal import Trade, close_trade

    trade = Trade.open("BDO", "long", Decimal("140"), Decimal("100"))
    result = close_trade(trade, Decimal("150"))
    result.trade.realized_pnl

Architecture:
    journal/
    ├── __init__.py      # This file - package exports
    ├── types.py         # Trade, Transaction, ledger and result dataclasses
    ├── fees.py          # Fee schedule and fee breakdown
    ├── board_lot.py     # Lot size table and quantity rounding
    ├── pnl.py           # P&L formulas and trade transitions
    ├── calculators.py   # PositionAggregator, PortfolioReducer
    └── ledger.py        # Cash ledger updates

Data Flow:
    Trade (open) → close_trade / partial_close → Trade (closed) + HistoryEntry
    Open Trades + PriceLookup → PositionAggregator → OpenPositionsSummary
    Ledger + Trades + Transactions → PortfolioReducer → PortfolioSummary
"""

from tradejournal.services.journal.board_lot import (
    board_lot,
    minimum_investment,
    round_down_to_lot,
    round_up_to_lot,
    validate_quantity,
)
from tradejournal.services.journal.calculators import (
    PortfolioReducer,
    PositionAggregator,
    aggregate_open_positions,
    reduce_portfolio,
)
from tradejournal.services.journal.fees import (
    DEFAULT_FEE_SCHEDULE,
    FeeSchedule,
    compute_fees,
    round_trip_fees,
)
from tradejournal.services.journal.ledger import (
    apply_trade_close,
    apply_trade_open,
    apply_transaction,
    funded_amount,
    released_amount,
    reversal_of,
)
from tradejournal.services.journal.pnl import (
    add_to_position,
    close_pnl,
    close_trade,
    gross_pnl,
    partial_close,
    unrealized_pnl,
)
from tradejournal.services.journal.types import (
    AllocationEntry,
    CloseResult,
    FeeBreakdown,
    HistoryEntry,
    OpenPositionsSummary,
    PartialCloseResult,
    PortfolioLedger,
    PortfolioSummary,
    PositionValuation,
    PriceSource,
    Trade,
    Transaction,
)

__all__ = [
    # Types
    "Trade",
    "Transaction",
    "PortfolioLedger",
    "HistoryEntry",
    "FeeBreakdown",
    "PositionValuation",
    "OpenPositionsSummary",
    "AllocationEntry",
    "PortfolioSummary",
    "CloseResult",
    "PartialCloseResult",
    "PriceSource",
    # Fees
    "FeeSchedule",
    "DEFAULT_FEE_SCHEDULE",
    "compute_fees",
    "round_trip_fees",
    # Board lots
    "board_lot",
    "validate_quantity",
    "round_down_to_lot",
    "round_up_to_lot",
    "minimum_investment",
    # P&L
    "gross_pnl",
    "close_pnl",
    "unrealized_pnl",
    "close_trade",
    "partial_close",
    "add_to_position",
    # Calculators
    "PositionAggregator",
    "PortfolioReducer",
    "aggregate_open_positions",
    "reduce_portfolio",
    # Ledger
    "apply_transaction",
    "apply_trade_open",
    "apply_trade_close",
    "funded_amount",
    "released_amount",
    "reversal_of",
]
