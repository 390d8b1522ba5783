# backend/tradejournal/services/export.py
"""
CSV export of journal trades.

Columns:
    Date, Symbol, Side, Status, Entry Price, Exit Price, Quantity,
    Stop Loss, Take Profit, Strategy, P&L, Notes

Date is the entry date (ISO 8601). P&L is the stored fee-adjusted realized
P&L rounded to cents, blank for open trades. Quoting follows the csv module
defaults, so notes with commas, quotes or newlines survive a round trip.
"""

import csv
import io
import logging
from collections.abc import Iterable
from decimal import Decimal

from tradejournal.services.constants import MONEY_QUANTUM
from tradejournal.services.journal.types import Trade

logger = logging.getLogger(__name__)

EXPORT_COLUMNS: tuple[str, ...] = (
    "Date",
    "Symbol",
    "Side",
    "Status",
    "Entry Price",
    "Exit Price",
    "Quantity",
    "Stop Loss",
    "Take Profit",
    "Strategy",
    "P&L",
    "Notes",
)


def _number(value: Decimal | None) -> str:
    if value is None:
        return ""
    return format(value.normalize(), "f")


def _row(trade: Trade) -> list[str]:
    pnl = "" if trade.realized_pnl is None else str(trade.realized_pnl.quantize(MONEY_QUANTUM))
    return [
        trade.entry_date.isoformat(),
        trade.symbol,
        trade.side.value,
        trade.status.value,
        _number(trade.entry_price),
        _number(trade.exit_price),
        _number(trade.quantity),
        _number(trade.stop_loss),
        _number(trade.take_profit),
        trade.strategy or "",
        pnl,
        trade.notes or "",
    ]


def export_trades_csv(trades: Iterable[Trade]) -> str:
    """
    Render trades as CSV text with a header row, in the order given.

    Args:
        trades: Trades to export (open and closed)

    Returns:
        CSV document using "\\n" line endings
    """
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(EXPORT_COLUMNS)

    count = 0
    for trade in trades:
        writer.writerow(_row(trade))
        count += 1

    logger.debug(f"Exported {count} trades to CSV")
    return out.getvalue()
