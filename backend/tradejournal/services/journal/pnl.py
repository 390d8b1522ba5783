# backend/tradejournal/services/journal/pnl.py
"""
Trade P&L and lifecycle transitions.

P&L formulas (q = quantity):
    gross      long:  (exit - entry) × q      short: (entry - exit) × q
    realized   gross - buy_fees(entry × q) - sell_fees(exit × q)
    unrealized gross at mark - sell_fees(mark × q)

realized is the one canonical P&L: it is what gets stored on a closed trade
and what every report reads back. Entry fees are left out of unrealized P&L
because they are only charged to the position once it is closed.

Transitions are pure: they take a Trade and return new Trade values plus the
HistoryEntry records describing the change. Persisting both is the caller's
job (see TradeService).
"""

import logging
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from tradejournal.models import HistoryAction, TradeSide, TradeStatus
from tradejournal.services.constants import STORAGE_QUANTUM, ZERO
from tradejournal.services.exceptions import BoardLotError, InvalidArgumentError, TradeAlreadyClosedError
from tradejournal.services.journal.board_lot import board_lot, validate_quantity
from tradejournal.services.journal.fees import DEFAULT_FEE_SCHEDULE, FeeSchedule, buy_fees, sell_fees
from tradejournal.services.journal.types import (
    CloseResult,
    HistoryEntry,
    Number,
    PartialCloseResult,
    Trade,
    require_positive,
    utcnow,
)

logger = logging.getLogger(__name__)


# =============================================================================
# P&L FORMULAS
# =============================================================================

def gross_pnl(entry_price: Number, exit_price: Number, quantity: Number, side: TradeSide | str) -> Decimal:
    """
    Price-move P&L ignoring fees.

    Example:
        >>> gross_pnl(100, 110, 10, TradeSide.LONG)
        Decimal('100')
    """
    entry = require_positive(entry_price, "entry_price")
    exit_ = require_positive(exit_price, "exit_price")
    qty = require_positive(quantity, "quantity")
    if TradeSide(side) == TradeSide.LONG:
        return (exit_ - entry) * qty
    return (entry - exit_) * qty


def close_pnl(
        entry_price: Number,
        exit_price: Number,
        quantity: Number,
        side: TradeSide | str,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> Decimal:
    """Fee-adjusted realized P&L of closing `quantity`."""
    gross = gross_pnl(entry_price, exit_price, quantity, side)
    return gross - buy_fees(entry_price, quantity, schedule) - sell_fees(exit_price, quantity, schedule)


def unrealized_pnl(
        entry_price: Number,
        mark_price: Number,
        quantity: Number,
        side: TradeSide | str,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> Decimal:
    """Mark-to-market P&L net of the fees a sale at the mark would pay."""
    gross = gross_pnl(entry_price, mark_price, quantity, side)
    return gross - sell_fees(mark_price, quantity, schedule)


def _stored(value: Decimal) -> Decimal:
    return value.quantize(STORAGE_QUANTUM)


def _details(**values) -> dict:
    """History details with Decimals rendered as strings for JSON storage."""
    return {
        key: str(value) if isinstance(value, Decimal) else value
        for key, value in values.items()
        if value is not None
    }


# =============================================================================
# LIFECYCLE TRANSITIONS
# =============================================================================

def close_trade(
        trade: Trade,
        exit_price: Number,
        exit_date: datetime | None = None,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> CloseResult:
    """
    Close the whole position.

    Raises:
        TradeAlreadyClosedError: If the trade is not open
        InvalidArgumentError: Non-positive exit price or exit before entry
    """
    if not trade.is_open:
        raise TradeAlreadyClosedError(trade.id)

    price = require_positive(exit_price, "exit_price")
    realized = _stored(close_pnl(trade.entry_price, price, trade.quantity, trade.side, schedule))

    closed = replace(
        trade,
        status=TradeStatus.CLOSED,
        exit_price=price,
        exit_date=exit_date or utcnow(),
        realized_pnl=realized,
    )
    entry = HistoryEntry(
        trade_id=trade.id,
        action=HistoryAction.CLOSE,
        details=_details(exit_price=price, quantity=trade.quantity, realized_pnl=realized),
    )
    logger.debug(f"Closed {trade.symbol} x{trade.quantity} @ {price}: realized {realized}")
    return CloseResult(trade=closed, history=[entry])


def partial_close(
        trade: Trade,
        quantity: Number,
        exit_price: Number,
        exit_date: datetime | None = None,
        enforce_board_lot: bool = True,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> PartialCloseResult:
    """
    Close part of an open position.

    The original trade keeps its entry price, entry date, side and symbol
    and only loses quantity. The sold part becomes a new closed trade whose
    parent_id points at the original. Closing the full quantity is a full
    close and returns remaining=None.

    Args:
        trade: Open trade to reduce
        quantity: Quantity to sell, 0 < quantity ≤ trade.quantity
        exit_price: Fill price of the sale
        exit_date: Fill time (defaults to now)
        enforce_board_lot: Require the sold quantity to be a multiple of
                           board_lot(entry_price), the lot the position
                           was bought in
        schedule: Fee rates

    Raises:
        TradeAlreadyClosedError: If the trade is not open
        InvalidArgumentError: Non-positive or oversized quantity
        BoardLotError: Sold quantity off the board lot
    """
    if not trade.is_open:
        raise TradeAlreadyClosedError(trade.id)

    sold = require_positive(quantity, "quantity")
    price = require_positive(exit_price, "exit_price")

    if sold > trade.quantity:
        raise InvalidArgumentError(
            f"Cannot close {sold} of {trade.symbol}: only {trade.quantity} open",
            field="quantity",
        )

    if sold == trade.quantity:
        result = close_trade(trade, price, exit_date, schedule)
        return PartialCloseResult(remaining=None, closed_slice=result.trade, history=result.history)

    remaining_qty = trade.quantity - sold
    if enforce_board_lot:
        lot = board_lot(trade.entry_price)
        if not validate_quantity(sold, lot):
            raise BoardLotError(sold, lot)

    fill_date = exit_date or utcnow()
    realized = _stored(close_pnl(trade.entry_price, price, sold, trade.side, schedule))

    remaining = replace(trade, quantity=remaining_qty)
    closed_slice = replace(
        trade,
        id=None,
        parent_id=trade.id,
        quantity=sold,
        status=TradeStatus.CLOSED,
        exit_price=price,
        exit_date=fill_date,
        realized_pnl=realized,
        current_price=None,
    )

    history = [
        HistoryEntry(
            trade_id=trade.id,
            action=HistoryAction.PARTIAL_CLOSE,
            details=_details(
                sold_quantity=sold,
                remaining_quantity=remaining_qty,
                exit_price=price,
                realized_pnl=realized,
            ),
        ),
        # trade_id is filled in once the slice has been persisted
        HistoryEntry(
            trade_id=None,
            action=HistoryAction.CLOSE,
            details=_details(
                exit_price=price,
                quantity=sold,
                realized_pnl=realized,
                parent_id=trade.id,
            ),
        ),
    ]
    logger.debug(
        f"Partially closed {trade.symbol}: sold {sold} @ {price}, "
        f"{remaining_qty} remaining, realized {realized}"
    )
    return PartialCloseResult(remaining=remaining, closed_slice=closed_slice, history=history)


def add_to_position(
        trade: Trade,
        quantity: Number,
        price: Number,
) -> tuple[Trade, HistoryEntry]:
    """
    Grow an open position, averaging the entry price by quantity.

        new_entry = (entry × q + price × added) / (q + added)

    Raises:
        TradeAlreadyClosedError: If the trade is not open
        InvalidArgumentError: Non-positive quantity or price
    """
    if not trade.is_open:
        raise TradeAlreadyClosedError(trade.id)

    added = require_positive(quantity, "quantity")
    fill_price = require_positive(price, "price")

    total_qty = trade.quantity + added
    average = _stored((trade.entry_price * trade.quantity + fill_price * added) / total_qty)
    if average <= ZERO:
        raise InvalidArgumentError("Averaged entry price rounds to zero", field="price")

    merged = replace(trade, quantity=total_qty, entry_price=average)
    entry = HistoryEntry(
        trade_id=trade.id,
        action=HistoryAction.ADD_POSITION,
        details=_details(
            added_quantity=added,
            price=fill_price,
            previous_entry_price=trade.entry_price,
            new_entry_price=average,
            new_quantity=total_qty,
        ),
    )
    return merged, entry
