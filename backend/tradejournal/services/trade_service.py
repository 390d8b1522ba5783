# backend/tradejournal/services/trade_service.py
"""
Trade Service for the trade lifecycle and its audit history.

This service handles:
- Opening trades (or adding to a matching open position)
- Full and partial closes, with the cash and P&L they release
- Remarks and last-observed prices
- Reading trades and their history

Design Principles:
- The journal core decides WHAT changes (pnl.close_trade, pnl.partial_close,
  pnl.add_to_position); this service only persists the result
- State transitions are conditional updates
  (`WHERE status = 'open' AND quantity = :expected`); losing a race raises
  ConcurrentModificationError instead of silently overwriting
- Cash moves through PortfolioService ledger primitives inside the same
  database transaction as the trade change
- Every transition appends to the trade history

Usage:
    from tradejournal.services.trade_service import TradeService

    service = TradeService()
    record, merged = service.open_trade(db, TradeCreate(...))
    remaining, closed_slice = service.partial_close(db, record.id, Decimal("500"), Decimal("12.50"))
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from tradejournal.config import settings
from tradejournal.models import (
    AssetType,
    HistoryAction,
    Market,
    Portfolio,
    TradeHistory,
    TradeRecord,
    TradeStatus,
)
from tradejournal.schemas.trades import (
    PartialCloseRequest,
    PriceMark,
    TradeCloseRequest,
    TradeCreate,
    TradeRemarkCreate,
)
from tradejournal.services.validation import validate_input
from tradejournal.services.exceptions import (
    ConcurrentModificationError,
    PortfolioNotFoundError,
    ServiceError,
    TradeAlreadyClosedError,
    TradeNotFoundError,
)
from tradejournal.services.journal import (
    FeeSchedule,
    HistoryEntry,
    Trade,
    add_to_position,
    close_trade,
    funded_amount,
    partial_close,
    released_amount,
)
from tradejournal.services.portfolio_service import PortfolioService

logger = logging.getLogger(__name__)


# =============================================================================
# HISTORY SINK
# =============================================================================

class SqlHistorySink:
    """HistorySink that stages entries in a session (the caller commits)."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def append(self, entries: Iterable[HistoryEntry]) -> None:
        for entry in entries:
            self._db.add(TradeHistory(
                trade_id=entry.trade_id,
                action=entry.action,
                details=entry.details,
                created_at=entry.created_at,
            ))


# =============================================================================
# SERVICE
# =============================================================================

class TradeService:
    """
    Service for opening, closing and annotating trades.

    Public methods that write commit on success and roll back on failure.
    """

    def __init__(
            self,
            schedule: FeeSchedule | None = None,
            portfolio_service: PortfolioService | None = None,
    ) -> None:
        self._schedule = schedule or FeeSchedule.from_settings(settings)
        self._portfolios = portfolio_service or PortfolioService(schedule=self._schedule)

    # =========================================================================
    # READS
    # =========================================================================

    def get_trade(self, db: Session, trade_id: int) -> TradeRecord:
        """
        Raises:
            TradeNotFoundError: If the trade does not exist
        """
        record = db.get(TradeRecord, trade_id)
        if record is None:
            raise TradeNotFoundError(trade_id)
        return record

    def list_trades(
            self,
            db: Session,
            portfolio_id: int,
            status: TradeStatus | str | None = None,
    ) -> list[TradeRecord]:
        """Trades of a portfolio by entry date, optionally filtered by status."""
        self._portfolios.get_portfolio(db, portfolio_id)

        stmt = select(TradeRecord).where(TradeRecord.portfolio_id == portfolio_id)
        if status is not None:
            stmt = stmt.where(TradeRecord.status == TradeStatus(status))
        return list(db.scalars(stmt.order_by(TradeRecord.entry_date, TradeRecord.id)))

    def get_closed_trades(self, db: Session, portfolio_id: int) -> list[Trade]:
        """Closed trades as journal values, ready for the performance functions."""
        return [
            Trade.from_record(record)
            for record in self.list_trades(db, portfolio_id, TradeStatus.CLOSED)
        ]

    def get_history(self, db: Session, trade_id: int) -> list[TradeHistory]:
        """
        Audit log of a trade, oldest first.

        Raises:
            TradeNotFoundError: If the trade does not exist
        """
        self.get_trade(db, trade_id)
        return list(db.scalars(
            select(TradeHistory)
            .where(TradeHistory.trade_id == trade_id)
            .order_by(TradeHistory.id)
        ))

    # =========================================================================
    # OPEN
    # =========================================================================

    def open_trade(self, db: Session, data: TradeCreate) -> tuple[TradeRecord, bool]:
        """
        Open a trade, funding it from the portfolio's cash.

        If the portfolio already holds an open trade with the same symbol and
        side, the fill is added to it at a quantity-weighted average entry
        price instead of creating a second open trade.

        Returns:
            (trade record, True if merged into an existing position)

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            InsufficientCashError: If cash cannot cover notional plus buy fees
            ConcurrentModificationError: The matching position changed meanwhile
        """
        if db.get(Portfolio, data.portfolio_id) is None:
            raise PortfolioNotFoundError(data.portfolio_id)

        trade = Trade.open(
            symbol=data.symbol,
            side=data.side,
            entry_price=data.entry_price,
            quantity=data.quantity,
            entry_date=data.entry_date,
            portfolio_id=data.portfolio_id,
            asset_type=data.asset_type,
            market=data.market,
            strategy=data.strategy,
            notes=data.notes,
            stop_loss=data.stop_loss,
            take_profit=data.take_profit,
        )
        funded = funded_amount(trade, self._schedule)
        sink = SqlHistorySink(db)

        try:
            self._portfolios.debit_cash(db, trade.portfolio_id, funded)

            existing = db.scalar(
                select(TradeRecord)
                .where(
                    TradeRecord.portfolio_id == trade.portfolio_id,
                    TradeRecord.symbol == trade.symbol,
                    TradeRecord.side == trade.side,
                    TradeRecord.status == TradeStatus.OPEN,
                )
                .order_by(TradeRecord.id)
                .limit(1)
            )

            if existing is not None:
                record = self._merge_into(db, existing, trade, sink)
                merged = True
            else:
                record = self._insert(db, trade)
                sink.append([HistoryEntry(
                    trade_id=record.id,
                    action=HistoryAction.OPEN,
                    details={
                        "entry_price": str(trade.entry_price),
                        "quantity": str(trade.quantity),
                        "funded_amount": str(funded),
                    },
                )])
                merged = False

            db.commit()
        except ServiceError:
            db.rollback()
            raise

        db.refresh(record)
        logger.info(
            f"{'Added to' if merged else 'Opened'} {trade.side.value} {trade.symbol} "
            f"x{trade.quantity} @ {trade.entry_price} (trade {record.id}, funded {funded})"
        )
        return record, merged

    def _merge_into(self, db: Session, existing: TradeRecord, fill: Trade, sink: SqlHistorySink) -> TradeRecord:
        current = Trade.from_record(existing)
        merged, entry = add_to_position(current, fill.quantity, fill.entry_price)

        result = db.execute(
            update(TradeRecord)
            .where(
                TradeRecord.id == existing.id,
                TradeRecord.status == TradeStatus.OPEN,
                TradeRecord.quantity == current.quantity,
            )
            .values(quantity=merged.quantity, entry_price=merged.entry_price)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise ConcurrentModificationError("Trade", existing.id)

        sink.append([entry])
        return existing

    def _insert(self, db: Session, trade: Trade) -> TradeRecord:
        record = TradeRecord(
            portfolio_id=trade.portfolio_id,
            parent_id=trade.parent_id,
            symbol=trade.symbol,
            side=trade.side,
            status=trade.status,
            asset_type=trade.asset_type,
            market=trade.market,
            entry_price=trade.entry_price,
            quantity=trade.quantity,
            entry_date=trade.entry_date,
            exit_price=trade.exit_price,
            exit_date=trade.exit_date,
            realized_pnl=trade.realized_pnl,
            current_price=trade.current_price,
            strategy=trade.strategy,
            notes=trade.notes,
            stop_loss=trade.stop_loss,
            take_profit=trade.take_profit,
        )
        db.add(record)
        db.flush()
        return record

    # =========================================================================
    # CLOSE
    # =========================================================================

    def close_trade(
            self,
            db: Session,
            trade_id: int,
            exit_price: Decimal | int | str,
            exit_date: datetime | None = None,
    ) -> TradeRecord:
        """
        Close the whole position and credit the released cash.

        Raises:
            TradeNotFoundError: If the trade does not exist
            TradeAlreadyClosedError: If the trade is already closed
            InvalidArgumentError: Non-positive exit price, exit before entry
            ConcurrentModificationError: The trade changed meanwhile
        """
        request = validate_input(TradeCloseRequest, exit_price=exit_price, exit_date=exit_date)
        record = self.get_trade(db, trade_id)
        current = Trade.from_record(record)

        result = close_trade(current, request.exit_price, request.exit_date, self._schedule)

        try:
            self._persist_full_close(db, current, result.trade, result.history)
            db.commit()
        except ServiceError:
            db.rollback()
            raise

        db.refresh(record)
        logger.info(
            f"Closed trade {trade_id} ({current.symbol}) @ {request.exit_price}: "
            f"realized {result.trade.realized_pnl}"
        )
        return record

    def partial_close(
            self,
            db: Session,
            trade_id: int,
            quantity: Decimal | int | str,
            exit_price: Decimal | int | str,
            exit_date: datetime | None = None,
    ) -> tuple[TradeRecord | None, TradeRecord]:
        """
        Sell part of a position.

        The trade keeps its entry price and date with a reduced quantity; the
        sold quantity becomes a new closed trade pointing back at it. Selling
        the whole quantity is a full close. Board lots are enforced for PSE
        stocks (asset_type stocks, market PH), using the lot of the entry price.

        Returns:
            (remaining open trade or None on a full close, closed trade)

        Raises:
            TradeNotFoundError: If the trade does not exist
            TradeAlreadyClosedError: If the trade is already closed
            InvalidArgumentError: Non-positive or oversized quantity
            BoardLotError: Sold quantity off the lot of the entry price
            ConcurrentModificationError: The trade changed meanwhile
        """
        request = validate_input(
            PartialCloseRequest,
            quantity=quantity,
            exit_price=exit_price,
            exit_date=exit_date,
        )
        record = self.get_trade(db, trade_id)
        current = Trade.from_record(record)

        enforce_lots = current.asset_type == AssetType.STOCKS and current.market == Market.PH
        result = partial_close(
            current,
            request.quantity,
            request.exit_price,
            request.exit_date,
            enforce_board_lot=enforce_lots,
            schedule=self._schedule,
        )

        try:
            if result.is_full_close:
                self._persist_full_close(db, current, result.closed_slice, result.history)
                slice_record = record
            else:
                slice_record = self._persist_partial_close(
                    db, current, result.remaining, result.closed_slice, result.history
                )
            db.commit()
        except ServiceError:
            db.rollback()
            raise

        db.refresh(record)
        logger.info(
            f"Partially closed trade {trade_id} ({current.symbol}): sold {request.quantity} "
            f"@ {request.exit_price}, realized {result.closed_slice.realized_pnl}"
        )
        if result.is_full_close:
            return None, record

        db.refresh(slice_record)
        return record, slice_record

    def _persist_full_close(
            self,
            db: Session,
            current: Trade,
            closed: Trade,
            history: list[HistoryEntry],
    ) -> None:
        result = db.execute(
            update(TradeRecord)
            .where(
                TradeRecord.id == current.id,
                TradeRecord.status == TradeStatus.OPEN,
                TradeRecord.quantity == current.quantity,
            )
            .values(
                status=TradeStatus.CLOSED,
                exit_price=closed.exit_price,
                exit_date=closed.exit_date,
                realized_pnl=closed.realized_pnl,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._raise_lost_race(db, current.id)

        self._portfolios.credit_trade_close(
            db,
            current.portfolio_id,
            released_amount(closed, self._schedule),
            closed.realized_pnl,
        )
        SqlHistorySink(db).append(history)

    def _persist_partial_close(
            self,
            db: Session,
            current: Trade,
            remaining: Trade,
            closed_slice: Trade,
            history: list[HistoryEntry],
    ) -> TradeRecord:
        result = db.execute(
            update(TradeRecord)
            .where(
                TradeRecord.id == current.id,
                TradeRecord.status == TradeStatus.OPEN,
                TradeRecord.quantity == current.quantity,
            )
            .values(quantity=remaining.quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            self._raise_lost_race(db, current.id)

        slice_record = self._insert(db, closed_slice)
        self._portfolios.credit_trade_close(
            db,
            current.portfolio_id,
            released_amount(closed_slice, self._schedule),
            closed_slice.realized_pnl,
        )

        parent_entry, slice_entry = history
        SqlHistorySink(db).append([
            replace(parent_entry, details={**parent_entry.details, "slice_id": slice_record.id}),
            replace(slice_entry, trade_id=slice_record.id),
        ])
        return slice_record

    def _raise_lost_race(self, db: Session, trade_id: int) -> None:
        status = db.scalar(select(TradeRecord.status).where(TradeRecord.id == trade_id))
        if status is None:
            raise TradeNotFoundError(trade_id)
        if status == TradeStatus.CLOSED:
            raise TradeAlreadyClosedError(trade_id)
        raise ConcurrentModificationError("Trade", trade_id)

    # =========================================================================
    # ANNOTATIONS
    # =========================================================================

    def add_remark(self, db: Session, trade_id: int, content: str) -> HistoryEntry:
        """
        Append a free-text remark to a trade's history.

        Raises:
            TradeNotFoundError: If the trade does not exist
            InvalidArgumentError: Blank remark
        """
        data = validate_input(TradeRemarkCreate, content=content)
        self.get_trade(db, trade_id)

        entry = HistoryEntry(
            trade_id=trade_id,
            action=HistoryAction.ADD_REMARK,
            details={"content": data.content},
        )
        SqlHistorySink(db).append([entry])
        db.commit()
        return entry

    def mark_price(self, db: Session, trade_id: int, price: Decimal | int | str) -> TradeRecord:
        """
        Record the last observed market price of an open trade.

        The stored price is a display fallback for valuation, never ground
        truth: it is only used when no live price is available.

        Raises:
            TradeNotFoundError: If the trade does not exist
            TradeAlreadyClosedError: If the trade is closed
            InvalidArgumentError: Non-positive price
        """
        data = validate_input(PriceMark, price=price)
        record = self.get_trade(db, trade_id)

        result = db.execute(
            update(TradeRecord)
            .where(TradeRecord.id == trade_id, TradeRecord.status == TradeStatus.OPEN)
            .values(current_price=data.price)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            db.rollback()
            raise TradeAlreadyClosedError(trade_id)

        SqlHistorySink(db).append([HistoryEntry(
            trade_id=trade_id,
            action=HistoryAction.UPDATE_PRICE,
            details={"price": str(data.price)},
        )])
        db.commit()
        db.refresh(record)
        return record
