# backend/tests/services/test_trade_service.py
"""
Integration tests for TradeService.

Uses the in-memory SQLite session from conftest and the default fee
schedule, so every cash figure below can be checked by hand:

    open 1,000 BDO @ 140   funded 140,000 + 427 buy fees
    close @ 150            realized 10,000 - 427 - 1,357.50 = 8,215.50

Test Coverage:
- open_trade: funding, merging into an open position, insufficient cash
- close_trade / partial_close: ledger credits, slices, board lots, history
- Conditional updates losing a race
- Remarks and price marks
"""

from dataclasses import replace
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from tests.conftest import days_after
from tradejournal.models import AssetType, HistoryAction, Market, TradeSide, TradeStatus
from tradejournal.schemas import TradeCreate
from tradejournal.services.exceptions import (
    BoardLotError,
    ConcurrentModificationError,
    InsufficientCashError,
    InvalidArgumentError,
    PortfolioNotFoundError,
    TradeAlreadyClosedError,
    TradeNotFoundError,
)
from tradejournal.services.journal import Trade, close_trade


def open_bdo(db, trade_service, portfolio, **overrides):
    data = {
        "portfolio_id": portfolio.id,
        "symbol": "BDO",
        "entry_price": Decimal("140"),
        "quantity": Decimal("1000"),
        "entry_date": days_after(0),
        **overrides,
    }
    return trade_service.open_trade(db, TradeCreate(**data))


# =============================================================================
# OPEN
# =============================================================================

class TestOpenTrade:
    """Tests for open_trade."""

    def test_open_funds_trade_from_cash(self, db, trade_service, portfolio_service, sample_portfolio):
        record, merged = open_bdo(db, trade_service, sample_portfolio, strategy="Breakout")

        assert merged is False
        assert record.id is not None
        assert record.status == TradeStatus.OPEN
        assert record.side == TradeSide.LONG
        assert record.entry_price == Decimal("140")
        assert record.strategy == "Breakout"

        ledger = portfolio_service.get_ledger(db, sample_portfolio.id)
        assert ledger.available_cash == Decimal("359573")
        assert ledger.current_balance == Decimal("500000")

    def test_open_writes_history(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)

        history = trade_service.get_history(db, record.id)
        assert [h.action for h in history] == [HistoryAction.OPEN]
        assert Decimal(history[0].details["funded_amount"]) == Decimal("140427")

    def test_same_symbol_and_side_merges(self, db, trade_service, portfolio_service, sample_portfolio):
        first, _ = open_bdo(db, trade_service, sample_portfolio)
        second, merged = open_bdo(db, trade_service, sample_portfolio, entry_price=Decimal("150"))

        assert merged is True
        assert second.id == first.id
        assert second.quantity == Decimal("2000")
        assert second.entry_price == Decimal("145")
        assert len(trade_service.list_trades(db, sample_portfolio.id)) == 1

        actions = [h.action for h in trade_service.get_history(db, first.id)]
        assert actions == [HistoryAction.OPEN, HistoryAction.ADD_POSITION]

        ledger = portfolio_service.get_ledger(db, sample_portfolio.id)
        assert ledger.available_cash == Decimal("209115.5")

    def test_opposite_side_opens_separate_trade(self, db, trade_service, sample_portfolio):
        open_bdo(db, trade_service, sample_portfolio)
        _, merged = open_bdo(db, trade_service, sample_portfolio, side="short", quantity=Decimal("100"))

        assert merged is False
        assert len(trade_service.list_trades(db, sample_portfolio.id)) == 2

    def test_insufficient_cash_leaves_nothing_behind(self, db, trade_service, portfolio_service):
        portfolio = portfolio_service.create_portfolio(db, "Small", Decimal("1000"))

        with pytest.raises(InsufficientCashError):
            trade_service.open_trade(db, TradeCreate(
                portfolio_id=portfolio.id, symbol="MEG",
                entry_price=Decimal("10"), quantity=Decimal("100"),
            ))

        assert trade_service.list_trades(db, portfolio.id) == []
        assert portfolio_service.get_ledger(db, portfolio.id).available_cash == Decimal("1000")

    def test_missing_portfolio(self, db, trade_service):
        with pytest.raises(PortfolioNotFoundError):
            trade_service.open_trade(db, TradeCreate(
                portfolio_id=999, symbol="BDO", entry_price=Decimal("1"), quantity=Decimal("1"),
            ))


# =============================================================================
# CLOSE
# =============================================================================

class TestCloseTrade:
    """Tests for close_trade."""

    def test_close_credits_cash_and_books_pnl(self, db, trade_service, portfolio_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        closed = trade_service.close_trade(db, record.id, Decimal("150"), days_after(10))

        assert closed.status == TradeStatus.CLOSED
        assert closed.exit_price == Decimal("150")
        assert closed.realized_pnl == Decimal("8215.5")

        ledger = portfolio_service.get_ledger(db, sample_portfolio.id)
        assert ledger.available_cash == Decimal("508215.5")
        assert ledger.current_balance == Decimal("508215.5")
        assert ledger.realized_pnl == Decimal("8215.5")

    def test_close_appends_history(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        trade_service.close_trade(db, record.id, Decimal("150"), days_after(10))

        actions = [h.action for h in trade_service.get_history(db, record.id)]
        assert actions == [HistoryAction.OPEN, HistoryAction.CLOSE]

    def test_close_twice_fails(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        trade_service.close_trade(db, record.id, Decimal("150"), days_after(10))

        with pytest.raises(TradeAlreadyClosedError):
            trade_service.close_trade(db, record.id, Decimal("160"), days_after(11))

    def test_invalid_exit_price(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)

        with pytest.raises(InvalidArgumentError):
            trade_service.close_trade(db, record.id, Decimal("0"))

    def test_future_exit_date(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)

        with pytest.raises(InvalidArgumentError):
            trade_service.close_trade(db, record.id, Decimal("150"), datetime(2999, 1, 1, tzinfo=timezone.utc))

    def test_missing_trade(self, db, trade_service):
        with pytest.raises(TradeNotFoundError):
            trade_service.close_trade(db, 999, Decimal("150"))

    def test_stale_close_raises_concurrent_modification(self, db, trade_service, sample_portfolio):
        """A close computed from an outdated quantity matches no row."""
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        stale = replace(Trade.from_record(record), quantity=Decimal("500"))
        result = close_trade(stale, Decimal("150"), days_after(10))

        with pytest.raises(ConcurrentModificationError):
            trade_service._persist_full_close(db, stale, result.trade, result.history)

    def test_stale_close_of_closed_trade(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        stale = Trade.from_record(record)
        trade_service.close_trade(db, record.id, Decimal("150"), days_after(10))
        result = close_trade(stale, Decimal("150"), days_after(10))

        with pytest.raises(TradeAlreadyClosedError):
            trade_service._persist_full_close(db, stale, result.trade, result.history)


# =============================================================================
# PARTIAL CLOSE
# =============================================================================

class TestPartialClose:
    """Tests for partial_close."""

    def test_partial_close_creates_slice(self, db, trade_service, portfolio_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio, strategy="Breakout")
        remaining, slice_ = trade_service.partial_close(
            db, record.id, Decimal("500"), Decimal("150"), days_after(3)
        )

        assert remaining.id == record.id
        assert remaining.status == TradeStatus.OPEN
        assert remaining.quantity == Decimal("500")
        assert remaining.entry_price == Decimal("140")

        assert slice_.id != record.id
        assert slice_.parent_id == record.id
        assert slice_.status == TradeStatus.CLOSED
        assert slice_.quantity == Decimal("500")
        assert slice_.strategy == "Breakout"
        assert slice_.realized_pnl == Decimal("4107.75")

        ledger = portfolio_service.get_ledger(db, sample_portfolio.id)
        assert ledger.available_cash == Decimal("433894.25")
        assert ledger.realized_pnl == Decimal("4107.75")

    def test_partial_close_history(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        _, slice_ = trade_service.partial_close(db, record.id, Decimal("500"), Decimal("150"), days_after(3))

        parent_history = trade_service.get_history(db, record.id)
        assert [h.action for h in parent_history] == [HistoryAction.OPEN, HistoryAction.PARTIAL_CLOSE]
        assert parent_history[-1].details["slice_id"] == slice_.id

        slice_history = trade_service.get_history(db, slice_.id)
        assert [h.action for h in slice_history] == [HistoryAction.CLOSE]
        assert slice_history[0].details["parent_id"] == record.id

    def test_closing_rest_matches_full_close(self, db, trade_service, portfolio_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        trade_service.partial_close(db, record.id, Decimal("500"), Decimal("150"), days_after(3))
        trade_service.close_trade(db, record.id, Decimal("150"), days_after(4))

        ledger = portfolio_service.get_ledger(db, sample_portfolio.id)
        assert ledger.available_cash == Decimal("508215.5")
        assert ledger.realized_pnl == Decimal("8215.5")
        assert len(trade_service.get_closed_trades(db, sample_portfolio.id)) == 2

    def test_full_quantity_closes_trade(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        remaining, closed = trade_service.partial_close(db, record.id, Decimal("1000"), Decimal("150"), days_after(3))

        assert remaining is None
        assert closed.id == record.id
        assert closed.status == TradeStatus.CLOSED
        assert len(trade_service.list_trades(db, sample_portfolio.id)) == 1

    def test_oversized_quantity(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)

        with pytest.raises(InvalidArgumentError):
            trade_service.partial_close(db, record.id, Decimal("1005"), Decimal("150"))

    def test_board_lot_enforced_for_pse_stocks(self, db, trade_service, portfolio_service, sample_portfolio):
        record, _ = trade_service.open_trade(db, TradeCreate(
            portfolio_id=sample_portfolio.id, symbol="MEG",
            entry_price=Decimal("3.20"), quantity=Decimal("5000"), entry_date=days_after(0),
        ))
        cash_before = portfolio_service.get_ledger(db, sample_portfolio.id).available_cash

        with pytest.raises(BoardLotError):
            trade_service.partial_close(db, record.id, Decimal("1500"), Decimal("3.50"), days_after(1))

        assert trade_service.get_trade(db, record.id).quantity == Decimal("5000")
        assert portfolio_service.get_ledger(db, sample_portfolio.id).available_cash == cash_before

    def test_board_lot_not_enforced_for_crypto(self, db, trade_service, sample_portfolio):
        record, _ = trade_service.open_trade(db, TradeCreate(
            portfolio_id=sample_portfolio.id, symbol="btc-usd",
            entry_price=Decimal("3000"), quantity=Decimal("1.5"), entry_date=days_after(0),
            asset_type=AssetType.CRYPTO, market=Market.US,
        ))

        remaining, slice_ = trade_service.partial_close(
            db, record.id, Decimal("0.25"), Decimal("3100"), days_after(1)
        )

        assert record.symbol == "BTC-USD"
        assert remaining.quantity == Decimal("1.25")
        assert slice_.quantity == Decimal("0.25")

    def test_closed_trade_cannot_be_partially_closed(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        trade_service.close_trade(db, record.id, Decimal("150"), days_after(10))

        with pytest.raises(TradeAlreadyClosedError):
            trade_service.partial_close(db, record.id, Decimal("500"), Decimal("150"), days_after(11))


# =============================================================================
# READS & ANNOTATIONS
# =============================================================================

class TestReadsAndAnnotations:
    """Tests for list_trades, remarks and price marks."""

    def test_list_trades_by_status(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        trade_service.partial_close(db, record.id, Decimal("500"), Decimal("150"), days_after(3))

        assert len(trade_service.list_trades(db, sample_portfolio.id)) == 2
        assert [t.id for t in trade_service.list_trades(db, sample_portfolio.id, "open")] == [record.id]
        closed = trade_service.list_trades(db, sample_portfolio.id, TradeStatus.CLOSED)
        assert [t.parent_id for t in closed] == [record.id]

    def test_closed_trades_are_journal_values(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        trade_service.close_trade(db, record.id, Decimal("150"), days_after(10))

        trades = trade_service.get_closed_trades(db, sample_portfolio.id)
        assert len(trades) == 1
        assert isinstance(trades[0], Trade)
        assert trades[0].exit_date.tzinfo is not None

    def test_list_trades_of_missing_portfolio(self, db, trade_service):
        with pytest.raises(PortfolioNotFoundError):
            trade_service.list_trades(db, 999)

    def test_add_remark(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        entry = trade_service.add_remark(db, record.id, "  Holding through earnings ")

        assert entry.details == {"content": "Holding through earnings"}
        assert trade_service.get_history(db, record.id)[-1].action == HistoryAction.ADD_REMARK

    def test_blank_remark(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)

        with pytest.raises(InvalidArgumentError):
            trade_service.add_remark(db, record.id, "   ")

    def test_remark_on_missing_trade(self, db, trade_service):
        with pytest.raises(TradeNotFoundError):
            trade_service.add_remark(db, 999, "note")

    def test_mark_price(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        marked = trade_service.mark_price(db, record.id, Decimal("151.5"))

        assert marked.current_price == Decimal("151.5")
        assert trade_service.get_history(db, record.id)[-1].action == HistoryAction.UPDATE_PRICE

    def test_mark_price_of_closed_trade(self, db, trade_service, sample_portfolio):
        record, _ = open_bdo(db, trade_service, sample_portfolio)
        trade_service.close_trade(db, record.id, Decimal("150"), days_after(10))

        with pytest.raises(TradeAlreadyClosedError):
            trade_service.mark_price(db, record.id, Decimal("151"))
