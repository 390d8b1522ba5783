# backend/tests/services/journal/test_ledger.py
"""
Unit tests for cash ledger bookkeeping.

Test Coverage:
- Deposits and withdrawals (totals, balance, insufficient cash)
- Trade funding and close credits
- Round trip leaves cash changed by exactly the realized P&L
- Compensating reversals
"""

from decimal import Decimal

import pytest

from tests.conftest import days_after, make_open_trade
from tradejournal.models import TransactionType
from tradejournal.services.exceptions import (
    InconsistentStateError,
    InsufficientCashError,
    InvalidArgumentError,
)
from tradejournal.services.journal import (
    PortfolioLedger,
    Transaction,
    apply_trade_close,
    apply_trade_open,
    apply_transaction,
    close_trade,
    funded_amount,
    partial_close,
    released_amount,
    reversal_of,
)


@pytest.fixture
def ledger() -> PortfolioLedger:
    return PortfolioLedger.new(Decimal("500000"))


class TestPortfolioLedger:

    def test_new_ledger_counts_initial_balance_as_deposit(self, ledger):
        assert ledger.available_cash == Decimal("500000")
        assert ledger.current_balance == Decimal("500000")
        assert ledger.total_deposits == Decimal("500000")
        assert ledger.realized_pnl == Decimal("0")

    def test_negative_initial_balance_is_rejected(self):
        with pytest.raises(InvalidArgumentError):
            PortfolioLedger.new(Decimal("-1"))


class TestTransactions:
    """Tests for deposits and withdrawals."""

    def test_deposit(self, ledger):
        updated = apply_transaction(ledger, Transaction.create(TransactionType.DEPOSIT, Decimal("1000")))

        assert updated.available_cash == Decimal("501000")
        assert updated.current_balance == Decimal("501000")
        assert updated.total_deposits == Decimal("501000")

    def test_withdrawal(self, ledger):
        updated = apply_transaction(ledger, Transaction.create(TransactionType.WITHDRAWAL, Decimal("1000")))

        assert updated.available_cash == Decimal("499000")
        assert updated.current_balance == Decimal("499000")
        assert updated.total_withdrawals == Decimal("1000")

    def test_withdrawal_beyond_cash_fails(self, ledger):
        with pytest.raises(InsufficientCashError) as exc_info:
            apply_transaction(ledger, Transaction.create(TransactionType.WITHDRAWAL, Decimal("500001")))

        assert exc_info.value.available == Decimal("500000")

    def test_signed_amount(self):
        assert Transaction.create("deposit", "10").signed_amount == Decimal("10")
        assert Transaction.create("withdrawal", "10").signed_amount == Decimal("-10")


class TestTradeCash:
    """Tests for funding and releasing trade capital."""

    def test_funded_amount_includes_buy_fees(self):
        assert funded_amount(make_open_trade()) == Decimal("140427")

    def test_open_debits_cash_only(self, ledger):
        updated = apply_trade_open(ledger, funded_amount(make_open_trade()))

        assert updated.available_cash == Decimal("359573")
        assert updated.current_balance == Decimal("500000")

    def test_open_without_enough_cash_fails(self):
        small = PortfolioLedger.new(Decimal("1000"))
        trade = make_open_trade(entry_price="10", quantity="100")

        with pytest.raises(InsufficientCashError):
            apply_trade_open(small, funded_amount(trade))

    def test_round_trip_changes_cash_by_realized_pnl(self, ledger):
        trade = make_open_trade()
        opened = apply_trade_open(ledger, funded_amount(trade))
        closed = close_trade(trade, Decimal("150"), days_after(5)).trade
        final = apply_trade_close(opened, released_amount(closed), closed.realized_pnl)

        assert final.available_cash == Decimal("508215.5")
        assert final.available_cash - ledger.available_cash == closed.realized_pnl
        assert final.current_balance == Decimal("508215.5")
        assert final.realized_pnl == Decimal("8215.5")

    def test_partial_closes_release_their_share(self, ledger):
        trade = make_open_trade()
        current = apply_trade_open(ledger, funded_amount(trade))

        first = partial_close(trade, Decimal("500"), Decimal("150"), days_after(1))
        current = apply_trade_close(current, released_amount(first.closed_slice), first.closed_slice.realized_pnl)
        assert current.available_cash == Decimal("433894.25")

        second = close_trade(first.remaining, Decimal("150"), days_after(2)).trade
        current = apply_trade_close(current, released_amount(second), second.realized_pnl)
        assert current.available_cash == Decimal("508215.5")

    def test_released_amount_requires_closed_trade(self):
        with pytest.raises(InconsistentStateError):
            released_amount(make_open_trade())

    def test_close_leaving_negative_cash_fails(self):
        empty = PortfolioLedger(
            initial_balance=Decimal("0"),
            available_cash=Decimal("10"),
            current_balance=Decimal("0"),
        )
        with pytest.raises(InconsistentStateError):
            apply_trade_close(empty, Decimal("-50"), Decimal("-50"))


class TestReversal:
    """Tests for compensating transactions."""

    def test_reversal_of_deposit_is_withdrawal(self):
        original = Transaction.create("deposit", Decimal("5000"), id=4, portfolio_id=1)
        reversal = reversal_of(original)

        assert reversal.type == TransactionType.WITHDRAWAL
        assert reversal.amount == Decimal("5000")
        assert reversal.reverses_id == 4
        assert reversal.portfolio_id == 1

    def test_reversal_of_withdrawal_is_deposit(self):
        original = Transaction.create("withdrawal", Decimal("100"), id=5)
        assert reversal_of(original).type == TransactionType.DEPOSIT

    def test_unrecorded_transaction_cannot_be_reversed(self):
        with pytest.raises(InconsistentStateError):
            reversal_of(Transaction.create("deposit", Decimal("100")))

    def test_reversal_cannot_be_reversed(self):
        reversal = Transaction.create("withdrawal", Decimal("100"), id=6, reverses_id=4)
        with pytest.raises(InconsistentStateError):
            reversal_of(reversal)
