# backend/tradejournal/services/journal/ledger.py
"""
Cash ledger bookkeeping.

The stored ledger moves in three ways:
    deposit / withdrawal   cash ± amount, balance ± amount, totals += amount
    trade open             cash -= funded amount
    trade close            cash += released amount, balance += realized P&L

where
    funded   = entry_price × q + buy fees
    released = entry_price × q + buy fees + realized P&L

so a round trip leaves cash changed by exactly the realized P&L whenever the
buy fees of the slices add up to the buy fees charged at open.

These functions are the pure form of the single-statement SQL updates done by
PortfolioService and TradeService; both apply the same rules.
"""

from dataclasses import replace
from decimal import Decimal

from tradejournal.models import TransactionType
from tradejournal.services.constants import ZERO
from tradejournal.services.exceptions import InconsistentStateError, InsufficientCashError
from tradejournal.services.journal.fees import DEFAULT_FEE_SCHEDULE, FeeSchedule, buy_fees
from tradejournal.services.journal.types import (
    Number,
    PortfolioLedger,
    Trade,
    Transaction,
    require_positive,
    to_decimal,
)


def apply_transaction(ledger: PortfolioLedger, transaction: Transaction) -> PortfolioLedger:
    """
    Apply a deposit or withdrawal.

    Raises:
        InsufficientCashError: If a withdrawal exceeds the available cash
    """
    amount = transaction.amount
    if transaction.type == TransactionType.DEPOSIT:
        return replace(
            ledger,
            available_cash=ledger.available_cash + amount,
            current_balance=ledger.current_balance + amount,
            total_deposits=ledger.total_deposits + amount,
        )

    if amount > ledger.available_cash:
        raise InsufficientCashError(amount, ledger.available_cash)
    return replace(
        ledger,
        available_cash=ledger.available_cash - amount,
        current_balance=ledger.current_balance - amount,
        total_withdrawals=ledger.total_withdrawals + amount,
    )


def apply_trade_open(ledger: PortfolioLedger, funded: Number) -> PortfolioLedger:
    """
    Debit the cash that funds a new position.

    Raises:
        InsufficientCashError: If the cash ledger cannot cover the debit
    """
    amount = require_positive(funded, "funded_amount")
    if amount > ledger.available_cash:
        raise InsufficientCashError(amount, ledger.available_cash)
    return replace(ledger, available_cash=ledger.available_cash - amount)


def apply_trade_close(ledger: PortfolioLedger, released: Number, realized_pnl: Number) -> PortfolioLedger:
    """
    Credit the cash released by a closed slice and book its realized P&L.

    A losing trade can release less than nothing when the loss exceeds the
    capital it tied up (shorts); the ledger must still not go negative.

    Raises:
        InconsistentStateError: If the resulting cash would be negative
    """
    released_amount = to_decimal(released, "released_amount")
    realized = to_decimal(realized_pnl, "realized_pnl")

    cash = ledger.available_cash + released_amount
    if cash < ZERO:
        raise InconsistentStateError(f"Closing would leave negative cash on the ledger: {cash}")
    return replace(
        ledger,
        available_cash=cash,
        current_balance=ledger.current_balance + realized,
        realized_pnl=ledger.realized_pnl + realized,
    )


def funded_amount(trade: Trade, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> Decimal:
    """Cash needed to open `trade`: entry notional plus buy fees."""
    return trade.cost_basis + buy_fees(trade.entry_price, trade.quantity, schedule)


def released_amount(closed_slice: Trade, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> Decimal:
    """
    Cash returned by a closed slice: its share of the funding plus its P&L.

    Raises:
        InconsistentStateError: If the slice is not closed
    """
    if not closed_slice.is_closed or closed_slice.realized_pnl is None:
        raise InconsistentStateError(f"Trade {closed_slice.id} is not a closed trade")
    return funded_amount(closed_slice, schedule) + closed_slice.realized_pnl


def reversal_of(transaction: Transaction) -> Transaction:
    """
    Compensating transaction for a recorded deposit or withdrawal.

    Raises:
        InconsistentStateError: If the transaction has not been persisted yet
            or is itself a reversal
    """
    if transaction.id is None:
        raise InconsistentStateError("Only a recorded transaction can be reversed")
    if transaction.reverses_id is not None:
        raise InconsistentStateError(f"Transaction {transaction.id} is a reversal and cannot be reversed")

    opposite = (
        TransactionType.WITHDRAWAL
        if transaction.type == TransactionType.DEPOSIT
        else TransactionType.DEPOSIT
    )
    return Transaction.create(
        opposite,
        transaction.amount,
        portfolio_id=transaction.portfolio_id,
        reverses_id=transaction.id,
        notes=f"Reversal of transaction {transaction.id}",
    )
