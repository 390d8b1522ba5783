# backend/tradejournal/services/portfolio_service.py
"""
Portfolio Service for portfolios, their cash ledger and cash movements.

This service handles:
- Creating, listing and deleting portfolios
- Recording deposits and withdrawals (and reversing them)
- Building the portfolio summary through the journal reducer

Design Principles:
- No HTTP Knowledge: Raises domain exceptions, not HTTPException
- Ledger columns change only through single-statement updates of the form
  `SET col = col ± :amount`, evaluated by the database, so concurrent
  writers never overwrite each other's read-modify-write
- Debits are conditional (`WHERE available_cash >= :amount`); a debit that
  would drive cash negative matches no row and is rejected
- Transactions are immutable: corrections are compensating reversals

Usage:
    from tradejournal.services.portfolio_service import PortfolioService

    service = PortfolioService()
    portfolio = service.create_portfolio(db, "PSE Swing", Decimal("100000"))
    service.record_transaction(db, portfolio.id, "deposit", Decimal("5000"))
    summary = service.get_summary(db, portfolio.id, price_lookup=lookup)
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tradejournal.config import settings
from tradejournal.models import (
    Portfolio,
    PortfolioTransaction,
    TradeRecord,
    TradeStatus,
    TransactionType,
)
from tradejournal.schemas.portfolios import PortfolioCreate
from tradejournal.schemas.transactions import TransactionCreate
from tradejournal.services.validation import validate_input
from tradejournal.services.exceptions import (
    InconsistentStateError,
    InsufficientCashError,
    PortfolioNotFoundError,
    ServiceError,
    TransactionNotFoundError,
)
from tradejournal.services.journal import (
    FeeSchedule,
    PortfolioLedger,
    PortfolioSummary,
    Transaction,
    reduce_portfolio,
    reversal_of,
)

if TYPE_CHECKING:
    from tradejournal.services.protocols import PriceLookup

logger = logging.getLogger(__name__)


class PortfolioService:
    """
    Service for portfolios and their cash ledger.

    Public methods that write commit on success and roll back on failure.
    The ledger primitives (debit_cash, credit_cash, credit_trade_close) do
    NOT commit: they run inside the caller's database transaction so a trade
    and its cash movement are stored together.
    """

    def __init__(
            self,
            schedule: FeeSchedule | None = None,
            default_currency: str | None = None,
    ) -> None:
        self._schedule = schedule or FeeSchedule.from_settings(settings)
        self._default_currency = default_currency or settings.default_currency

    # =========================================================================
    # PORTFOLIOS
    # =========================================================================

    def create_portfolio(
            self,
            db: Session,
            name: str,
            initial_balance: Decimal | int | str = Decimal("0"),
            currency: str | None = None,
    ) -> Portfolio:
        """
        Create a portfolio whose ledger is seeded with the initial balance.

        cash = balance = total_deposits = initial_balance.

        Raises:
            InvalidArgumentError: Blank name, negative balance, bad currency
        """
        data = validate_input(
            PortfolioCreate,
            name=name,
            initial_balance=initial_balance,
            currency=currency,
        )
        ledger = PortfolioLedger.new(
            data.initial_balance,
            currency=data.currency or self._default_currency,
            name=data.name,
        )

        portfolio = Portfolio(
            name=data.name,
            currency=ledger.currency,
            initial_balance=ledger.initial_balance,
            available_cash=ledger.available_cash,
            current_balance=ledger.current_balance,
            total_deposits=ledger.total_deposits,
            total_withdrawals=ledger.total_withdrawals,
            realized_pnl=ledger.realized_pnl,
        )
        db.add(portfolio)
        db.commit()
        db.refresh(portfolio)

        logger.info(
            f"Created portfolio {portfolio.id} '{portfolio.name}' "
            f"({portfolio.currency} {ledger.initial_balance})"
        )
        return portfolio

    def find_portfolio(self, db: Session, portfolio_id: int) -> Portfolio | None:
        """Return the portfolio, or None if it does not exist."""
        return db.get(Portfolio, portfolio_id)

    def get_portfolio(self, db: Session, portfolio_id: int) -> Portfolio:
        """
        Return the portfolio.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        portfolio = self.find_portfolio(db, portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    def list_portfolios(self, db: Session) -> list[Portfolio]:
        """All portfolios, oldest first. Empty list when there are none."""
        return list(db.scalars(select(Portfolio).order_by(Portfolio.id)))

    def get_ledger(self, db: Session, portfolio_id: int) -> PortfolioLedger:
        """Stored ledger figures as a PortfolioLedger value."""
        portfolio = self.get_portfolio(db, portfolio_id)
        db.refresh(portfolio)
        return PortfolioLedger.from_record(portfolio)

    def delete_portfolio(self, db: Session, portfolio_id: int) -> None:
        """
        Delete a portfolio with its trades, trade history and transactions.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        portfolio = self.get_portfolio(db, portfolio_id)

        # Slices reference their parent trade; detach them so row order does not matter
        db.execute(
            update(TradeRecord)
            .where(TradeRecord.portfolio_id == portfolio_id)
            .values(parent_id=None)
            .execution_options(synchronize_session=False)
        )
        db.delete(portfolio)
        db.commit()
        logger.info(f"Deleted portfolio {portfolio_id}")

    # =========================================================================
    # CASH TRANSACTIONS
    # =========================================================================

    def record_transaction(
            self,
            db: Session,
            portfolio_id: int,
            type: TransactionType | str,
            amount: Decimal | int | str,
            notes: str | None = None,
    ) -> PortfolioTransaction:
        """
        Record a deposit or withdrawal and move the ledger in one statement.

        Raises:
            InvalidArgumentError: Unknown type or non-positive amount
            PortfolioNotFoundError: If the portfolio does not exist
            InsufficientCashError: If a withdrawal exceeds available cash
        """
        data = validate_input(TransactionCreate, type=type, amount=amount, notes=notes)
        return self._store_transaction(
            db,
            Transaction.create(data.type, data.amount, portfolio_id=portfolio_id, notes=data.notes),
        )

    def reverse_transaction(self, db: Session, transaction_id: int) -> PortfolioTransaction:
        """
        Record the compensating entry for a deposit or withdrawal.

        Each transaction can be reversed once; reversals cannot be reversed.

        Raises:
            TransactionNotFoundError: If the transaction does not exist
            InconsistentStateError: Already reversed, or is itself a reversal
            InsufficientCashError: Reversing a deposit whose cash was spent
        """
        original = db.get(PortfolioTransaction, transaction_id)
        if original is None:
            raise TransactionNotFoundError(transaction_id)

        already = db.scalar(
            select(PortfolioTransaction.id)
            .where(PortfolioTransaction.reverses_id == transaction_id)
        )
        if already is not None:
            raise InconsistentStateError(
                f"Transaction {transaction_id} was already reversed by transaction {already}"
            )

        reversal = reversal_of(Transaction.from_record(original))
        return self._store_transaction(db, reversal)

    def list_transactions(self, db: Session, portfolio_id: int) -> list[PortfolioTransaction]:
        """
        Cash transactions of a portfolio in recording order.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        self.get_portfolio(db, portfolio_id)
        return list(db.scalars(
            select(PortfolioTransaction)
            .where(PortfolioTransaction.portfolio_id == portfolio_id)
            .order_by(PortfolioTransaction.created_at, PortfolioTransaction.id)
        ))

    def _store_transaction(self, db: Session, transaction: Transaction) -> PortfolioTransaction:
        try:
            if transaction.type == TransactionType.DEPOSIT:
                self.credit_cash(db, transaction.portfolio_id, transaction.amount, count_as_deposit=True)
            else:
                self.debit_cash(db, transaction.portfolio_id, transaction.amount, count_as_withdrawal=True)

            record = PortfolioTransaction(
                portfolio_id=transaction.portfolio_id,
                type=transaction.type,
                amount=transaction.amount,
                notes=transaction.notes,
                reverses_id=transaction.reverses_id,
                created_at=transaction.created_at,
            )
            db.add(record)
            db.commit()
        except IntegrityError:
            # Unique reverses_id: another writer reversed the same transaction first
            db.rollback()
            raise InconsistentStateError(f"Transaction {transaction.reverses_id} was already reversed")
        except ServiceError:
            db.rollback()
            raise

        db.refresh(record)
        logger.info(
            f"Recorded {transaction.type.value} of {transaction.amount} "
            f"on portfolio {transaction.portfolio_id} (transaction {record.id})"
        )
        return record

    # =========================================================================
    # LEDGER PRIMITIVES (no commit)
    # =========================================================================

    def credit_cash(
            self,
            db: Session,
            portfolio_id: int,
            amount: Decimal,
            count_as_deposit: bool = False,
    ) -> None:
        """
        Add to cash and balance; optionally book it as a deposit.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
        """
        values = {
            "available_cash": Portfolio.available_cash + amount,
            "current_balance": Portfolio.current_balance + amount,
        }
        if count_as_deposit:
            values["total_deposits"] = Portfolio.total_deposits + amount

        result = db.execute(
            update(Portfolio)
            .where(Portfolio.id == portfolio_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise PortfolioNotFoundError(portfolio_id)

    def debit_cash(
            self,
            db: Session,
            portfolio_id: int,
            amount: Decimal,
            count_as_withdrawal: bool = False,
    ) -> None:
        """
        Take cash out of the ledger if, and only if, enough is available.

        A withdrawal also lowers the balance; funding a trade only moves cash
        into the position, so the balance is untouched.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            InsufficientCashError: If available_cash < amount
        """
        values = {"available_cash": Portfolio.available_cash - amount}
        if count_as_withdrawal:
            values["current_balance"] = Portfolio.current_balance - amount
            values["total_withdrawals"] = Portfolio.total_withdrawals + amount

        result = db.execute(
            update(Portfolio)
            .where(Portfolio.id == portfolio_id, Portfolio.available_cash >= amount)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            available = self._available_cash(db, portfolio_id)
            raise InsufficientCashError(amount, available)

    def credit_trade_close(
            self,
            db: Session,
            portfolio_id: int,
            released: Decimal,
            realized_pnl: Decimal,
    ) -> None:
        """
        Return the cash released by a closed slice and book its realized P&L.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            InconsistentStateError: If the credit would leave cash negative
        """
        result = db.execute(
            update(Portfolio)
            .where(Portfolio.id == portfolio_id, Portfolio.available_cash + released >= 0)
            .values(
                available_cash=Portfolio.available_cash + released,
                current_balance=Portfolio.current_balance + realized_pnl,
                realized_pnl=Portfolio.realized_pnl + realized_pnl,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            available = self._available_cash(db, portfolio_id)
            raise InconsistentStateError(
                f"Closing on portfolio {portfolio_id} would leave negative cash "
                f"({available} + {released})"
            )

    def _available_cash(self, db: Session, portfolio_id: int) -> Decimal:
        """Current cash column, raising PortfolioNotFoundError when the row is missing."""
        available = db.scalar(select(Portfolio.available_cash).where(Portfolio.id == portfolio_id))
        if available is None:
            raise PortfolioNotFoundError(portfolio_id)
        return available

    # =========================================================================
    # SUMMARY
    # =========================================================================

    def get_summary(
            self,
            db: Session,
            portfolio_id: int,
            price_lookup: PriceLookup | None = None,
    ) -> PortfolioSummary:
        """
        Summary figures of a portfolio (equity, P&L, cash, allocation).

        Without a price_lookup, open trades are valued at their last
        recorded price (or entry price) and the summary is flagged as
        estimated.

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            InconsistentStateError: If the stored ledger or trades are inconsistent
        """
        ledger = self.get_ledger(db, portfolio_id)

        trades = list(db.scalars(
            select(TradeRecord)
            .where(TradeRecord.portfolio_id == portfolio_id)
            .order_by(TradeRecord.entry_date, TradeRecord.id)
        ))
        transactions = list(db.scalars(
            select(PortfolioTransaction)
            .where(PortfolioTransaction.portfolio_id == portfolio_id)
        ))

        return reduce_portfolio(
            ledger,
            open_trades=[t for t in trades if t.status == TradeStatus.OPEN],
            closed_trades=[t for t in trades if t.status == TradeStatus.CLOSED],
            transactions=transactions,
            price_lookup=price_lookup,
            schedule=self._schedule,
        )
