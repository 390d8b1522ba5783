# backend/tradejournal/services/journal/calculators.py
"""
Read-path calculators for open positions and portfolio equity.

- PositionAggregator: Values open trades against the latest known prices
- PortfolioReducer: Folds ledger, trades and cash movements into a summary

Design Principles:
- Stateless apart from the fee schedule they are built with
- Receive the price source explicitly (PriceLookup protocol)
- A missing price never fails valuation: fall back and flag it
- Uses Decimal for ALL financial calculations

Usage:
    summary = reduce_portfolio(
        ledger,
        open_trades=open_trades,
        closed_trades=closed_trades,
        transactions=transactions,
        price_lookup=lookup,
    )
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from decimal import Decimal
from typing import Any, TYPE_CHECKING

from tradejournal.models import TransactionType
from tradejournal.services.constants import CASH_ALLOCATION_LABEL, ZERO
from tradejournal.services.exceptions import InconsistentStateError
from tradejournal.services.journal.fees import DEFAULT_FEE_SCHEDULE, FeeSchedule
from tradejournal.services.journal.pnl import unrealized_pnl
from tradejournal.services.journal.types import (
    AllocationEntry,
    OpenPositionsSummary,
    PortfolioLedger,
    PortfolioSummary,
    PositionValuation,
    PriceSource,
    Trade,
    Transaction,
    as_price,
)

if TYPE_CHECKING:
    from tradejournal.services.protocols import PriceLookup

logger = logging.getLogger(__name__)


def _as_trade(value: Any) -> Trade:
    return value if isinstance(value, Trade) else Trade.from_record(value)


def _as_transaction(value: Any) -> Transaction:
    return value if isinstance(value, Transaction) else Transaction.from_record(value)


# =============================================================================
# POSITION AGGREGATOR
# =============================================================================

class PositionAggregator:
    """
    Values open trades at the best price available.

    Effective price, in order of preference:
        1. price_lookup.get_price(symbol)      → PriceSource.LIVE
        2. the trade's recorded current_price  → PriceSource.LAST_KNOWN
        3. the trade's entry_price             → PriceSource.ENTRY

    Per trade:
        market_value   = quantity × effective_price
        cost_basis     = quantity × entry_price
        unrealized_pnl = gross at effective price - sell fees
    """

    def __init__(self, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> None:
        self._schedule = schedule

    def calculate(
            self,
            trades: Iterable[Trade],
            price_lookup: PriceLookup | None = None,
    ) -> OpenPositionsSummary:
        """
        Aggregate open trades.

        Args:
            trades: Open trades (Trade values or objects with trade columns)
            price_lookup: Live price source, or None to use stored prices

        Returns:
            OpenPositionsSummary with per-symbol market values and totals

        Raises:
            InconsistentStateError: If a closed trade is passed in
        """
        positions: list[PositionValuation] = []
        by_symbol: dict[str, Decimal] = {}
        total_market_value = ZERO
        total_unrealized = ZERO
        total_cost_basis = ZERO

        for raw in trades:
            trade = _as_trade(raw)
            if not trade.is_open:
                raise InconsistentStateError(
                    f"Trade {trade.id} ({trade.symbol}) is closed and cannot be valued as an open position"
                )

            position = self.value_trade(trade, price_lookup)
            positions.append(position)

            by_symbol[trade.symbol] = by_symbol.get(trade.symbol, ZERO) + position.market_value
            total_market_value += position.market_value
            total_unrealized += position.unrealized_pnl
            total_cost_basis += position.cost_basis

        summary = OpenPositionsSummary(
            by_symbol=by_symbol,
            total_market_value=total_market_value,
            total_unrealized_pnl=total_unrealized,
            total_cost_basis=total_cost_basis,
            positions=positions,
        )
        if summary.has_estimated_prices:
            logger.info(f"Valued without live prices: {', '.join(summary.estimated_symbols)}")
        return summary

    def value_trade(self, trade: Trade, price_lookup: PriceLookup | None = None) -> PositionValuation:
        """Value a single open trade."""
        price, source = self._effective_price(trade, price_lookup)
        return PositionValuation(
            trade=trade,
            effective_price=price,
            price_source=source,
            market_value=trade.quantity * price,
            cost_basis=trade.cost_basis,
            unrealized_pnl=unrealized_pnl(
                trade.entry_price, price, trade.quantity, trade.side, self._schedule
            ),
        )

    @staticmethod
    def _effective_price(trade: Trade, price_lookup: PriceLookup | None) -> tuple[Decimal, PriceSource]:
        if price_lookup is not None:
            raw = price_lookup.get_price(trade.symbol)
            live = as_price(raw)
            if live is not None:
                return live, PriceSource.LIVE
            if raw is not None:
                logger.warning(f"Ignoring unusable price {raw!r} for {trade.symbol}")

        if trade.current_price is not None:
            return trade.current_price, PriceSource.LAST_KNOWN

        return trade.entry_price, PriceSource.ENTRY


# =============================================================================
# PORTFOLIO REDUCER
# =============================================================================

class PortfolioReducer:
    """
    Folds a portfolio's ledger and trades into its summary figures.

    Identities:
        realized_pnl   = Σ stored realized_pnl of closed trades
        unrealized_pnl = PositionAggregator total
        total_pnl      = realized_pnl + unrealized_pnl
        equity_value   = initial_balance + total_pnl
        available_cash = raw ledger cash + market value of open positions

    Allocation lists the raw cash first under "Cash", then one entry per
    open symbol valued at market.

    The initial balance counts as the first deposit, so total_deposits is
    initial_balance + Σ deposit transactions.
    """

    def __init__(self, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> None:
        self._aggregator = PositionAggregator(schedule)

    def calculate(
            self,
            portfolio: PortfolioLedger,
            open_trades: Iterable[Trade] = (),
            closed_trades: Iterable[Trade] = (),
            transactions: Iterable[Transaction] = (),
            price_lookup: PriceLookup | None = None,
    ) -> PortfolioSummary:
        """
        Reduce a portfolio to its summary.

        Raises:
            InconsistentStateError: Negative raw cash, a closed trade without
                realized P&L, a trade in the wrong list, or a trade or
                transaction belonging to another portfolio
        """
        if portfolio.available_cash < ZERO:
            raise InconsistentStateError(
                f"Portfolio {portfolio.id} has negative cash on its ledger: {portfolio.available_cash}"
            )

        open_list = [_as_trade(t) for t in open_trades]
        closed_list = [_as_trade(t) for t in closed_trades]
        transaction_list = [_as_transaction(t) for t in transactions]

        for trade in open_list + closed_list:
            self._check_owner(portfolio, trade.portfolio_id, f"Trade {trade.id}")
        for transaction in transaction_list:
            self._check_owner(portfolio, transaction.portfolio_id, f"Transaction {transaction.id}")

        realized = ZERO
        for trade in closed_list:
            if not trade.is_closed:
                raise InconsistentStateError(f"Trade {trade.id} ({trade.symbol}) is open but listed as closed")
            if trade.realized_pnl is None:
                raise InconsistentStateError(f"Closed trade {trade.id} ({trade.symbol}) has no realized P&L")
            realized += trade.realized_pnl

        positions = self._aggregator.calculate(open_list, price_lookup)
        unrealized = positions.total_unrealized_pnl
        total_pnl = realized + unrealized

        deposits = portfolio.initial_balance + sum(
            (t.amount for t in transaction_list if t.type == TransactionType.DEPOSIT), ZERO
        )
        withdrawals = sum(
            (t.amount for t in transaction_list if t.type == TransactionType.WITHDRAWAL), ZERO
        )

        allocation = [AllocationEntry(label=CASH_ALLOCATION_LABEL, value=portfolio.available_cash)]
        allocation.extend(
            AllocationEntry(label=symbol, value=value)
            for symbol, value in positions.by_symbol.items()
        )

        return PortfolioSummary(
            currency=portfolio.currency,
            initial_balance=portfolio.initial_balance,
            available_cash=portfolio.available_cash + positions.total_market_value,
            cash_balance=portfolio.available_cash,
            equity_value=portfolio.initial_balance + total_pnl,
            realized_pnl=realized,
            unrealized_pnl=unrealized,
            total_pnl=total_pnl,
            total_market_value=positions.total_market_value,
            total_cost_basis=positions.total_cost_basis,
            total_deposits=deposits,
            total_withdrawals=withdrawals,
            allocation=allocation,
            positions=positions,
        )

    @staticmethod
    def _check_owner(portfolio: PortfolioLedger, owner_id: int | None, label: str) -> None:
        if portfolio.id is None or owner_id is None:
            return
        if owner_id != portfolio.id:
            raise InconsistentStateError(
                f"{label} belongs to portfolio {owner_id}, not portfolio {portfolio.id}"
            )


# =============================================================================
# MODULE-LEVEL ENTRY POINTS
# =============================================================================

def aggregate_open_positions(
        trades: Iterable[Trade],
        price_lookup: PriceLookup | None = None,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> OpenPositionsSummary:
    return PositionAggregator(schedule).calculate(trades, price_lookup)


def reduce_portfolio(
        portfolio: PortfolioLedger,
        open_trades: Iterable[Trade] = (),
        closed_trades: Iterable[Trade] = (),
        transactions: Iterable[Transaction] = (),
        price_lookup: PriceLookup | None = None,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> PortfolioSummary:
    return PortfolioReducer(schedule).calculate(
        portfolio,
        open_trades=open_trades,
        closed_trades=closed_trades,
        transactions=transactions,
        price_lookup=price_lookup,
    )
