# backend/tradejournal/services/performance.py
"""
Performance statistics over closed trades.

This module contains pure functions for journal analytics:
- Trade statistics: win rate, profit factor, average risk/reward
- Equity curve and max drawdown from realized P&L
- Monthly and per-strategy breakdowns
- Month-over-month key metrics
- Dashboard timeframe windows (1W, 1M, 3M, 6M, 1Y, ALL)

Every function reads the stored, fee-adjusted realized_pnl of each trade;
nothing here recomputes P&L.

Formulas:
    Win Rate      = wins / total_trades × 100        (P&L > 0 is a win)
    Profit Factor = gross_profit / |gross_loss|      (None without losses)
    Average R:R   = mean(|TP - entry| / |entry - SL|) over trades with both
    Max Drawdown  = min((equity - peak) / peak)      (negative decimal)
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from tradejournal.services.constants import (
    DEFAULT_TIMEFRAME,
    MONEY_QUANTUM,
    ONE_HUNDRED,
    RATIO_QUANTUM,
    TIMEFRAME_DAYS,
    UNKNOWN_STRATEGY,
    ZERO,
)
from tradejournal.services.exceptions import InconsistentStateError
from tradejournal.services.journal.types import Number, Trade, to_decimal

logger = logging.getLogger(__name__)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass(frozen=True)
class TradeStatistics:
    """Win/loss statistics of a set of closed trades."""

    total_trades: int
    wins: int
    losses: int
    win_rate: Decimal
    profit_factor: Decimal | None
    gross_profit: Decimal
    gross_loss: Decimal
    average_win: Decimal | None
    average_loss: Decimal | None
    largest_win: Decimal | None
    largest_loss: Decimal | None
    average_rr: Decimal | None
    net_pnl: Decimal


@dataclass(frozen=True)
class EquityPoint:
    timestamp: datetime
    value: Decimal


@dataclass(frozen=True)
class MonthlyPerformance:
    month: str  # YYYY-MM
    pnl: Decimal
    trades: int
    wins: int
    win_rate: Decimal


@dataclass(frozen=True)
class StrategyPerformance:
    strategy: str
    pnl: Decimal
    trades: int
    wins: int
    win_rate: Decimal
    profit_factor: Decimal | None


@dataclass(frozen=True)
class MetricChange:
    """A metric for the current period and its change against the previous one."""
    current: Decimal | None
    change: Decimal | None


@dataclass(frozen=True)
class KeyMetrics:
    win_rate: MetricChange
    profit_factor: MetricChange
    average_rr: MetricChange
    total_pnl: MetricChange


@dataclass(frozen=True)
class PerformanceReport:
    """Everything the performance dashboard shows for one timeframe."""

    timeframe: str
    start: datetime | None
    end: datetime
    statistics: TradeStatistics
    max_drawdown: Decimal | None
    net_pnl_percentage: Decimal | None
    equity_curve: list[EquityPoint] = field(default_factory=list)


# =============================================================================
# HELPERS
# =============================================================================

def _closed(trades: Iterable[Trade]) -> list[Trade]:
    result = []
    for trade in trades:
        if not trade.is_closed or trade.realized_pnl is None:
            raise InconsistentStateError(
                f"Trade {trade.id} ({trade.symbol}) is not a closed trade with realized P&L"
            )
        result.append(trade)
    return result


def _percentage(part: int, whole: int) -> Decimal:
    if whole == 0:
        return ZERO
    return (Decimal(part) / Decimal(whole) * ONE_HUNDRED).quantize(MONEY_QUANTUM)


def _profit_factor(gross_profit: Decimal, gross_loss: Decimal) -> Decimal | None:
    if gross_loss == ZERO:
        return None
    return (gross_profit / abs(gross_loss)).quantize(RATIO_QUANTUM)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


# =============================================================================
# TRADE STATISTICS
# =============================================================================

def calculate_trade_statistics(trades: Iterable[Trade]) -> TradeStatistics:
    """
    Win/loss statistics of closed trades.

    A trade with realized P&L > 0 is a win; break-even trades count as
    losses. Profit factor is None when there are no losing P&L, since the
    ratio is undefined rather than infinite.

    Raises:
        InconsistentStateError: If an open trade is passed in
    """
    closed = _closed(trades)

    wins = [t.realized_pnl for t in closed if t.realized_pnl > ZERO]
    losses = [t.realized_pnl for t in closed if t.realized_pnl <= ZERO]

    gross_profit = sum(wins, ZERO)
    gross_loss = sum(losses, ZERO)

    ratios = [t.risk_reward_ratio for t in closed if t.risk_reward_ratio is not None]
    average_rr = (sum(ratios, ZERO) / len(ratios)).quantize(RATIO_QUANTUM) if ratios else None

    return TradeStatistics(
        total_trades=len(closed),
        wins=len(wins),
        losses=len(losses),
        win_rate=_percentage(len(wins), len(closed)),
        profit_factor=_profit_factor(gross_profit, gross_loss),
        gross_profit=gross_profit,
        gross_loss=gross_loss,
        average_win=gross_profit / len(wins) if wins else None,
        average_loss=gross_loss / len(losses) if losses else None,
        largest_win=max(wins) if wins else None,
        largest_loss=min(losses) if losses else None,
        average_rr=average_rr,
        net_pnl=gross_profit + gross_loss,
    )


def net_pnl_percentage(initial_balance: Number, net_pnl: Number) -> Decimal | None:
    """Net P&L as a percentage of the initial balance; None for a zero balance."""
    balance = to_decimal(initial_balance, "initial_balance")
    if balance <= ZERO:
        return None
    return (to_decimal(net_pnl, "net_pnl") / balance * ONE_HUNDRED).quantize(MONEY_QUANTUM)


# =============================================================================
# EQUITY CURVE & DRAWDOWN
# =============================================================================

def build_equity_curve(
        initial_balance: Number,
        trades: Iterable[Trade],
        start: datetime | None = None,
) -> list[EquityPoint]:
    """
    Equity after each closed trade, ordered by exit date.

    The first point is the initial balance, stamped with `start` or the
    earliest entry date. Empty input gives an empty curve.
    """
    closed = sorted(_closed(trades), key=lambda t: (t.exit_date, t.id or 0))
    if not closed:
        return []

    equity = to_decimal(initial_balance, "initial_balance")
    origin = _as_utc(start) if start is not None else min(t.entry_date for t in closed)
    curve = [EquityPoint(timestamp=origin, value=equity)]

    for trade in closed:
        equity += trade.realized_pnl
        curve.append(EquityPoint(timestamp=trade.exit_date, value=equity))
    return curve


def calculate_max_drawdown(curve: list[EquityPoint]) -> Decimal | None:
    """
    Largest peak-to-trough decline of an equity curve.

    Returns:
        Worst drawdown as a negative decimal (e.g. -0.25 = -25%), or None
        when equity never fell below a positive peak
    """
    if len(curve) < 2:
        return None

    peak = curve[0].value
    max_drawdown = ZERO

    for point in curve:
        if point.value >= peak:
            peak = point.value
            continue
        if peak <= ZERO:
            continue
        drawdown = (point.value - peak) / peak
        if drawdown < max_drawdown:
            max_drawdown = drawdown

    return max_drawdown.quantize(RATIO_QUANTUM) if max_drawdown < ZERO else None


# =============================================================================
# BREAKDOWNS
# =============================================================================

def monthly_performance(trades: Iterable[Trade]) -> list[MonthlyPerformance]:
    """Realized P&L per calendar month of exit (UTC), oldest month first."""
    buckets: dict[str, list[Trade]] = {}
    for trade in _closed(trades):
        buckets.setdefault(trade.exit_date.strftime("%Y-%m"), []).append(trade)

    result = []
    for month in sorted(buckets):
        group = buckets[month]
        wins = sum(1 for t in group if t.realized_pnl > ZERO)
        result.append(MonthlyPerformance(
            month=month,
            pnl=sum((t.realized_pnl for t in group), ZERO),
            trades=len(group),
            wins=wins,
            win_rate=_percentage(wins, len(group)),
        ))
    return result


def strategy_performance(trades: Iterable[Trade]) -> list[StrategyPerformance]:
    """Realized P&L per strategy; trades without one fall under "Unknown"."""
    buckets: dict[str, list[Trade]] = {}
    for trade in _closed(trades):
        buckets.setdefault(trade.strategy or UNKNOWN_STRATEGY, []).append(trade)

    result = []
    for strategy, group in buckets.items():
        stats = calculate_trade_statistics(group)
        result.append(StrategyPerformance(
            strategy=strategy,
            pnl=stats.net_pnl,
            trades=stats.total_trades,
            wins=stats.wins,
            win_rate=stats.win_rate,
            profit_factor=stats.profit_factor,
        ))
    result.sort(key=lambda s: s.pnl, reverse=True)
    return result


# =============================================================================
# PERIODS
# =============================================================================

def _month_start(value: date) -> datetime:
    return datetime(value.year, value.month, 1, tzinfo=timezone.utc)


def _previous_month_start(month_start: datetime) -> datetime:
    return _month_start((month_start - timedelta(days=1)).date())


def _next_month_start(month_start: datetime) -> datetime:
    return _month_start((month_start + timedelta(days=32)).date())


def _in_window(trade: Trade, start: datetime | None, end: datetime) -> bool:
    exit_date = trade.exit_date
    return (start is None or exit_date >= start) and exit_date < end


def _change(current: Decimal | None, previous: Decimal | None) -> Decimal | None:
    if current is None or previous is None:
        return None
    return current - previous


def key_metrics(trades: Iterable[Trade], as_of: date | datetime | None = None) -> KeyMetrics:
    """
    Current calendar month's metrics with their change against last month.

    Months are taken in UTC from the exit date of each trade.
    """
    reference = as_of or datetime.now(timezone.utc)
    if isinstance(reference, datetime):
        reference = _as_utc(reference).date()

    this_month = _month_start(reference)
    last_month = _previous_month_start(this_month)
    next_month = _next_month_start(this_month)

    closed = _closed(trades)
    current = calculate_trade_statistics(t for t in closed if _in_window(t, this_month, next_month))
    previous = calculate_trade_statistics(t for t in closed if _in_window(t, last_month, this_month))

    return KeyMetrics(
        win_rate=MetricChange(current.win_rate, _change(current.win_rate, previous.win_rate)),
        profit_factor=MetricChange(
            current.profit_factor, _change(current.profit_factor, previous.profit_factor)
        ),
        average_rr=MetricChange(current.average_rr, _change(current.average_rr, previous.average_rr)),
        total_pnl=MetricChange(current.net_pnl, current.net_pnl - previous.net_pnl),
    )


def normalize_timeframe(timeframe: str | None) -> str:
    """Upper-case a timeframe key, falling back to 1M for unknown keys."""
    key = (timeframe or "").strip().upper()
    if key not in TIMEFRAME_DAYS:
        logger.debug(f"Unknown timeframe '{timeframe}', using {DEFAULT_TIMEFRAME}")
        return DEFAULT_TIMEFRAME
    return key


def timeframe_window(timeframe: str, end: datetime | None = None) -> tuple[datetime | None, datetime]:
    """
    Lookback window for a dashboard timeframe.

    Returns:
        (start, end); start is None for "ALL". Unknown timeframes use 1M.
    """
    end_at = _as_utc(end) if end is not None else datetime.now(timezone.utc)
    days = TIMEFRAME_DAYS[normalize_timeframe(timeframe)]
    return (None if days is None else end_at - timedelta(days=days)), end_at


def calculate_performance(
        initial_balance: Number,
        trades: Iterable[Trade],
        timeframe: str = DEFAULT_TIMEFRAME,
        end: datetime | None = None,
) -> PerformanceReport:
    """
    Statistics, drawdown and equity curve for the trades closed in a timeframe.

    The window is inclusive of its start and inclusive of its end.
    """
    start, end_at = timeframe_window(timeframe, end)
    closed = [
        t for t in _closed(trades)
        if (start is None or t.exit_date >= start) and t.exit_date <= end_at
    ]
    statistics = calculate_trade_statistics(closed)
    curve = build_equity_curve(initial_balance, closed, start)

    return PerformanceReport(
        timeframe=normalize_timeframe(timeframe),
        start=start,
        end=end_at,
        statistics=statistics,
        max_drawdown=calculate_max_drawdown(curve),
        net_pnl_percentage=net_pnl_percentage(initial_balance, statistics.net_pnl),
        equity_curve=curve,
    )
