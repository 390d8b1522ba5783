# backend/tradejournal/services/journal/types.py
"""
Data types for the journal calculation core.

These dataclasses are the in-memory shapes the calculators work on. They are
NOT Pydantic schemas (input validation for services lives in
tradejournal/schemas) and NOT ORM rows (tradejournal/models.py).

Design Principles:
- One canonical Trade shape, validated on every construction
- Immutable (frozen=True); transitions return new values
- Decimal for ALL financial values (floats are converted through str)
- Timestamps are timezone-aware; naive values are taken as UTC

Type Hierarchy:
    Trade               - A position, open or closed
    Transaction         - A deposit or withdrawal
    PortfolioLedger     - Stored cash/P&L ledger of a portfolio
    HistoryEntry        - Audit record emitted by lifecycle transitions
    FeeBreakdown        - Output of the fee model
    PositionValuation   - Mark-to-market of one open trade
    OpenPositionsSummary- Aggregate over all open trades
    PortfolioSummary    - Output of the portfolio reducer
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Union

from tradejournal.models import (
    AssetType,
    HistoryAction,
    Market,
    TradeSide,
    TradeStatus,
    TransactionType,
)
from tradejournal.services.constants import ZERO
from tradejournal.services.exceptions import InconsistentStateError, InvalidArgumentError

# Anything the core accepts where a number is expected
Number = Union[Decimal, int, float, str]


# =============================================================================
# COERCION HELPERS
# =============================================================================

def to_decimal(value: Number, field_name: str = "value") -> Decimal:
    """
    Convert a numeric input to Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion.

    Raises:
        InvalidArgumentError: If the value is not a finite number
    """
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{field_name} must be a number, got bool", field=field_name)
    try:
        if isinstance(value, Decimal):
            result = value
        elif isinstance(value, float):
            result = Decimal(str(value))
        else:
            result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidArgumentError(f"{field_name} must be a number, got {value!r}", field=field_name)

    if not result.is_finite():
        raise InvalidArgumentError(f"{field_name} must be finite, got {value!r}", field=field_name)
    return result


def as_price(value: Any) -> Decimal | None:
    """Coerce an upstream price to a positive finite Decimal, or None when unusable."""
    if value is None:
        return None
    try:
        price = to_decimal(value, "price")
    except InvalidArgumentError:
        return None
    return price if price > ZERO else None


def require_positive(value: Number, field_name: str) -> Decimal:
    """Convert to Decimal and reject zero or negative values."""
    result = to_decimal(value, field_name)
    if result <= ZERO:
        raise InvalidArgumentError(f"{field_name} must be positive, got {result}", field=field_name)
    return result


def _optional_positive(value: Number | None, field_name: str) -> Decimal | None:
    if value is None:
        return None
    return require_positive(value, field_name)


def _as_aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _coerce_enum(enum_cls: type[enum.Enum], value: Any, field_name: str):
    try:
        return enum_cls(value)
    except ValueError:
        valid = ", ".join(member.value for member in enum_cls)
        raise InvalidArgumentError(
            f"Invalid {field_name}: {value!r}. Valid options: {valid}",
            field=field_name,
        )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# TRADE
# =============================================================================

@dataclass(frozen=True)
class Trade:
    """
    A single position, open or closed.

    Construct through Trade.open() / Trade.closed(); every construction path
    (including dataclasses.replace) is normalized and validated in
    __post_init__.

    Invariants:
        - entry_price > 0, quantity > 0
        - status == CLOSED ⟺ exit_price is set (exit_price > 0)
        - closed trades always carry exit_date
        - realized_pnl and exit_date only on closed trades
        - exit_date ≥ entry_date when both are present
        - current_price > 0 when present (display only, never ground truth)

    Attributes:
        parent_id: For closed slices produced by a partial close, the id of
                   the trade that still holds the remaining quantity
    """

    symbol: str
    side: TradeSide
    entry_price: Decimal
    quantity: Decimal
    entry_date: datetime
    status: TradeStatus = TradeStatus.OPEN
    exit_price: Decimal | None = None
    exit_date: datetime | None = None
    realized_pnl: Decimal | None = None
    current_price: Decimal | None = None
    id: int | None = None
    portfolio_id: int | None = None
    asset_type: AssetType = AssetType.STOCKS
    market: Market | None = Market.PH
    strategy: str | None = None
    notes: str | None = None
    stop_loss: Decimal | None = None
    take_profit: Decimal | None = None
    parent_id: int | None = None

    def __post_init__(self) -> None:
        symbol = (self.symbol or "").strip().upper()
        if not symbol:
            raise InvalidArgumentError("symbol cannot be empty", field="symbol")

        normalized = {
            "symbol": symbol,
            "side": _coerce_enum(TradeSide, self.side, "side"),
            "status": _coerce_enum(TradeStatus, self.status, "status"),
            "asset_type": _coerce_enum(AssetType, self.asset_type, "asset_type"),
            "market": None if self.market is None else _coerce_enum(Market, self.market, "market"),
            "entry_price": require_positive(self.entry_price, "entry_price"),
            "quantity": require_positive(self.quantity, "quantity"),
            "exit_price": _optional_positive(self.exit_price, "exit_price"),
            "current_price": _optional_positive(self.current_price, "current_price"),
            "stop_loss": _optional_positive(self.stop_loss, "stop_loss"),
            "take_profit": _optional_positive(self.take_profit, "take_profit"),
            "realized_pnl": None if self.realized_pnl is None else to_decimal(self.realized_pnl, "realized_pnl"),
            "entry_date": _as_aware(self.entry_date),
            "exit_date": _as_aware(self.exit_date),
        }
        for name, value in normalized.items():
            object.__setattr__(self, name, value)
        self.validate()

    def validate(self) -> None:
        """
        Check the cross-field invariants.

        Raises:
            InvalidArgumentError: Missing entry date or exit before entry
            InconsistentStateError: Status disagrees with the exit attributes
        """
        if self.entry_date is None:
            raise InvalidArgumentError("entry_date is required", field="entry_date")

        if self.status == TradeStatus.CLOSED:
            if self.exit_price is None:
                raise InconsistentStateError(f"Closed trade {self.symbol} has no exit price")
            if self.exit_date is None:
                raise InconsistentStateError(f"Closed trade {self.symbol} has no exit date")
        else:
            if self.exit_price is not None or self.exit_date is not None:
                raise InconsistentStateError(f"Open trade {self.symbol} cannot carry exit attributes")
            if self.realized_pnl is not None:
                raise InconsistentStateError(f"Open trade {self.symbol} cannot carry realized P&L")

        if self.exit_date is not None and self.exit_date < self.entry_date:
            raise InvalidArgumentError(
                f"exit_date {self.exit_date.isoformat()} is before entry_date {self.entry_date.isoformat()}",
                field="exit_date",
            )

    # -------------------------------------------------------------------------
    # Factories
    # -------------------------------------------------------------------------

    @classmethod
    def open(
            cls,
            symbol: str,
            side: TradeSide | str,
            entry_price: Number,
            quantity: Number,
            entry_date: datetime | None = None,
            **attributes: Any,
    ) -> Trade:
        """Create an open trade (no exit fields)."""
        return cls(
            symbol=symbol,
            side=side,
            entry_price=entry_price,
            quantity=quantity,
            entry_date=entry_date or utcnow(),
            status=TradeStatus.OPEN,
            **attributes,
        )

    @classmethod
    def closed(
            cls,
            symbol: str,
            side: TradeSide | str,
            entry_price: Number,
            quantity: Number,
            entry_date: datetime,
            exit_price: Number,
            exit_date: datetime,
            realized_pnl: Number,
            **attributes: Any,
    ) -> Trade:
        """Create a closed trade. realized_pnl must come from the P&L calculator."""
        return cls(
            symbol=symbol,
            side=side,
            entry_price=entry_price,
            quantity=quantity,
            entry_date=entry_date,
            status=TradeStatus.CLOSED,
            exit_price=exit_price,
            exit_date=exit_date,
            realized_pnl=realized_pnl,
            **attributes,
        )

    @classmethod
    def from_record(cls, record: Any) -> Trade:
        """Build a Trade from any object exposing the trade columns (e.g. an ORM row)."""
        return cls(
            symbol=record.symbol,
            side=record.side,
            entry_price=record.entry_price,
            quantity=record.quantity,
            entry_date=record.entry_date,
            status=record.status,
            exit_price=record.exit_price,
            exit_date=record.exit_date,
            realized_pnl=record.realized_pnl,
            current_price=record.current_price,
            id=record.id,
            portfolio_id=record.portfolio_id,
            asset_type=record.asset_type,
            market=record.market,
            strategy=record.strategy,
            notes=record.notes,
            stop_loss=record.stop_loss,
            take_profit=record.take_profit,
            parent_id=record.parent_id,
        )

    # -------------------------------------------------------------------------
    # Derived values
    # -------------------------------------------------------------------------

    @property
    def is_open(self) -> bool:
        return self.status == TradeStatus.OPEN

    @property
    def is_closed(self) -> bool:
        return self.status == TradeStatus.CLOSED

    @property
    def cost_basis(self) -> Decimal:
        """Entry notional (entry_price × quantity), fees excluded."""
        return self.entry_price * self.quantity

    @property
    def risk_reward_ratio(self) -> Decimal | None:
        """|take_profit - entry| / |entry - stop_loss|, None without both levels."""
        if self.stop_loss is None or self.take_profit is None:
            return None
        risk = abs(self.entry_price - self.stop_loss)
        if risk == ZERO:
            return None
        return abs(self.take_profit - self.entry_price) / risk


# =============================================================================
# CASH TRANSACTIONS & LEDGER
# =============================================================================

@dataclass(frozen=True)
class Transaction:
    """
    A deposit or withdrawal.

    amount is always positive; the direction comes from `type`. Transactions
    are immutable: corrections are compensating transactions that point at
    the original through reverses_id.
    """

    type: TransactionType
    amount: Decimal
    id: int | None = None
    portfolio_id: int | None = None
    created_at: datetime | None = None
    notes: str | None = None
    reverses_id: int | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", _coerce_enum(TransactionType, self.type, "type"))
        object.__setattr__(self, "amount", require_positive(self.amount, "amount"))
        object.__setattr__(self, "created_at", _as_aware(self.created_at))

    @classmethod
    def create(cls, type: TransactionType | str, amount: Number, **attributes: Any) -> Transaction:
        return cls(type=type, amount=amount, created_at=attributes.pop("created_at", None) or utcnow(), **attributes)

    @classmethod
    def from_record(cls, record: Any) -> Transaction:
        return cls(
            type=record.type,
            amount=record.amount,
            id=record.id,
            portfolio_id=record.portfolio_id,
            created_at=record.created_at,
            notes=record.notes,
            reverses_id=record.reverses_id,
        )

    @property
    def signed_amount(self) -> Decimal:
        """Positive for deposits, negative for withdrawals."""
        return self.amount if self.type == TransactionType.DEPOSIT else -self.amount


@dataclass(frozen=True)
class PortfolioLedger:
    """
    Stored ledger figures of a portfolio, in the portfolio currency.

    available_cash is the raw cash ledger: it excludes the value of open
    positions funded from it. current_balance is the legacy duplicate of
    equity kept in sync at write time.
    """

    initial_balance: Decimal
    available_cash: Decimal
    current_balance: Decimal
    total_deposits: Decimal = ZERO
    total_withdrawals: Decimal = ZERO
    realized_pnl: Decimal = ZERO
    currency: str = "PHP"
    id: int | None = None
    name: str | None = None

    def __post_init__(self) -> None:
        for name in (
                "initial_balance", "available_cash", "current_balance",
                "total_deposits", "total_withdrawals", "realized_pnl",
        ):
            object.__setattr__(self, name, to_decimal(getattr(self, name), name))
        if self.initial_balance < ZERO:
            raise InvalidArgumentError("initial_balance cannot be negative", field="initial_balance")

    @classmethod
    def new(cls, initial_balance: Number, currency: str = "PHP", **attributes: Any) -> PortfolioLedger:
        """Seed a fresh ledger: the initial balance counts as the first deposit."""
        balance = to_decimal(initial_balance, "initial_balance")
        return cls(
            initial_balance=balance,
            available_cash=balance,
            current_balance=balance,
            total_deposits=balance,
            total_withdrawals=ZERO,
            realized_pnl=ZERO,
            currency=currency,
            **attributes,
        )

    @classmethod
    def from_record(cls, record: Any) -> PortfolioLedger:
        return cls(
            initial_balance=record.initial_balance,
            available_cash=record.available_cash,
            current_balance=record.current_balance,
            total_deposits=record.total_deposits,
            total_withdrawals=record.total_withdrawals,
            realized_pnl=record.realized_pnl,
            currency=record.currency,
            id=record.id,
            name=record.name,
        )


@dataclass(frozen=True)
class HistoryEntry:
    """
    Audit record for the append-only trade history log.

    details values are JSON-friendly (Decimals rendered as strings).
    """

    trade_id: int | None
    action: HistoryAction
    details: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)


# =============================================================================
# CALCULATION RESULTS
# =============================================================================

@dataclass(frozen=True)
class FeeBreakdown:
    """
    Transaction costs of a single buy or sell fill.

    net_amount = gross + total_fees when buying (cost),
                 gross - total_fees when selling (proceeds).
    """

    gross_amount: Decimal
    is_buy: bool
    commission: Decimal
    vat: Decimal
    exchange_fee: Decimal
    regulator_fee: Decimal
    clearing_fee: Decimal
    sales_tax: Decimal
    total_fees: Decimal
    net_amount: Decimal


@dataclass(frozen=True)
class CloseResult:
    """Result of fully closing an open trade."""

    trade: Trade
    history: list[HistoryEntry] = field(default_factory=list)


@dataclass(frozen=True)
class PartialCloseResult:
    """
    Result of closing part of an open trade.

    Attributes:
        remaining: The still-open trade with reduced quantity, or None when
                   the whole position was closed
        closed_slice: The closed trade carrying the realized P&L of the sold
                      quantity
        history: Entries for the audit log (parent first, then slice)
    """

    remaining: Trade | None
    closed_slice: Trade
    history: list[HistoryEntry] = field(default_factory=list)

    @property
    def is_full_close(self) -> bool:
        return self.remaining is None


class PriceSource(str, enum.Enum):
    """Where the price used to value an open trade came from."""
    LIVE = "live"              # price lookup returned a value
    LAST_KNOWN = "last_known"  # trade's recorded current_price
    ENTRY = "entry"            # nothing observed, valued at entry price


@dataclass(frozen=True)
class PositionValuation:
    """Mark-to-market of a single open trade."""

    trade: Trade
    effective_price: Decimal
    price_source: PriceSource
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pnl: Decimal

    @property
    def is_estimated(self) -> bool:
        """True when no live price was available for this trade."""
        return self.price_source != PriceSource.LIVE


@dataclass(frozen=True)
class OpenPositionsSummary:
    """
    Aggregate valuation of open trades.

    Attributes:
        by_symbol: Market value per symbol (for allocation charts)
        positions: Per-trade valuations, in input order
    """

    by_symbol: dict[str, Decimal]
    total_market_value: Decimal
    total_unrealized_pnl: Decimal
    total_cost_basis: Decimal
    positions: list[PositionValuation] = field(default_factory=list)

    @property
    def has_estimated_prices(self) -> bool:
        return any(p.is_estimated for p in self.positions)

    @property
    def estimated_symbols(self) -> list[str]:
        """Symbols valued without a live price, sorted, without duplicates."""
        return sorted({p.trade.symbol for p in self.positions if p.is_estimated})


@dataclass(frozen=True)
class AllocationEntry:
    label: str
    value: Decimal


@dataclass(frozen=True)
class PortfolioSummary:
    """
    Read-path figures for one portfolio.

    equity_value is defined from the P&L ledger
    (initial_balance + realized + unrealized), never as cash + market value.
    available_cash is a display aggregate (raw cash + market value of open
    positions) and must not be debited or credited.
    """

    currency: str
    initial_balance: Decimal
    available_cash: Decimal
    cash_balance: Decimal
    equity_value: Decimal
    realized_pnl: Decimal
    unrealized_pnl: Decimal
    total_pnl: Decimal
    total_market_value: Decimal
    total_cost_basis: Decimal
    total_deposits: Decimal
    total_withdrawals: Decimal
    allocation: list[AllocationEntry] = field(default_factory=list)
    positions: OpenPositionsSummary | None = None

    @property
    def has_estimated_prices(self) -> bool:
        return self.positions is not None and self.positions.has_estimated_prices
