# backend/tradejournal/models.py
import enum
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, DateTime, ForeignKey, Enum, Numeric, JSON, Index, CheckConstraint, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# Enums are shared by the ORM layer and the in-memory journal types
class TradeSide(str, enum.Enum):
    LONG = "long"
    SHORT = "short"


class TradeStatus(str, enum.Enum):
    """
    Trade lifecycle.

    State transitions:
        OPEN → CLOSED                      (full close, terminal)
        OPEN → OPEN (reduced) + CLOSED     (partial close, new closed slice)

    No transition leaves CLOSED.
    """
    OPEN = "open"
    CLOSED = "closed"


class AssetType(str, enum.Enum):
    STOCKS = "stocks"
    FOREX = "forex"
    CRYPTO = "crypto"


class Market(str, enum.Enum):
    PH = "PH"
    US = "US"


class TransactionType(str, enum.Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class HistoryAction(str, enum.Enum):
    OPEN = "open"
    CLOSE = "close"
    PARTIAL_CLOSE = "partial_close"
    ADD_POSITION = "add_position"
    ADD_REMARK = "add_remark"
    UPDATE_PRICE = "update_price"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Portfolio(Base):
    """
    Aggregation boundary with its own currency and cash ledger.

    Ledger columns are only ever changed through single-statement
    `col = col ± :amount` updates (see PortfolioService / TradeService).
    `current_balance` is the legacy duplicate of equity, kept in sync at
    write time.
    """
    __tablename__ = "portfolios"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    name: Mapped[str] = mapped_column(String)
    currency: Mapped[str] = mapped_column(String(3), default="PHP")

    initial_balance: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    available_cash: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    current_balance: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    total_deposits: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    total_withdrawals: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))
    realized_pnl: Mapped[Decimal] = mapped_column(Numeric(18, 8), default=Decimal("0"))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    # Portfolio is the sole owner of its trades and cash movements
    trades: Mapped[list["TradeRecord"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )
    transactions: Mapped[list["PortfolioTransaction"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )


class TradeRecord(Base):
    """
    A single position, open or closed.

    Invariant: status == CLOSED ⟺ exit_price IS NOT NULL.
    A partial close leaves this row open with a reduced quantity and inserts
    a new closed row whose parent_id points back here.
    """
    __tablename__ = "trades"
    __table_args__ = (
        # "List open/closed trades of portfolio X" is the dominant access pattern
        Index('ix_trade_portfolio_status', 'portfolio_id', 'status'),
        Index('ix_trade_portfolio_symbol_side', 'portfolio_id', 'symbol', 'side'),
        CheckConstraint('quantity > 0', name='ck_trade_quantity_positive'),
        CheckConstraint('entry_price > 0', name='ck_trade_entry_price_positive'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    parent_id: Mapped[int | None] = mapped_column(ForeignKey("trades.id"), nullable=True, default=None)

    symbol: Mapped[str] = mapped_column(String(20), index=True)
    side: Mapped[TradeSide] = mapped_column(Enum(TradeSide))
    status: Mapped[TradeStatus] = mapped_column(Enum(TradeStatus), default=TradeStatus.OPEN)
    asset_type: Mapped[AssetType] = mapped_column(Enum(AssetType), default=AssetType.STOCKS)
    market: Mapped[Market | None] = mapped_column(Enum(Market), nullable=True, default=Market.PH)

    entry_price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    entry_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))

    # Exit-only attributes
    exit_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    exit_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    realized_pnl: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)

    # Last observed market price; display only, never ground truth
    current_price: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)

    strategy: Mapped[str | None] = mapped_column(String, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    stop_loss: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)
    take_profit: Mapped[Decimal | None] = mapped_column(Numeric(18, 8), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="trades")
    history: Mapped[list["TradeHistory"]] = relationship(
        back_populates="trade",
        cascade="all, delete-orphan",
        order_by="TradeHistory.id",
    )


class PortfolioTransaction(Base):
    """
    Cash movement against a portfolio.

    Rows are immutable once written. The amount is always positive; the sign
    comes from the type. Corrections are recorded as a reversal row whose
    reverses_id points at the original.
    """
    __tablename__ = "portfolio_transactions"
    __table_args__ = (
        Index('ix_portfolio_transaction_portfolio_created', 'portfolio_id', 'created_at'),
        CheckConstraint('amount > 0', name='ck_transaction_amount_positive'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[int] = mapped_column(ForeignKey("portfolios.id"), index=True)
    type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    notes: Mapped[str | None] = mapped_column(String, nullable=True)
    reverses_id: Mapped[int | None] = mapped_column(
        ForeignKey("portfolio_transactions.id"), nullable=True, unique=True, default=None
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="transactions")


class TradeHistory(Base):
    """
    Append-only audit log keyed by trade id.

    Example details for a partial close:
        {"sold_quantity": "500", "remaining_quantity": "500",
         "exit_price": "12.5", "realized_pnl": "1210.32", "slice_id": 7}
    """
    __tablename__ = "trade_history"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    trade_id: Mapped[int] = mapped_column(ForeignKey("trades.id"), index=True)
    action: Mapped[HistoryAction] = mapped_column(Enum(HistoryAction))
    details: Mapped[dict] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    trade: Mapped["TradeRecord"] = relationship(back_populates="history")
