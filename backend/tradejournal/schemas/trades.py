# backend/tradejournal/schemas/trades.py
"""
Pydantic schemas for Trade input validation.

These schemas define what callers must send to open, close and partially
close trades. Structural checks live here; state checks (trade still open,
enough cash, board lots) are done by the journal core and TradeService.

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from tradejournal.models import AssetType, Market, TradeSide
from tradejournal.schemas.validators import ensure_utc_not_future, validate_symbol


# =============================================================================
# OPEN
# =============================================================================

class TradeCreate(BaseModel):
    """
    Schema for opening a trade.

    If the portfolio already holds an open trade with the same symbol and
    side, the service adds to that position instead of creating a new one.
    """

    portfolio_id: int = Field(..., gt=0, description="Portfolio that funds the trade")

    symbol: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Ticker symbol (normalized to uppercase)",
        examples=["BDO", "JFC", "BTC-USD"]
    )

    side: TradeSide = Field(default=TradeSide.LONG, examples=["long", "short"])

    entry_price: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Fill price (must be positive)",
        examples=["140.50", "0.0095"]
    )

    quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Number of shares/units (must be positive)",
        examples=["100", "0.25"]
    )

    entry_date: datetime | None = Field(
        default=None,
        description="Fill time; defaults to now",
        examples=["2026-01-15T09:30:00+08:00"]
    )

    asset_type: AssetType = Field(default=AssetType.STOCKS)
    market: Market | None = Field(default=Market.PH)

    strategy: str | None = Field(default=None, max_length=100)
    notes: str | None = Field(default=None, max_length=2000)

    stop_loss: Decimal | None = Field(default=None, gt=0, max_digits=18, decimal_places=8)
    take_profit: Decimal | None = Field(default=None, gt=0, max_digits=18, decimal_places=8)

    # =========================================================================
    # FIELD VALIDATORS (Normalization & Validation)
    # =========================================================================

    @field_validator('symbol')
    @classmethod
    def validate_and_normalize_symbol(cls, v: str) -> str:
        return validate_symbol(v)

    @field_validator('side', 'asset_type', mode='before')
    @classmethod
    def lowercase_enum(cls, v):
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('market', mode='before')
    @classmethod
    def uppercase_market(cls, v):
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @field_validator('entry_date')
    @classmethod
    def validate_entry_date(cls, v: datetime | None) -> datetime | None:
        return ensure_utc_not_future(v, "Entry date")

    @field_validator('strategy', 'notes')
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


# =============================================================================
# CLOSE
# =============================================================================

class TradeCloseRequest(BaseModel):
    """Schema for closing the whole position."""

    exit_price: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Fill price of the sale (must be positive)"
    )

    exit_date: datetime | None = Field(default=None, description="Fill time; defaults to now")

    @field_validator('exit_date')
    @classmethod
    def validate_exit_date(cls, v: datetime | None) -> datetime | None:
        return ensure_utc_not_future(v, "Exit date")


class PartialCloseRequest(TradeCloseRequest):
    """Schema for closing part of a position."""

    quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Quantity to sell (must be positive, at most the open quantity)"
    )


# =============================================================================
# REMARKS & PRICES
# =============================================================================

class TradeRemarkCreate(BaseModel):
    """Schema for appending a remark to a trade's history."""

    content: str = Field(..., min_length=1, max_length=2000)

    @field_validator('content')
    @classmethod
    def reject_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Remark cannot be blank")
        return v


class PriceMark(BaseModel):
    """Schema for recording the last observed market price of an open trade."""

    price: Decimal = Field(..., gt=0, max_digits=18, decimal_places=8)
