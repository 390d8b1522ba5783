# backend/tradejournal/schemas/transactions.py
"""
Pydantic schemas for cash Transaction validation.

Deposits and withdrawals only; trade fills move cash through TradeService.
Amounts are always positive, the direction comes from the type.

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from tradejournal.models import TransactionType


class TransactionCreate(BaseModel):
    """Schema for recording a deposit or withdrawal."""

    type: TransactionType = Field(
        ...,
        description="deposit or withdrawal",
        examples=["deposit", "withdrawal"]
    )

    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Amount moved (must be positive)",
        examples=["5000", "1250.75"]
    )

    notes: str | None = Field(
        default=None,
        max_length=500,
        description="Optional free text"
    )

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v):
        """Accept DEPOSIT / Deposit / deposit."""
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator('notes')
    @classmethod
    def normalize_notes(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None
