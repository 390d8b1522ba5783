# backend/tradejournal/schemas/portfolios.py
"""
Pydantic schemas for Portfolio input validation.

Validation layers:
- Field constraints: type, length, numeric limits
- Field validators: normalization (uppercase, trim)
- Service: existence checks, ledger invariants

IMPORTANT: All financial values use Decimal for precision.
"""

from decimal import Decimal

from pydantic import BaseModel, Field, field_validator

from tradejournal.schemas.validators import validate_currency


class PortfolioCreate(BaseModel):
    """
    Schema for creating a new portfolio.

    currency may be omitted; the service then applies settings.default_currency.
    The initial balance seeds the cash ledger and counts as the first deposit.
    """

    name: str = Field(
        ...,
        min_length=1,
        max_length=100,
        examples=["PSE Swing Trades", "Crypto"],
        description="Name of the portfolio"
    )

    initial_balance: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=18,
        decimal_places=8,
        description="Starting cash (0 or positive)",
        examples=["100000", "25000.50"]
    )

    currency: str | None = Field(
        default=None,
        description="Portfolio currency (ISO 4217)",
        examples=["PHP", "USD"]
    )

    @field_validator('name')
    @classmethod
    def normalize_name(cls, v: str) -> str:
        """Normalize name: trim whitespace, reject blank names."""
        v = v.strip()
        if not v:
            raise ValueError("Name cannot be blank")
        return v

    @field_validator('currency')
    @classmethod
    def validate_and_normalize_currency(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return validate_currency(v)
