# backend/tradejournal/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas.

This module provides:
- Symbol validation and normalization
- Currency code validation
- Timestamp normalization (naive → UTC, no future dates)

These validators ensure consistent input handling across all schemas.
"""

import re
from datetime import datetime, timezone

# =============================================================================
# CONSTANTS
# =============================================================================

# Symbol: 1-20 chars, alphanumeric plus dots, dashes and slashes (BRK.B, BTC-USD, EUR/USD)
SYMBOL_PATTERN = re.compile(r'^[A-Z0-9][A-Z0-9./\-]{0,19}$')
SYMBOL_MAX_LENGTH = 20

# Currency: ISO 4217 format (3 uppercase letters)
CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')



# =============================================================================
# SYMBOL VALIDATION
# =============================================================================

def validate_symbol(value: str) -> str:
    """
    Validate and normalize a ticker symbol.

    Valid formats:
    - Exchange tickers: BDO, JFC, AAPL
    - With dots: BRK.B
    - Pairs: BTC-USD, EUR/USD

    Raises:
        ValueError: If the symbol format is invalid
    """
    if not value:
        raise ValueError("Symbol cannot be empty")

    normalized = value.strip().upper()

    if len(normalized) > SYMBOL_MAX_LENGTH:
        raise ValueError(f"Symbol cannot exceed {SYMBOL_MAX_LENGTH} characters")

    if not SYMBOL_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid symbol format: '{normalized}'. "
            "Symbol must be alphanumeric and may include dots (.), dashes (-) or slashes (/)"
        )

    return normalized


# =============================================================================
# CURRENCY VALIDATION
# =============================================================================

def validate_currency(value: str) -> str:
    """Normalize a currency code and check it is ISO 4217 shaped."""
    if not value:
        raise ValueError("Currency cannot be empty")

    normalized = value.strip().upper()
    if not CURRENCY_PATTERN.match(normalized):
        raise ValueError(f"Invalid currency code: '{value}'. Expected 3 letters, e.g. PHP")
    return normalized


# =============================================================================
# TIMESTAMP VALIDATION
# =============================================================================

def ensure_utc_not_future(value: datetime | None, field_name: str = "Date") -> datetime | None:
    """Treat naive timestamps as UTC and reject timestamps in the future."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)

    current_time = datetime.now(timezone.utc)
    if value > current_time:
        raise ValueError(f"{field_name} cannot be in the future (sent: {value}, now: {current_time})")
    return value
