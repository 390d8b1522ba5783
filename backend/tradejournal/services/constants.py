# backend/tradejournal/services/constants.py
"""
Centralized constants for the trading journal services.

Single source of truth for fee rates, the board lot table and rounding
quanta. Fee rates here are the defaults; deployments override them through
Settings (see FeeSchedule.from_settings).

Usage:
    from tradejournal.services.constants import (
        ZERO,
        BOARD_LOT_TABLE,
        DEFAULT_COMMISSION_RATE,
    )
"""

from decimal import Decimal


ZERO: Decimal = Decimal("0")
ONE_HUNDRED: Decimal = Decimal("100")

# Display rounding for money amounts (statistics, percentages)
MONEY_QUANTUM: Decimal = Decimal("0.01")
RATIO_QUANTUM: Decimal = Decimal("0.0001")

# Scale of the Numeric(18, 8) columns; derived prices are stored at this precision
STORAGE_QUANTUM: Decimal = Decimal("0.00000001")


# =============================================================================
# FEE SCHEDULE (PSE equities)
# =============================================================================

# Broker commission: 0.25% of gross, never less than the flat minimum
DEFAULT_COMMISSION_RATE: Decimal = Decimal("0.0025")
DEFAULT_MIN_COMMISSION: Decimal = Decimal("20")

# VAT is charged on the commission, not on the gross amount
DEFAULT_VAT_RATE: Decimal = Decimal("0.12")

# Exchange transaction fee: 0.005%
DEFAULT_EXCHANGE_FEE_RATE: Decimal = Decimal("0.00005")

# Securities regulator fee: 0.01%
DEFAULT_REGULATOR_FEE_RATE: Decimal = Decimal("0.0001")

# Clearing house fee: 0.01%
DEFAULT_CLEARING_FEE_RATE: Decimal = Decimal("0.0001")

# Stock transaction (sales) tax: 0.6%, sell side only
DEFAULT_SALES_TAX_RATE: Decimal = Decimal("0.006")


# =============================================================================
# BOARD LOT TABLE
# =============================================================================

# (upper price bound inclusive, lot size), checked in order.
# Prices above the last bound trade in lots of BOARD_LOT_ABOVE_TABLE.
BOARD_LOT_TABLE: tuple[tuple[Decimal, int], ...] = (
    (Decimal("0.01"), 1_000_000),
    (Decimal("0.05"), 200_000),
    (Decimal("0.25"), 100_000),
    (Decimal("0.50"), 10_000),
    (Decimal("5.00"), 1_000),
    (Decimal("10.00"), 100),
    (Decimal("50.00"), 10),
    (Decimal("100.00"), 10),
    (Decimal("200.00"), 5),
    (Decimal("500.00"), 5),
    (Decimal("1000.00"), 5),
    (Decimal("2000.00"), 5),
)
BOARD_LOT_ABOVE_TABLE: int = 5


# =============================================================================
# PRICING
# =============================================================================

# Seconds a fetched market price stays fresh in the price cache
DEFAULT_PRICE_CACHE_TTL_SECONDS: float = 60.0


# =============================================================================
# ANALYTICS
# =============================================================================

# Calendar-day lookback for dashboard timeframes; unknown keys fall back to 1M
TIMEFRAME_DAYS: dict[str, int | None] = {
    "1W": 7,
    "1M": 30,
    "3M": 90,
    "6M": 180,
    "1Y": 365,
    "ALL": None,
}
DEFAULT_TIMEFRAME: str = "1M"

# Label used for the cash slice of the allocation breakdown
CASH_ALLOCATION_LABEL: str = "Cash"

# Strategy bucket for closed trades recorded without one
UNKNOWN_STRATEGY: str = "Unknown"
