# backend/tradejournal/services/journal/board_lot.py
"""
Board lot rules for PSE equities.

The minimum tradable unit depends on the share price; every order quantity
must be a whole multiple of the lot in force at its price.
"""

from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal

from tradejournal.services.constants import BOARD_LOT_ABOVE_TABLE, BOARD_LOT_TABLE, ZERO
from tradejournal.services.exceptions import InvalidArgumentError
from tradejournal.services.journal.types import Number, require_positive


def board_lot(unit_price: Number) -> int:
    """
    Lot size in force at a price.

    Raises:
        InvalidArgumentError: If unit_price is not positive

    Example:
        >>> board_lot(Decimal("0.0095"))
        1000000
        >>> board_lot(Decimal("150"))
        5
    """
    price = require_positive(unit_price, "unit_price")
    for upper_bound, lot in BOARD_LOT_TABLE:
        if price <= upper_bound:
            return lot
    return BOARD_LOT_ABOVE_TABLE


def _require_lot(lot_size: Number) -> Decimal:
    lot = require_positive(lot_size, "lot_size")
    if lot != lot.to_integral_value():
        raise InvalidArgumentError(f"lot_size must be a whole number, got {lot}", field="lot_size")
    return lot


def validate_quantity(quantity: Number, lot_size: Number) -> bool:
    """True when quantity is a positive whole multiple of lot_size."""
    qty = require_positive(quantity, "quantity")
    lot = _require_lot(lot_size)
    return qty % lot == ZERO


def round_down_to_lot(quantity: Number, lot_size: Number) -> int:
    """
    Largest multiple of lot_size not above quantity, but never less than one lot.

    Example:
        >>> round_down_to_lot(1550, 100)
        1500
        >>> round_down_to_lot(50, 100)
        100
    """
    qty = require_positive(quantity, "quantity")
    lot = _require_lot(lot_size)
    lots = (qty / lot).to_integral_value(rounding=ROUND_FLOOR)
    return int(max(lots, Decimal(1)) * lot)


def round_up_to_lot(quantity: Number, lot_size: Number) -> int:
    """Smallest multiple of lot_size not below quantity."""
    qty = require_positive(quantity, "quantity")
    lot = _require_lot(lot_size)
    lots = (qty / lot).to_integral_value(rounding=ROUND_CEILING)
    return int(lots * lot)


def minimum_investment(unit_price: Number) -> Decimal:
    """Cost of one board lot at unit_price, fees excluded."""
    price = require_positive(unit_price, "unit_price")
    return price * board_lot(price)
