# backend/tradejournal/services/journal/fees.py
"""
Fee model for PSE equity fills.

A buy or sell fill of gross notional G pays:

    commission    = max(G × commission_rate, min_commission)
    vat           = commission × vat_rate
    exchange_fee  = G × exchange_fee_rate
    regulator_fee = G × regulator_fee_rate
    clearing_fee  = G × clearing_fee_rate
    sales_tax     = G × sales_tax_rate     (sells only)

Amounts are not rounded here; callers quantize for display.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from tradejournal.services.constants import (
    DEFAULT_CLEARING_FEE_RATE,
    DEFAULT_COMMISSION_RATE,
    DEFAULT_EXCHANGE_FEE_RATE,
    DEFAULT_MIN_COMMISSION,
    DEFAULT_REGULATOR_FEE_RATE,
    DEFAULT_SALES_TAX_RATE,
    DEFAULT_VAT_RATE,
    ZERO,
)
from tradejournal.services.journal.types import FeeBreakdown, Number, require_positive, to_decimal

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeeSchedule:
    """Rates applied by compute_fees. All fractions of gross except min_commission."""

    commission_rate: Decimal = DEFAULT_COMMISSION_RATE
    min_commission: Decimal = DEFAULT_MIN_COMMISSION
    vat_rate: Decimal = DEFAULT_VAT_RATE
    exchange_fee_rate: Decimal = DEFAULT_EXCHANGE_FEE_RATE
    regulator_fee_rate: Decimal = DEFAULT_REGULATOR_FEE_RATE
    clearing_fee_rate: Decimal = DEFAULT_CLEARING_FEE_RATE
    sales_tax_rate: Decimal = DEFAULT_SALES_TAX_RATE

    @classmethod
    def from_settings(cls, settings: Any) -> "FeeSchedule":
        """Build a schedule from a Settings object (see tradejournal.config)."""
        return cls(
            commission_rate=to_decimal(settings.commission_rate, "commission_rate"),
            min_commission=to_decimal(settings.min_commission, "min_commission"),
            vat_rate=to_decimal(settings.vat_rate, "vat_rate"),
            exchange_fee_rate=to_decimal(settings.exchange_fee_rate, "exchange_fee_rate"),
            regulator_fee_rate=to_decimal(settings.regulator_fee_rate, "regulator_fee_rate"),
            clearing_fee_rate=to_decimal(settings.clearing_fee_rate, "clearing_fee_rate"),
            sales_tax_rate=to_decimal(settings.sales_tax_rate, "sales_tax_rate"),
        )


DEFAULT_FEE_SCHEDULE = FeeSchedule()


def compute_fees(
        gross_amount: Number,
        is_buy: bool = True,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> FeeBreakdown:
    """
    Compute the costs of a single fill.

    Args:
        gross_amount: Price × quantity of the fill
        is_buy: True for a buy fill, False for a sell fill
        schedule: Rates to apply

    Returns:
        FeeBreakdown with every component, the total and the net amount

    Raises:
        InvalidArgumentError: If gross_amount is not positive

    Example:
        >>> compute_fees(Decimal("1000")).commission
        Decimal('20')
    """
    gross = require_positive(gross_amount, "gross_amount")

    commission = max(gross * schedule.commission_rate, schedule.min_commission)
    vat = commission * schedule.vat_rate
    exchange_fee = gross * schedule.exchange_fee_rate
    regulator_fee = gross * schedule.regulator_fee_rate
    clearing_fee = gross * schedule.clearing_fee_rate
    sales_tax = ZERO if is_buy else gross * schedule.sales_tax_rate

    total_fees = commission + vat + exchange_fee + regulator_fee + clearing_fee + sales_tax
    net_amount = gross + total_fees if is_buy else gross - total_fees

    return FeeBreakdown(
        gross_amount=gross,
        is_buy=is_buy,
        commission=commission,
        vat=vat,
        exchange_fee=exchange_fee,
        regulator_fee=regulator_fee,
        clearing_fee=clearing_fee,
        sales_tax=sales_tax,
        total_fees=total_fees,
        net_amount=net_amount,
    )


def buy_fees(price: Number, quantity: Number, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> Decimal:
    """Total fees of buying `quantity` at `price`."""
    return compute_fees(to_decimal(price, "price") * to_decimal(quantity, "quantity"), True, schedule).total_fees


def sell_fees(price: Number, quantity: Number, schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE) -> Decimal:
    """Total fees of selling `quantity` at `price`."""
    return compute_fees(to_decimal(price, "price") * to_decimal(quantity, "quantity"), False, schedule).total_fees


def round_trip_fees(
        entry_price: Number,
        exit_price: Number,
        quantity: Number,
        schedule: FeeSchedule = DEFAULT_FEE_SCHEDULE,
) -> Decimal:
    """Entry buy fees plus exit sell fees for the same quantity."""
    return buy_fees(entry_price, quantity, schedule) + sell_fees(exit_price, quantity, schedule)
