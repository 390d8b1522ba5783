# backend/tests/schemas/test_trades.py
"""
Tests for trade schemas and the shared validators.

This module tests:
- Field validation (required fields, positive prices and quantities)
- Normalizers (symbol uppercase, enum case, whitespace trimming)
- Date validation (naive → UTC, future dates rejected)
"""

import pytest
from datetime import datetime, timezone, timedelta
from decimal import Decimal

from pydantic import ValidationError

from tradejournal.models import AssetType, Market, TradeSide
from tradejournal.schemas import (
    PartialCloseRequest,
    PriceMark,
    TradeCloseRequest,
    TradeCreate,
    TradeRemarkCreate,
)
from tradejournal.schemas.validators import (
    ensure_utc_not_future,
    validate_currency,
    validate_symbol,
)


# =============================================================================
# TRADE CREATE TESTS
# =============================================================================

class TestTradeCreate:
    """Tests for TradeCreate schema."""

    def test_valid_trade_create(self):
        """Should accept valid trade data and apply defaults."""
        data = TradeCreate(
            portfolio_id=1,
            symbol="bdo",
            entry_price=Decimal("140.50"),
            quantity=Decimal("1000"),
        )

        assert data.symbol == "BDO"
        assert data.side == TradeSide.LONG
        assert data.asset_type == AssetType.STOCKS
        assert data.market == Market.PH
        assert data.entry_date is None

    def test_required_fields(self):
        """Should require portfolio_id, symbol, entry_price, quantity."""
        with pytest.raises(ValidationError) as exc_info:
            TradeCreate()

        error_fields = {e["loc"][0] for e in exc_info.value.errors()}
        assert {"portfolio_id", "symbol", "entry_price", "quantity"} <= error_fields

    @pytest.mark.parametrize("field", ["entry_price", "quantity"])
    @pytest.mark.parametrize("value", [Decimal("0"), Decimal("-1")])
    def test_non_positive_amounts_rejected(self, field, value):
        values = {"portfolio_id": 1, "symbol": "BDO", "entry_price": Decimal("140"), "quantity": Decimal("100")}
        values[field] = value

        with pytest.raises(ValidationError):
            TradeCreate(**values)

    def test_enum_inputs_are_case_insensitive(self):
        data = TradeCreate(
            portfolio_id=1, symbol="btc-usd", entry_price=Decimal("60000"), quantity=Decimal("0.25"),
            side="SHORT", asset_type="Crypto", market="us",
        )

        assert data.side == TradeSide.SHORT
        assert data.asset_type == AssetType.CRYPTO
        assert data.market == Market.US

    def test_blank_text_becomes_none(self):
        data = TradeCreate(
            portfolio_id=1, symbol="JFC", entry_price=Decimal("250"), quantity=Decimal("10"),
            strategy="   ", notes="  earnings play  ",
        )

        assert data.strategy is None
        assert data.notes == "earnings play"

    def test_naive_entry_date_is_utc(self):
        data = TradeCreate(
            portfolio_id=1, symbol="JFC", entry_price=Decimal("250"), quantity=Decimal("10"),
            entry_date=datetime(2026, 1, 5, 9, 30),
        )
        assert data.entry_date == datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)

    def test_future_entry_date_rejected(self):
        with pytest.raises(ValidationError, match="Entry date cannot be in the future"):
            TradeCreate(
                portfolio_id=1, symbol="JFC", entry_price=Decimal("250"), quantity=Decimal("10"),
                entry_date=datetime.now(timezone.utc) + timedelta(days=1),
            )

    def test_too_many_decimal_places_rejected(self):
        with pytest.raises(ValidationError):
            TradeCreate(portfolio_id=1, symbol="BDO", entry_price=Decimal("1.123456789"), quantity=Decimal("1"))


# =============================================================================
# CLOSE / REMARK / PRICE TESTS
# =============================================================================

class TestCloseRequests:
    """Tests for TradeCloseRequest and PartialCloseRequest."""

    def test_close_request(self):
        data = TradeCloseRequest(exit_price=Decimal("150"))
        assert data.exit_date is None

    def test_zero_exit_price_rejected(self):
        with pytest.raises(ValidationError):
            TradeCloseRequest(exit_price=Decimal("0"))

    def test_partial_close_requires_quantity(self):
        with pytest.raises(ValidationError) as exc_info:
            PartialCloseRequest(exit_price=Decimal("150"))
        assert exc_info.value.errors()[0]["loc"] == ("quantity",)

    def test_future_exit_date_rejected(self):
        with pytest.raises(ValidationError, match="Exit date"):
            PartialCloseRequest(
                exit_price=Decimal("150"), quantity=Decimal("100"),
                exit_date=datetime.now(timezone.utc) + timedelta(hours=1),
            )


class TestRemarkAndPrice:

    def test_remark_is_trimmed(self):
        assert TradeRemarkCreate(content="  Moved stop to breakeven ").content == "Moved stop to breakeven"

    def test_blank_remark_rejected(self):
        with pytest.raises(ValidationError):
            TradeRemarkCreate(content="   ")

    def test_price_must_be_positive(self):
        assert PriceMark(price=Decimal("150.5")).price == Decimal("150.5")
        with pytest.raises(ValidationError):
            PriceMark(price=Decimal("-1"))


# =============================================================================
# VALIDATOR TESTS
# =============================================================================

class TestValidators:
    """Tests for the reusable validation functions."""

    @pytest.mark.parametrize("raw, expected", [
        ("bdo", "BDO"),
        (" BRK.B ", "BRK.B"),
        ("btc-usd", "BTC-USD"),
        ("eur/usd", "EUR/USD"),
    ])
    def test_valid_symbols(self, raw, expected):
        assert validate_symbol(raw) == expected

    @pytest.mark.parametrize("raw", ["", "-BDO", "BD O", "A" * 21, "BDO$"])
    def test_invalid_symbols(self, raw):
        with pytest.raises(ValueError):
            validate_symbol(raw)

    def test_currency(self):
        assert validate_currency(" php ") == "PHP"
        with pytest.raises(ValueError):
            validate_currency("PESO")

    def test_ensure_utc_not_future(self):
        assert ensure_utc_not_future(None) is None

        past = datetime(2025, 6, 1, 12, 0)
        assert ensure_utc_not_future(past).tzinfo == timezone.utc

        with pytest.raises(ValueError, match="Fill cannot be in the future"):
            ensure_utc_not_future(datetime.now(timezone.utc) + timedelta(minutes=5), "Fill")
