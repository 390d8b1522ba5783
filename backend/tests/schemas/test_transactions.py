# backend/tests/schemas/test_transactions.py
"""
Tests for cash transaction and portfolio schemas.

This module tests:
- Field validation (positive amounts, known transaction types)
- Normalizers (type case, currency uppercase, whitespace trimming)
- validate_input: schema errors surfacing as InvalidArgumentError
"""

import pytest
from decimal import Decimal

from pydantic import ValidationError

from tradejournal.models import TransactionType
from tradejournal.schemas import PortfolioCreate, TransactionCreate
from tradejournal.services.exceptions import InvalidArgumentError
from tradejournal.services.validation import validate_input


# =============================================================================
# TRANSACTION CREATE TESTS
# =============================================================================

class TestTransactionCreate:
    """Tests for TransactionCreate schema."""

    def test_valid_deposit(self):
        data = TransactionCreate(type="DEPOSIT", amount=Decimal("5000"), notes="  payday ")

        assert data.type == TransactionType.DEPOSIT
        assert data.amount == Decimal("5000")
        assert data.notes == "payday"

    def test_unknown_type_rejected(self):
        with pytest.raises(ValidationError):
            TransactionCreate(type="dividend", amount=Decimal("100"))

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-0.01")])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(ValidationError):
            TransactionCreate(type="withdrawal", amount=amount)

    def test_blank_notes_become_none(self):
        assert TransactionCreate(type="deposit", amount=Decimal("1"), notes="  ").notes is None


# =============================================================================
# PORTFOLIO CREATE TESTS
# =============================================================================

class TestPortfolioCreate:
    """Tests for PortfolioCreate schema."""

    def test_defaults(self):
        data = PortfolioCreate(name=" Crypto ")

        assert data.name == "Crypto"
        assert data.initial_balance == Decimal("0")
        assert data.currency is None

    def test_currency_is_uppercased(self):
        assert PortfolioCreate(name="US", currency="usd").currency == "USD"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError, match="Name cannot be blank"):
            PortfolioCreate(name="   ")

    def test_negative_initial_balance_rejected(self):
        with pytest.raises(ValidationError):
            PortfolioCreate(name="PSE", initial_balance=Decimal("-100"))


# =============================================================================
# SERVICE BOUNDARY
# =============================================================================

class TestValidateInput:
    """Tests for validate_input."""

    def test_returns_schema_instance(self):
        data = validate_input(TransactionCreate, type="deposit", amount=Decimal("10"))
        assert isinstance(data, TransactionCreate)

    def test_validation_error_becomes_invalid_argument(self):
        with pytest.raises(InvalidArgumentError) as exc_info:
            validate_input(TransactionCreate, type="deposit", amount=Decimal("0"))

        assert exc_info.value.field == "amount"
        assert not isinstance(exc_info.value, ValidationError)
