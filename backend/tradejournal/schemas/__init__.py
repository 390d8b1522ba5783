# backend/tradejournal/schemas/__init__.py
"""
Pydantic schemas for service input validation.

This package contains all Pydantic schemas organized by domain:
- portfolios: Portfolio creation
- transactions: Deposits and withdrawals
- trades: Opening, closing, partially closing and annotating trades
- validators: Reusable validation functions (symbol, currency, timestamps)

Usage:
    from tradejournal.schemas import TradeCreate, PartialCloseRequest
    from tradejournal.schemas import PortfolioCreate, TransactionCreate
"""

from tradejournal.schemas.portfolios import PortfolioCreate
from tradejournal.schemas.trades import (
    PartialCloseRequest,
    PriceMark,
    TradeCloseRequest,
    TradeCreate,
    TradeRemarkCreate,
)
from tradejournal.schemas.transactions import TransactionCreate
from tradejournal.schemas.validators import (
    validate_currency,
    validate_symbol,
)

__all__ = [
    "PortfolioCreate",
    "TransactionCreate",
    "TradeCreate",
    "TradeCloseRequest",
    "PartialCloseRequest",
    "TradeRemarkCreate",
    "PriceMark",
    "validate_symbol",
    "validate_currency",
]
