# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database session fixtures (in-memory SQLite)
- Service fixtures wired to the default fee schedule
- Sample data factories (portfolios, journal trades)
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from tradejournal.models import Base, Portfolio, TradeSide
from tradejournal.services.journal import DEFAULT_FEE_SCHEDULE, Trade
from tradejournal.services.portfolio_service import PortfolioService
from tradejournal.services.trade_service import TradeService


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


# =============================================================================
# SERVICES
# =============================================================================

@pytest.fixture
def portfolio_service() -> PortfolioService:
    return PortfolioService(schedule=DEFAULT_FEE_SCHEDULE, default_currency="PHP")


@pytest.fixture
def trade_service(portfolio_service: PortfolioService) -> TradeService:
    return TradeService(schedule=DEFAULT_FEE_SCHEDULE, portfolio_service=portfolio_service)


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

# Fixed reference time; every sample date is in the past
BASE_DATE = datetime(2026, 1, 5, 9, 30, tzinfo=timezone.utc)


def days_after(days: int, base: datetime = BASE_DATE) -> datetime:
    return base + timedelta(days=days)


def create_portfolio(
        db: Session,
        service: PortfolioService,
        name: str = "Test Portfolio",
        initial_balance: Decimal = Decimal("500000"),
        currency: str = "PHP",
) -> Portfolio:
    """Factory function for creating Portfolio entities through the service."""
    return service.create_portfolio(db, name, initial_balance, currency)


def make_open_trade(
        symbol: str = "BDO",
        entry_price: str = "140",
        quantity: str = "1000",
        side: TradeSide = TradeSide.LONG,
        entry_date: datetime = BASE_DATE,
        **attributes,
) -> Trade:
    """Factory function for an open journal Trade (no database)."""
    return Trade.open(symbol, side, Decimal(entry_price), Decimal(quantity), entry_date, **attributes)


def make_closed_trade(
        realized_pnl: str,
        exit_date: datetime,
        symbol: str = "BDO",
        entry_date: datetime | None = None,
        strategy: str | None = None,
        **attributes,
) -> Trade:
    """
    Factory function for a closed journal Trade with a given realized P&L.

    Prices are placeholders; statistics only read realized_pnl and dates.
    """
    return Trade.closed(
        symbol=symbol,
        side=TradeSide.LONG,
        entry_price=attributes.pop("entry_price", Decimal("100")),
        quantity=attributes.pop("quantity", Decimal("10")),
        entry_date=entry_date or exit_date - timedelta(days=1),
        exit_price=attributes.pop("exit_price", Decimal("100")),
        exit_date=exit_date,
        realized_pnl=Decimal(realized_pnl),
        strategy=strategy,
        **attributes,
    )


@pytest.fixture
def sample_portfolio(db: Session, portfolio_service: PortfolioService) -> Portfolio:
    """Provide a portfolio seeded with 500,000 PHP."""
    return create_portfolio(db, portfolio_service)
