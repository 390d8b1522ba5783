#!/usr/bin/env python3
# backend/scripts/seed_sample_data.py
"""
Seed a demo portfolio with a few trades.

Creates the tables if needed, then a "Demo PSE" portfolio with a deposit,
a closed winner, a partially closed position and an open position, and
prints its summary. Safe to re-run: an existing demo portfolio is reused.

    python backend/scripts/seed_sample_data.py
"""
import logging
import sys
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

# Setup path to import tradejournal modules
backend_dir = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(backend_dir))

from sqlalchemy import select

from tradejournal.database import get_engine, get_session_factory
from tradejournal.models import Base, Portfolio
from tradejournal.schemas import TradeCreate
from tradejournal.services.portfolio_service import PortfolioService
from tradejournal.services.trade_service import TradeService
from tradejournal.utils import correlation_scope, setup_logging

logger = logging.getLogger(__name__)

DEMO_PORTFOLIO_NAME = "Demo PSE"


def seed() -> None:
    Base.metadata.create_all(bind=get_engine())
    db = get_session_factory()()
    portfolios = PortfolioService()
    trades = TradeService(portfolio_service=portfolios)

    try:
        portfolio = db.scalar(select(Portfolio).where(Portfolio.name == DEMO_PORTFOLIO_NAME))
        if portfolio is not None:
            logger.info(f"Demo portfolio exists (id={portfolio.id}), skipping seeding")
        else:
            portfolio = portfolios.create_portfolio(db, DEMO_PORTFOLIO_NAME, Decimal("500000"), "PHP")
            portfolios.record_transaction(db, portfolio.id, "deposit", Decimal("100000"), notes="Top-up")

            start = datetime.now(timezone.utc) - timedelta(days=45)

            bdo, _ = trades.open_trade(db, TradeCreate(
                portfolio_id=portfolio.id, symbol="BDO", entry_price=Decimal("140"),
                quantity=Decimal("1000"), entry_date=start, strategy="Breakout",
                stop_loss=Decimal("130"), take_profit=Decimal("160"),
            ))
            trades.close_trade(db, bdo.id, Decimal("152.50"), start + timedelta(days=10))

            jfc, _ = trades.open_trade(db, TradeCreate(
                portfolio_id=portfolio.id, symbol="JFC", entry_price=Decimal("250"),
                quantity=Decimal("400"), entry_date=start + timedelta(days=5), strategy="Pullback",
            ))
            trades.partial_close(db, jfc.id, Decimal("200"), Decimal("238"), start + timedelta(days=20))

            ali, _ = trades.open_trade(db, TradeCreate(
                portfolio_id=portfolio.id, symbol="ALI", entry_price=Decimal("32.50"),
                quantity=Decimal("3000"), entry_date=start + timedelta(days=30),
            ))
            trades.mark_price(db, ali.id, Decimal("33.10"))
            trades.add_remark(db, ali.id, "Holding through earnings")

        summary = portfolios.get_summary(db, portfolio.id)
        logger.info(
            f"{DEMO_PORTFOLIO_NAME}: equity {summary.equity_value:.2f}, "
            f"realized {summary.realized_pnl:.2f}, unrealized {summary.unrealized_pnl:.2f}, "
            f"cash {summary.cash_balance:.2f} (estimated prices: {summary.has_estimated_prices})"
        )
    finally:
        db.close()


if __name__ == "__main__":
    setup_logging()
    with correlation_scope("seed"):
        seed()
