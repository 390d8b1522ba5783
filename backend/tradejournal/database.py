# backend/tradejournal/database.py
"""
Engine and session handling for the journal tables.

The engine is created on first use, so importing the package (or running the
pure journal core) never touches a database.

- SQLite (test/dev): one shared connection through StaticPool
- PostgreSQL: QueuePool sized by DB_POOL_SIZE / DB_POOL_MAX_OVERFLOW,
  recycled after DB_POOL_RECYCLE seconds, pre-pinged when DB_POOL_PRE_PING

Services take a Session as their first argument and own commit/rollback;
this module only hands sessions out.
"""

import logging
from collections.abc import Generator

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool, QueuePool

from .config import settings

logger = logging.getLogger(__name__)

_engine: Engine | None = None
_session_factory: sessionmaker | None = None


def _create_engine() -> Engine:
    """
    Build the engine for settings.database_url.

    Raises:
        RuntimeError: If DATABASE_URL is not configured
    """
    if settings.database_url is None:
        raise RuntimeError(
            "DATABASE_URL is not configured. Set it to a PostgreSQL connection string "
            "(or ENVIRONMENT=test for an in-memory SQLite database)."
        )

    if settings.is_sqlite:
        # In-memory SQLite exists per connection, so all sessions share one
        logger.info("Configuring SQLite database")
        return create_engine(
            settings.database_url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.debug,
        )

    logger.info(
        f"PostgreSQL pool: "
        f"size={settings.db_pool_size}, "
        f"max_overflow={settings.db_pool_max_overflow}, "
        f"recycle={settings.db_pool_recycle}s, "
        f"pre_ping={settings.db_pool_pre_ping}"
    )

    return create_engine(
        settings.database_url,
        poolclass=QueuePool,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_pool_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_timeout=30,
        echo=settings.debug,
    )


def get_engine() -> Engine:
    """Return the process-wide engine, creating it on first use."""
    global _engine
    if _engine is None:
        _engine = _create_engine()
    return _engine


def get_session_factory() -> sessionmaker:
    """Return the process-wide session factory."""
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(autocommit=False, autoflush=False, bind=get_engine())
    return _session_factory


def get_db() -> Generator[Session, None, None]:
    """
    Provide a database session that auto-closes after use.

    Usage:
        for db in get_db():
            service.list_portfolios(db)
    """
    db = get_session_factory()()
    try:
        yield db
    finally:
        db.close()


def check_database_health() -> dict:
    """
    Check database connectivity.

    Returns:
        dict: Health status with database type, or the error message
    """
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
            conn.commit()

        return {
            "status": "healthy",
            "database": "sqlite" if settings.is_sqlite else "postgresql",
        }
    except Exception as e:
        logger.error(f"Journal database unreachable: {e}")
        return {
            "status": "unhealthy",
            "error": str(e),
        }
