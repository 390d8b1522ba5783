# backend/tests/test_database.py
"""
Tests for engine and session management under the test environment.
"""

from sqlalchemy.orm import Session

from tradejournal.config import settings
from tradejournal.database import check_database_health, get_db, get_engine, get_session_factory


class TestDatabase:

    def test_engine_is_shared(self):
        assert get_engine() is get_engine()
        assert get_session_factory() is get_session_factory()

    def test_get_db_yields_session(self):
        sessions = list(get_db())

        assert len(sessions) == 1
        assert isinstance(sessions[0], Session)

    def test_health_check(self):
        health = check_database_health()

        assert health["status"] == "healthy"
        assert health["database"] == ("sqlite" if settings.is_sqlite else "postgresql")
