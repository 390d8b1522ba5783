# backend/tradejournal/utils/context.py
"""
Operation context for the trading journal.

Holds the correlation ID of the operation being processed (a CLI command, a
batch import, a request from whatever surface embeds the journal) so every
log line it produces can be traced back to it.

Uses Python's contextvars, so the value follows threads started with
contextvars.copy_context() and async tasks automatically.

Usage:
    from tradejournal.utils.context import correlation_scope

    with correlation_scope() as correlation_id:
        trade_service.close_trade(db, trade_id, exit_price)
"""

import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Correlation ID of the current operation, or None outside any operation."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    _correlation_id_var.set(None)


def new_correlation_id() -> str:
    """Short random identifier (first 12 hex chars of a UUID4)."""
    return uuid.uuid4().hex[:12]


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Run a block under a correlation ID, restoring the previous one afterwards.

    Args:
        correlation_id: ID to use; a new one is generated when omitted
    """
    value = correlation_id or new_correlation_id()
    token = _correlation_id_var.set(value)
    try:
        yield value
    finally:
        _correlation_id_var.reset(token)
