# backend/tradejournal/utils/__init__.py
"""
Cross-cutting utilities for the trading journal.

- logging: Logging configuration with correlation ID support
- context: Correlation ID of the operation in progress

Usage:
    from tradejournal.utils import setup_logging, get_logger
    from tradejournal.utils import correlation_scope, get_correlation_id
"""

from tradejournal.utils.context import (
    clear_correlation_id,
    correlation_scope,
    get_correlation_id,
    new_correlation_id,
    set_correlation_id,
)
from tradejournal.utils.logging import get_logger, setup_logging

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "new_correlation_id",
    "correlation_scope",
]
