# backend/tradejournal/utils/logging.py
"""
Logging configuration for the trading journal.

This module provides centralized logging setup with:
- Level and format taken from settings (LOG_LEVEL, LOG_FORMAT)
- Correlation ID on every record (see utils.context.correlation_scope)
- JSON output for log aggregation, text output for terminals
- SQLAlchemy statement logging kept quiet unless asked for

Usage:
    from tradejournal.utils import setup_logging

    # Once, at process start (scripts, workers, embedding application)
    setup_logging()

Log Levels:
    DEBUG   - P&L details of each transition, stale price fallbacks
    INFO    - Ledger events (portfolio created, trade opened/closed, cash moved)
    WARNING - Recoverable issues (price provider failures, ignored prices)
    ERROR   - Failures requiring attention (database unreachable)

Environment Configuration:
    LOG_LEVEL=DEBUG       # Development - see everything
    LOG_LEVEL=INFO        # Production - ledger events + errors
    LOG_FORMAT=json       # One JSON object per line
    LOG_FORMAT=text       # Human-readable (default)
"""

import json
import logging
import sys
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TextIO

from tradejournal.config import settings
from tradejournal.utils.context import get_correlation_id

# =============================================================================
# CONSTANTS
# =============================================================================

# timestamp | level | correlation_id | logger_name | message
DEFAULT_TEXT_FORMAT = "%(asctime)s | %(levelname)-8s | %(correlation_id)s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

NO_CORRELATION_ID = "-"

# Set to WARNING by setup_logging
NOISY_LOGGERS = [
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "urllib3",
    "asyncio",
]

LOG_LEVELS = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Attributes every LogRecord has; anything else came in through `extra=`
_STANDARD_RECORD_ATTRS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "exc_info", "exc_text", "thread", "threadName",
    "correlation_id", "message", "taskName", "asctime",
})


# =============================================================================
# FILTER & FORMATTER
# =============================================================================

class CorrelationIdFilter(logging.Filter):
    """Adds the current correlation ID to each record as `correlation_id`."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = get_correlation_id() or NO_CORRELATION_ID
        return True


def _json_safe(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _json_safe(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(v) for v in value]
    try:
        json.dumps(value)
        return value
    except (TypeError, ValueError):
        return str(value)


class JsonFormatter(logging.Formatter):
    """
    One JSON object per record.

    Output format:
    {
        "timestamp": "2026-01-15T10:30:00.123000+00:00",
        "level": "INFO",
        "logger": "tradejournal.services.trade_service",
        "correlation_id": "3f9c1a7be204",
        "message": "Closed trade 12 (BDO) @ 150: realized 912.31",
        "extra": {"portfolio_id": 1}
    }

    Decimal values in `extra` are rendered as strings so amounts keep their
    exact digits.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "correlation_id": getattr(record, "correlation_id", NO_CORRELATION_ID),
            "message": record.getMessage(),
        }

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        extra = {
            key: _json_safe(value)
            for key, value in record.__dict__.items()
            if key not in _STANDARD_RECORD_ATTRS
        }
        if extra:
            entry["extra"] = extra

        return json.dumps(entry)


# =============================================================================
# SETUP
# =============================================================================

def setup_logging(
        level: str | None = None,
        log_format: str | None = None,
        stream: TextIO | None = None,
        suppress_noisy_loggers: bool = True,
) -> None:
    """
    Configure the root logger.

    Call once per process. Calling again replaces the root handler.

    Args:
        level: Log level name; defaults to settings.log_level
        log_format: 'text' or 'json'; defaults to settings.log_format
        stream: Output stream; defaults to stdout
        suppress_noisy_loggers: Set NOISY_LOGGERS to WARNING

    Raises:
        ValueError: If the level name is unknown
    """
    level_name = level or settings.log_level
    log_level = _get_log_level(level_name)
    format_type = (log_format or settings.log_format).lower()

    if format_type == "json":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = logging.Formatter(fmt=DEFAULT_TEXT_FORMAT, datefmt=DEFAULT_DATE_FORMAT)

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(CorrelationIdFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    if suppress_noisy_loggers:
        for logger_name in NOISY_LOGGERS:
            logging.getLogger(logger_name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(
        f"Logging configured: level={level_name}, format={format_type}",
        extra={"config": {"level": level_name, "format": format_type}},
    )


def _get_log_level(level_str: str) -> int:
    """
    Raises:
        ValueError: If level_str is not a valid log level
    """
    key = level_str.upper().strip()
    if key not in LOG_LEVELS:
        raise ValueError(
            f"Invalid log level: '{level_str}'. Valid levels are: {', '.join(LOG_LEVELS)}"
        )
    return LOG_LEVELS[key]


def get_logger(name: str) -> logging.Logger:
    """Standard logger; records get the correlation ID from the root handler's filter."""
    return logging.getLogger(name)
