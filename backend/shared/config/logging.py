"""
Logging setup for the pricing backend.

Production writes one JSON object per record; development writes a
colored single line. Loggers returned by get_logger() accept keyword
data (``logger.warning("Rule excluded", item_id=7)``) which both
formatters render, and every record carries the correlation id of the
evaluation that produced it (see shared.infrastructure.correlation).
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from shared.config.settings import settings


def _correlation_of(record: logging.LogRecord) -> str | None:
    value = getattr(record, "correlation_id", None)
    return value if value and value != "-" else None


def _data_of(record: logging.LogRecord) -> dict[str, Any] | None:
    return getattr(record, "extra_data", None) or None


# =============================================================================
# Formatters
# =============================================================================


class StructuredFormatter(logging.Formatter):
    """One JSON document per record, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        correlation_id = _correlation_of(record)
        if correlation_id:
            payload["correlation_id"] = correlation_id

        data = _data_of(record)
        if data:
            payload["data"] = data

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Colored one-line output for a terminal."""

    LEVEL_COLORS = (
        (logging.CRITICAL, "35"),
        (logging.ERROR, "31"),
        (logging.WARNING, "33"),
        (logging.INFO, "32"),
        (logging.DEBUG, "36"),
    )

    def _paint(self, levelno: int, text: str) -> str:
        code = next((code for level, code in self.LEVEL_COLORS if levelno >= level), "0")
        return f"\033[{code}m{text}\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        parts = [self._paint(record.levelno, f"[{datetime.now():%H:%M:%S}] {record.levelname:8}")]

        correlation_id = _correlation_of(record)
        if correlation_id:
            parts.append(f"\033[2m[{correlation_id[:8]}]\033[0m")

        parts.append(f"{record.name}: {record.getMessage()}")

        data = _data_of(record)
        if data:
            parts.append("(" + ", ".join(f"{key}={value}" for key, value in data.items()) + ")")

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


# =============================================================================
# Logger
# =============================================================================


class StructuredLogger(logging.Logger):
    """Logger whose level methods take structured keyword data."""

    def _emit(self, level: int, msg: str, args: tuple, data: dict[str, Any]) -> None:
        if self.isEnabledFor(level):
            exc_info = data.pop("exc_info", None)
            self._log(level, msg, args, exc_info=exc_info, extra={"extra_data": data or None})

    def debug(self, msg: str, *args: Any, **data: Any) -> None:
        self._emit(logging.DEBUG, msg, args, data)

    def info(self, msg: str, *args: Any, **data: Any) -> None:
        self._emit(logging.INFO, msg, args, data)

    def warning(self, msg: str, *args: Any, **data: Any) -> None:
        self._emit(logging.WARNING, msg, args, data)

    def error(self, msg: str, *args: Any, **data: Any) -> None:
        self._emit(logging.ERROR, msg, args, data)


logging.setLoggerClass(StructuredLogger)


def setup_logging() -> None:
    """
    Install the stderr handler on the root logger.

    LOG_LEVEL wins when set; otherwise DEBUG follows the debug flag.
    Production gets JSON lines, every other environment the colored format.
    """
    from shared.infrastructure.correlation import CorrelationIdFilter

    if settings.log_level:
        level = getattr(logging, settings.log_level.upper(), logging.INFO)
    else:
        level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        StructuredFormatter() if settings.environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a logger instance with the given name.

    Usage:
        logger = get_logger(__name__)
        logger.info("Promotion saved", promotion_id=12, items=3)
    """
    return logging.getLogger(name)  # type: ignore
