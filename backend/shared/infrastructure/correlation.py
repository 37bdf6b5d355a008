"""
Evaluation correlation ids.

Tags every log record emitted during one pricing evaluation (a CLI command,
a PricingService call) with the same id so a cart's line items can be traced
together.
"""

import logging
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

# Context variable for the correlation id (safe across threads and tasks)
correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    """Get the current correlation id ("" outside a scope)."""
    return correlation_id_var.get()


@contextmanager
def correlation_scope(correlation_id: str | None = None) -> Iterator[str]:
    """
    Bind a correlation id for the duration of the block.

    Nested scopes reuse the outer id unless one is passed explicitly.

    Usage:
        with correlation_scope() as cid:
            service.price_for(...)
    """
    current = correlation_id_var.get()
    value = correlation_id or current or str(uuid.uuid4())
    token = correlation_id_var.set(value)
    try:
        yield value
    finally:
        correlation_id_var.reset(token)


class CorrelationIdFilter(logging.Filter):
    """
    Logging filter that adds correlation_id to log records.

    Usage:
        handler = logging.StreamHandler()
        handler.addFilter(CorrelationIdFilter())
    """

    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id_var.get() or "-"
        return True
