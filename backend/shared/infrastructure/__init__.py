"""
Infrastructure module: Database sessions, evaluation context and clock.

Provides:
- Database sessions and transactions (db.py)
- Correlation ids for logging (correlation.py)
- Injectable time source (clock.py)
"""

from shared.infrastructure.db import (
    engine,
    SessionLocal,
    get_db_context,
    safe_commit,
)
from shared.infrastructure.correlation import (
    correlation_scope,
    get_correlation_id,
)
from shared.infrastructure.clock import Clock, system_clock, fixed_clock, local_time

__all__ = [
    # db
    "engine",
    "SessionLocal",
    "get_db_context",
    "safe_commit",
    # correlation
    "correlation_scope",
    "get_correlation_id",
    # clock
    "Clock",
    "system_clock",
    "fixed_clock",
    "local_time",
]
