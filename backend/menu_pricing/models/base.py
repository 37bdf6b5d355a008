"""
Base class and AuditMixin for all SQLAlchemy ORM models.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, Numeric, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# BigInteger in production, Integer on SQLite so primary keys autoincrement
BIGINT = BigInteger().with_variant(Integer, "sqlite")

# Fixed-point money column: 2 fraction digits, returned as Decimal
Money = Numeric(10, 2, asdecimal=True)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class AuditMixin:
    """
    Mixin providing the active flag, soft delete and audit timestamps.

    Fields added:
    - is_active: Admin-controlled availability flag
    - created_at, updated_at, deleted_at: Audit timestamps

    A soft-deleted row keeps is_active as the admin left it; callers that
    need "usable right now" read `is_usable`, which also requires
    deleted_at to be empty.
    """

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), onupdate=func.now(), nullable=True
    )
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def is_usable(self) -> bool:
        """Active and not soft-deleted."""
        return bool(self.is_active) and self.deleted_at is None

    def soft_delete(self) -> None:
        """Mark the row as deleted; it stays in the table for history."""
        self.deleted_at = datetime.now(timezone.utc)

    def restore(self) -> None:
        """Undo a soft delete."""
        self.deleted_at = None
        self.updated_at = datetime.now(timezone.utc)

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        id_val = getattr(self, "id", None)
        state = "deleted" if self.deleted_at is not None else ("active" if self.is_active else "inactive")
        return f"<{class_name}(id={id_val}, {state})>"
