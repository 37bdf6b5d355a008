"""
Database configuration and session management for the catalog store.
Uses SQLAlchemy 2.0 patterns.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import DATABASE_URL


def _engine_options(url: str) -> dict:
    """
    Pool settings for server databases; SQLite gets none (its default pool
    rejects size/overflow arguments).
    """
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_pre_ping": True,  # Verify connections before using
        "pool_size": 5,
        "max_overflow": 10,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

# Session factory
SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
)


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Context manager for database sessions outside of a request.

    Usage:
        with get_db_context() as db:
            snapshot = CatalogRepository(db).load_snapshot()
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session) -> None:
    """
    Safe commit with automatic rollback on failure.

    Raises the original exception after rolling back.
    """
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
