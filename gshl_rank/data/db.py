"""Database engine and session management.

Example:
    >>> from gshl_rank.data.db import session_scope, init_db
    >>> init_db()
    >>> with session_scope() as session:
    ...     session.add(record)
"""
from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from gshl_rank.config import get_settings
from gshl_rank.data.models import Base

logger = logging.getLogger(__name__)

# Module-level engine cache
_engine: Engine | None = None


def _set_sqlite_pragmas(dbapi_connection: Any, connection_record: Any) -> None:
    """Enable WAL journaling so readers do not block a rollup in progress."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.close()


def create_sqlite_engine(db_path: str | Path | None = None) -> Engine:
    """Create an engine for a SQLite file, or in-memory when ``db_path`` is ":memory:".

    Args:
        db_path: Database file path. If None, uses ``settings.db_path``.

    Returns:
        SQLAlchemy Engine instance.
    """
    path = str(db_path if db_path is not None else get_settings().db_path)
    if path == ":memory:":
        return create_engine("sqlite://", echo=False)

    Path(path).parent.mkdir(parents=True, exist_ok=True)
    engine = create_engine(f"sqlite:///{path}", echo=False, pool_pre_ping=True)
    event.listen(engine, "connect", _set_sqlite_pragmas)
    logger.debug("Created database engine for %s", path)
    return engine


def get_engine() -> Engine:
    """Get or create the engine configured by settings."""
    global _engine
    if _engine is None:
        _engine = create_sqlite_engine()
    return _engine


@contextmanager
def session_scope(engine: Engine | None = None) -> Generator[Session, None, None]:
    """Session that commits on success and rolls back on exception.

    Args:
        engine: Engine to bind; defaults to ``get_engine()``.

    Yields:
        SQLAlchemy Session instance.
    """
    session = sessionmaker(bind=engine or get_engine())()
    try:
        yield session
        session.commit()
    except Exception:
        logger.debug("Session rolling back due to exception")
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine | None = None) -> None:
    """Create all tables. Safe to call repeatedly."""
    Base.metadata.create_all(engine or get_engine())
    logger.info("Database initialized")


def reset_engine() -> None:
    """Dispose the cached engine (for testing)."""
    global _engine
    if _engine is not None:
        _engine.dispose()
        _engine = None
