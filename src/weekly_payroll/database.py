"""Database engine and store management."""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from weekly_payroll.config import get_settings
from weekly_payroll.store import SqlTabularStore, bootstrap_tables

logger = logging.getLogger(__name__)


def get_engine(database_url: str | None = None) -> Engine:
    """Create a database engine."""
    url = database_url or get_settings().database_url
    if url.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=False, **kwargs)
    return create_engine(
        url,
        echo=False,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
    )


# Global engine and store
_engine: Engine | None = None
_store: SqlTabularStore | None = None


def init_db(database_url: str | None = None) -> SqlTabularStore:
    """Initialize the engine and make sure every table exists."""
    global _engine, _store
    if _store is None:
        _engine = get_engine(database_url)
        _store = SqlTabularStore(_engine)
        bootstrap_tables(_store)
        logger.info("Store ready at %s", _engine.url.render_as_string(hide_password=True))
    return _store


def get_store() -> SqlTabularStore:
    """Get the process-wide store, initialising it on first use."""
    return init_db()


def dispose_db() -> None:
    """Dispose of the engine (used on shutdown and in tests)."""
    global _engine, _store
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _store = None
