"""SQLAlchemy engine factory for the persistent duplicate store."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool


logger = logging.getLogger(__name__)


def _sqlite_engine_kwargs(database_url: str) -> dict:
    """Return engine options for SQLite URLs and ensure directories exist."""
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return {}

    kwargs = {"connect_args": {"check_same_thread": False}}
    database = url.database
    if database and database != ":memory:":
        db_path = Path(database)
        if not db_path.parent.exists():
            db_path.parent.mkdir(parents=True, exist_ok=True)
    else:
        # An in-memory database only lives as long as its single connection
        kwargs["poolclass"] = StaticPool
    return kwargs


@lru_cache(maxsize=None)
def get_engine(database_url: str, *, echo: bool = False) -> Engine:
    """Create (or reuse) a SQLAlchemy engine for ``database_url``."""
    kwargs = {"future": True, "pool_pre_ping": True, "echo": echo}
    kwargs.update(_sqlite_engine_kwargs(database_url))

    engine = create_engine(database_url, **kwargs)

    masked_url = mask_connection_url(database_url)

    def _log_connect(dbapi_connection, connection_record):  # pragma: no cover - side effect only
        if connection_record.info.get("_pubsubcallback_logged"):
            return
        logger.info("Database connection established to %s", masked_url)
        connection_record.info["_pubsubcallback_logged"] = True

    event.listen(engine, "connect", _log_connect)

    return engine


def mask_connection_url(raw_url: str) -> str:
    """Hide credentials in a SQLAlchemy URL when logging."""
    return make_url(raw_url).render_as_string(hide_password=True)
