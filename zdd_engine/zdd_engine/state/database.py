"""Async SQLAlchemy engine factory.

The backend is chosen from the URL scheme and normalized to an async driver:

  - ``postgres://``, ``postgresql://``, ``postgresql+<driver>://`` → ``postgresql+asyncpg``
  - ``sqlite://``, ``sqlite+<driver>://``                         → ``sqlite+aiosqlite``
"""

from __future__ import annotations

import logging

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from zdd_engine.errors import DatabaseError
from zdd_engine.state.tables import LEDGER_SCHEMA

logger = logging.getLogger(__name__)

_POSTGRES_BACKENDS = frozenset({"postgres", "postgresql"})
_POSTGRES_DRIVER = "postgresql+asyncpg"
_SQLITE_DRIVER = "sqlite+aiosqlite"


def normalize_url(database_url: str) -> URL:
    """Parse *database_url* and swap in the async driver for its backend.

    Raises
    ------
    DatabaseError
        If the URL is malformed or names an unsupported backend.
    """
    try:
        url = make_url(database_url)
    except ArgumentError as exc:
        raise DatabaseError(f"Invalid database URL: {exc}") from exc

    backend = url.get_backend_name()
    if backend in _POSTGRES_BACKENDS:
        return url.set(drivername=_POSTGRES_DRIVER)
    if backend == "sqlite":
        return url.set(drivername=_SQLITE_DRIVER)
    raise DatabaseError(f"Unsupported database backend: {backend!r}")


def _install_sqlite_hooks(engine: AsyncEngine) -> None:
    """Make SQLite transactions explicit so DDL participates in them.

    The sqlite3 module normally defers ``BEGIN`` until the first DML
    statement, which would commit DDL immediately.  Disabling its implicit
    handling and emitting ``BEGIN`` ourselves gives every transaction real
    all-or-nothing behaviour.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_conn: object, _: object) -> None:
        dbapi_conn.isolation_level = None  # type: ignore[attr-defined]
        cursor = dbapi_conn.cursor()  # type: ignore[attr-defined]
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: object) -> None:
        conn.exec_driver_sql("BEGIN")  # type: ignore[attr-defined]


def get_engine(database_url: str, pool_size: int = 5, max_overflow: int = 5) -> AsyncEngine:
    """Create an async SQLAlchemy engine for *database_url*.

    Parameters
    ----------
    database_url:
        Connection string; the driver part is normalized.
    pool_size:
        Persistent connections for PostgreSQL (ignored for SQLite).
    max_overflow:
        Overflow connections for PostgreSQL (ignored for SQLite).

    Returns
    -------
    AsyncEngine
        A configured engine.  For SQLite the ledger schema is translated
        away through ``schema_translate_map``.
    """
    url = normalize_url(database_url)

    if url.get_backend_name() == "sqlite":
        engine = create_async_engine(
            url,
            echo=False,
            execution_options={"schema_translate_map": {LEDGER_SCHEMA: None}},
        )
        _install_sqlite_hooks(engine)
        logger.info("Created SQLite engine: %s", url.render_as_string(hide_password=True))
        return engine

    engine = create_async_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600,
        echo=False,
    )
    logger.info(
        "Created async engine for %s pool_size=%d max_overflow=%d",
        url.render_as_string(hide_password=True),
        pool_size,
        max_overflow,
    )
    return engine
