"""Async database engine factory.

This module centralizes creation of SQLAlchemy AsyncEngines for the
engine-backed strategies and applies backend-specific tuning:

- **Pooled** engines keep up to ``pool_size`` connections and ping them on
  checkout; **single-client** engines use ``NullPool`` because the handle
  holds its one connection for the process lifetime.
- Every engine gets an explicit connect timeout so one unreachable strategy
  cannot stall startup.
- **SQLite**: adds connection PRAGMAs to enforce foreign keys, enable WAL,
  and tune durability/temporary storage.

Use this module whenever you need an engine so that all connections are
consistently configured.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import event
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import NullPool

from .dialects import DialectName

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

POOL_RECYCLE_SECONDS = 30 * 60


def is_sqlite(url: str | URL) -> bool:
    """Return True if the given SQLAlchemy URL or string corresponds to SQLite.

    Args:
        url: A database URL string or SQLAlchemy :class:`URL`.

    Returns:
        bool: True if the backend is SQLite, otherwise False.
    """
    u = make_url(str(url))
    return DialectName.from_string(u.get_backend_name()) is DialectName.SQLITE


def make_engine(
    url: str | URL,
    *,
    pooled: bool = True,
    connect_timeout: float = 5.0,
    pool_size: int = 20,
    echo: bool = False,
) -> AsyncEngine:
    """Create a SQLAlchemy AsyncEngine for the given URL.

    Args:
        url: Database connection URL using an async driver
            (``postgresql+psycopg`` or ``sqlite+aiosqlite``).
        pooled: Keep a pool of connections; otherwise open one per checkout.
        connect_timeout: Seconds to wait for a new connection.
        pool_size: Maximum pooled connections (ignored when not pooled, and
            for SQLite, which manages its own pool class).
        echo: If True, log SQL statements.

    Returns:
        AsyncEngine: Configured engine. No connection is opened yet.
    """
    sqlite = is_sqlite(url)
    kwargs: dict[str, Any] = {"echo": echo}

    if sqlite:
        kwargs["connect_args"] = {"timeout": connect_timeout}
    else:
        # psycopg takes whole seconds
        kwargs["connect_args"] = {"connect_timeout": max(1, int(connect_timeout))}

    if not pooled:
        kwargs["poolclass"] = NullPool
    elif not sqlite:
        kwargs.update(
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=connect_timeout,
            pool_recycle=POOL_RECYCLE_SECONDS,
            pool_pre_ping=True,
        )

    engine = create_async_engine(url, **kwargs)

    if sqlite:

        @event.listens_for(engine.sync_engine, "connect")
        def _sqlite_pragmas(dbapi_conn, conn_record):  # type: ignore #pylint: disable=W0613
            cur = dbapi_conn.cursor()
            cur.execute("PRAGMA foreign_keys=ON;")
            cur.execute("PRAGMA journal_mode=WAL;")
            cur.execute("PRAGMA synchronous=NORMAL;")
            cur.execute("PRAGMA temp_store=MEMORY;")
            cur.close()

    return engine
