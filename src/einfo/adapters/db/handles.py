"""Connection handles for the bootstrap strategies.

Three concrete handles implement `ConnectionHandle`:

- `PooledHandle` wraps a pooled SQLAlchemy ``AsyncEngine``. Every call checks
  a connection out and releases it when done.
- `ClientHandle` holds one SQLAlchemy ``AsyncConnection`` for its lifetime.
  An ``asyncio.Lock`` serializes every use so statements from two callers
  never interleave on the connection.
- `NativeHandle` holds one ``psycopg.AsyncConnection`` in autocommit mode and
  issues BEGIN/COMMIT/ROLLBACK as plain statements.

All three accept SQL with named ``:param`` placeholders and return
`QueryResult`. Driver errors surface as `QueryError` / `TransactionError`
chained to the original exception.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import psycopg
from psycopg import pq
from psycopg.rows import dict_row
from sqlalchemy import text
from sqlalchemy.dialects.postgresql.psycopg import dialect as psycopg_dialect
from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from einfo.interfaces.database import (
    Channel,
    ConnectionHandle,
    ConnectOptions,
    Params,
    QueryError,
    QueryResult,
    StrategyName,
    TransactionError,
    statement_excerpt,
)

from .connection_string import dialect_of
from .dialects import DialectName, UnsupportedDialect
from .engine import make_engine

if TYPE_CHECKING:
    from sqlalchemy.engine import Result
    from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

logger = logging.getLogger(__name__)

_PSYCOPG_DIALECT = psycopg_dialect()
_OPEN_TRANSACTION = (pq.TransactionStatus.INTRANS, pq.TransactionStatus.INERROR)


def _driver_message(exc: BaseException) -> str:
    if isinstance(exc, DBAPIError) and exc.orig is not None:
        return str(exc.orig).strip()
    return str(exc).strip()


def _to_result(result: Result) -> QueryResult:
    if result.returns_rows:
        rows = [dict(row) for row in result.mappings().all()]
        return QueryResult(rows=rows, row_count=len(rows))
    return QueryResult(rows=[], row_count=max(result.rowcount, 0))


# --- SQLAlchemy-backed handles -------------------------------------------------


class SqlAlchemyChannel(Channel):
    """Transaction channel over one SQLAlchemy ``AsyncConnection``."""

    def __init__(self, connection: AsyncConnection):
        self.connection = connection

    async def execute(self, sql: str, params: Params | None = None) -> QueryResult:
        try:
            result = await self.connection.execute(text(sql), dict(params or {}))
        except SQLAlchemyError as e:
            raise QueryError(_driver_message(e), statement_excerpt(sql)) from e
        return _to_result(result)

    async def begin(self) -> None:
        try:
            await self.connection.begin()
        except SQLAlchemyError as e:
            raise TransactionError(_driver_message(e), "BEGIN") from e

    async def commit(self) -> None:
        try:
            await self.connection.commit()
        except SQLAlchemyError as e:
            raise TransactionError(_driver_message(e), "COMMIT") from e

    async def rollback(self) -> None:
        try:
            await self.connection.rollback()
        except SQLAlchemyError as e:
            raise TransactionError(_driver_message(e), "ROLLBACK") from e


class PooledHandle(ConnectionHandle):
    """Handle over a pooled engine: checkout, use, release per operation."""

    def __init__(self, engine: AsyncEngine, strategy: StrategyName):
        self.engine = engine
        self.strategy = strategy

    async def execute(self, sql: str, params: Params | None = None) -> QueryResult:
        try:
            async with self.engine.begin() as conn:
                result = await conn.execute(text(sql), dict(params or {}))
                return _to_result(result)
        except SQLAlchemyError as e:
            raise QueryError(_driver_message(e), statement_excerpt(sql)) from e

    @asynccontextmanager
    async def checkout(self) -> AsyncIterator[Channel]:
        try:
            conn = await self.engine.connect()
        except SQLAlchemyError as e:
            raise TransactionError(_driver_message(e), "CHECKOUT") from e
        try:
            yield SqlAlchemyChannel(conn)
        finally:
            await conn.close()

    async def close(self) -> None:
        await self.engine.dispose()
        logger.debug("Disposed %s pool", self.strategy.value)


class ClientHandle(ConnectionHandle):
    """Handle over one long-lived connection, used by one caller at a time.

    A statement or transaction that was cancelled mid-flight leaves its
    transaction open on the connection. The next caller rolls it back before
    using the connection, so the cancelled task never waits on the driver.
    """

    def __init__(
        self, engine: AsyncEngine, connection: AsyncConnection, strategy: StrategyName
    ):
        self.engine = engine
        self.connection = connection
        self.strategy = strategy
        self._lock = asyncio.Lock()

    async def execute(self, sql: str, params: Params | None = None) -> QueryResult:
        async with self._lock:
            await self._discard_open_transaction()
            try:
                result = _to_result(
                    await self.connection.execute(text(sql), dict(params or {}))
                )
                await self.connection.commit()
            except SQLAlchemyError as e:
                await self._rollback_quietly()
                raise QueryError(_driver_message(e), statement_excerpt(sql)) from e
            return result

    @asynccontextmanager
    async def checkout(self) -> AsyncIterator[Channel]:
        async with self._lock:
            await self._discard_open_transaction()
            yield SqlAlchemyChannel(self.connection)

    async def close(self) -> None:
        try:
            await self.connection.close()
        finally:
            await self.engine.dispose()
        logger.debug("Closed %s connection", self.strategy.value)

    async def _discard_open_transaction(self) -> None:
        if self.connection.in_transaction():
            logger.debug("Rolling back transaction left open on %s", self.strategy.value)
            await self._rollback_quietly()

    async def _rollback_quietly(self) -> None:
        try:
            await self.connection.rollback()
        except SQLAlchemyError as e:
            logger.debug("Rollback after failed statement also failed: %s", e)


async def open_pooled(
    dsn: str, options: ConnectOptions, *, strategy: StrategyName
) -> PooledHandle:
    """Create a pooled engine. The first connection is made by verification."""
    engine = make_engine(
        dsn,
        pooled=True,
        connect_timeout=options.connect_timeout,
        pool_size=options.pool_size,
    )
    return PooledHandle(engine, strategy)


async def open_client(
    dsn: str, options: ConnectOptions, *, strategy: StrategyName
) -> ClientHandle:
    """Open one dedicated connection.

    The engine is disposed again when the connection cannot be made, so a
    failed attempt leaves nothing open.
    """
    engine = make_engine(dsn, pooled=False, connect_timeout=options.connect_timeout)
    try:
        connection = await engine.connect()
    except BaseException:
        await engine.dispose()
        raise
    return ClientHandle(engine, connection, strategy)


# --- Driver-native handle ---------------------------------------------------------


def _compile(sql: str, params: Params | None) -> tuple[str, dict]:
    """Translate ``:name`` placeholders to psycopg's ``%(name)s`` form."""
    compiled = text(sql).compile(dialect=_PSYCOPG_DIALECT)
    return compiled.string, compiled.construct_params(dict(params or {}))


class NativeChannel(Channel):
    """Transaction channel over an autocommit ``psycopg.AsyncConnection``."""

    def __init__(self, connection: psycopg.AsyncConnection):
        self.connection = connection

    async def execute(self, sql: str, params: Params | None = None) -> QueryResult:
        try:
            query, bound = _compile(sql, params)
            async with self.connection.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, bound)
                if cur.description is not None:
                    rows = await cur.fetchall()
                    return QueryResult(rows=list(rows), row_count=len(rows))
                return QueryResult(rows=[], row_count=max(cur.rowcount, 0))
        except (psycopg.Error, SQLAlchemyError) as e:
            raise QueryError(_driver_message(e), statement_excerpt(sql)) from e

    async def _control(self, statement: str) -> None:
        try:
            await self.connection.execute(statement)
        except psycopg.Error as e:
            raise TransactionError(_driver_message(e), statement) from e

    async def begin(self) -> None:
        await self._control("BEGIN")

    async def commit(self) -> None:
        await self._control("COMMIT")

    async def rollback(self) -> None:
        await self._control("ROLLBACK")


class NativeHandle(ConnectionHandle):
    """Handle over a driver-native connection, used by one caller at a time."""

    strategy = StrategyName.NATIVE_CONNECT

    def __init__(self, connection: psycopg.AsyncConnection):
        self.connection = connection
        self._channel = NativeChannel(connection)
        self._lock = asyncio.Lock()

    async def execute(self, sql: str, params: Params | None = None) -> QueryResult:
        async with self._lock:
            await self._discard_open_transaction()
            return await self._channel.execute(sql, params)

    @asynccontextmanager
    async def checkout(self) -> AsyncIterator[Channel]:
        async with self._lock:
            await self._discard_open_transaction()
            yield self._channel

    async def close(self) -> None:
        await self.connection.close()
        logger.debug("Released native connection")

    async def _discard_open_transaction(self) -> None:
        # A cancelled transaction body can leave BEGIN without COMMIT/ROLLBACK.
        if self.connection.info.transaction_status not in _OPEN_TRANSACTION:
            return
        logger.debug("Rolling back transaction left open on native connection")
        try:
            await self.connection.execute("ROLLBACK")
        except psycopg.Error as e:
            logger.debug("Rollback of abandoned transaction failed: %s", e)


async def open_native(dsn: str, options: ConnectOptions) -> NativeHandle:
    """Connect with psycopg directly, bypassing SQLAlchemy.

    Raises:
        UnsupportedDialect: If ``dsn`` is not a PostgreSQL URL.
        psycopg.OperationalError: If the server cannot be reached.
    """
    if dialect_of(dsn) is not DialectName.POSTGRES:
        raise UnsupportedDialect("native connect is only available for PostgreSQL")
    connection = await psycopg.AsyncConnection.connect(
        dsn,
        autocommit=True,
        connect_timeout=max(1, int(options.connect_timeout)),
    )
    return NativeHandle(connection)
