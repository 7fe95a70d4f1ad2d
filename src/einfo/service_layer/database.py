"""Database connection bootstrap and the uniform access facade.

`Database` owns the process's single active connection. `connect()` walks an
ordered list of strategies, strictly one after another, until one opens and
answers the verification query; every other attempt is closed again before
the next one starts. The winning handle and its strategy tag are then used by
`query()`, `transaction()` and `health_check()` without callers needing to
know which strategy won.

Strategies, the connection-string normalizer and the redactor are injected by
`einfo.bootstrap`; this module only depends on `einfo.interfaces`.

Example:
    ```py
    database = Database(url, strategies, normalize=normalize)
    await database.connect()
    rows = (await database.query("SELECT * FROM links WHERE user_id = :uid", {"uid": 7})).rows

    async def move_link(channel):
        await channel.execute("UPDATE links SET position = :p WHERE id = :id", {"p": 2, "id": 9})
        await channel.execute("UPDATE links SET position = :p WHERE id = :id", {"p": 1, "id": 4})

    await database.transaction(move_link)
    await database.shutdown()
    ```
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TypeVar

from einfo.interfaces.database import (
    AttemptRecord,
    Channel,
    ConnectionExhaustedError,
    ConnectionHandle,
    ConnectOptions,
    DatabaseUrlNotSetError,
    HealthStatus,
    NotConnectedError,
    Params,
    QueryError,
    QueryResult,
    Strategy,
    StrategyAttemptError,
    StrategyName,
    TransactionError,
    statement_excerpt,
)

if TYPE_CHECKING:
    from einfo.interfaces.redactor import Redactor

logger = logging.getLogger(__name__)

T = TypeVar("T")

HIDDEN_URL = "<hidden>"
NOT_CONNECTED = "not connected"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class Database:
    """The process's database connection and its query surface.

    Attributes:
        attempts: Attempt log of the most recent bootstrap, in order.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        url: str | None,
        strategies: Sequence[Strategy],
        *,
        normalize: Callable[[str], str] | None = None,
        options: ConnectOptions | None = None,
        health_timeout: float = 5.0,
        redactor: Redactor | None = None,
    ):
        self._url = url
        self._strategies = tuple(strategies)
        self._normalize = normalize or (lambda raw: raw)
        self._options = options or ConnectOptions()
        self._health_timeout = health_timeout
        self._redactor = redactor
        self._handle: ConnectionHandle | None = None
        self._strategy: StrategyName | None = None
        self._bootstrap_lock = asyncio.Lock()
        self.attempts: list[AttemptRecord] = []

    # --- state -----------------------------------------------------------------

    @property
    def strategy(self) -> StrategyName | None:
        """Tag of the strategy that produced the active handle, if any."""
        return self._strategy

    @property
    def handle(self) -> ConnectionHandle | None:
        """The active handle, if any. Callers must not close it themselves."""
        return self._handle

    @property
    def is_ready(self) -> bool:
        """Readiness predicate: True while a verified connection is active."""
        return self._handle is not None

    @property
    def strategy_names(self) -> tuple[StrategyName, ...]:
        """Names of the configured strategies, in attempt order."""
        return tuple(s.name for s in self._strategies)

    def display_url(self) -> str:
        """The configured URL with credentials redacted."""
        if not self._url:
            return NOT_CONNECTED
        if self._redactor is None:
            return HIDDEN_URL
        return self._redactor.sanitize_dsn(self._url)

    def _sanitize(self, message: str) -> str:
        return self._redactor.sanitize_dsn(message) if self._redactor else message

    def connection_info(self) -> dict[str, Any]:
        """Describe the connection for diagnostics."""
        return {
            "strategy": self._strategy.value if self._strategy else NOT_CONNECTED,
            "connected": self.is_ready,
            "url": self.display_url(),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # --- bootstrap ---------------------------------------------------------------

    async def connect(self) -> StrategyName:
        """Establish the connection by trying each strategy in order.

        Calling it again once connected does nothing and returns the active
        strategy; use `reconnect()` for an explicit reset.

        Returns:
            StrategyName: The strategy that is now active.

        Raises:
            ConfigurationError: If no connection string is configured or it
                cannot be parsed.
            ConnectionExhaustedError: If every strategy failed. Nothing is left
                open and the state stays empty.
        """
        async with self._bootstrap_lock:
            if self._handle is not None and self._strategy is not None:
                logger.debug(
                    "Database already connected via %s; connect() is a no-op",
                    self._strategy.value,
                )
                return self._strategy

            if not self._url:
                raise DatabaseUrlNotSetError
            base_url = self._normalize(self._url)

            logger.info(
                "Connecting to %s (%d strategies)",
                self.display_url(),
                len(self._strategies),
            )
            self.attempts = []
            failures: list[StrategyAttemptError] = []

            for strategy in self._strategies:
                handle = await self._attempt(strategy, base_url, failures)
                if handle is not None:
                    self._handle, self._strategy = handle, strategy.name
                    return strategy.name

            error = ConnectionExhaustedError(failures)
            logger.error(self._sanitize(str(error)))
            raise error

    async def _attempt(
        self,
        strategy: Strategy,
        base_url: str,
        failures: list[StrategyAttemptError],
    ) -> ConnectionHandle | None:
        name = strategy.name.value
        logger.info(
            "Trying %s strategy...",
            name,
            extra={"strategy": name, "event": "db.connect.attempt"},
        )
        started = time.perf_counter()
        handle: ConnectionHandle | None = None
        try:
            handle = await strategy.opener(strategy.transform(base_url), self._options)
            await handle.ping()
        except asyncio.CancelledError:
            if handle is not None:
                await self._close_quietly(handle)
            raise
        except Exception as e:  # pylint: disable=broad-except
            latency = _elapsed_ms(started)
            message = self._sanitize(str(e))
            failures.append(StrategyAttemptError(name, e))
            self.attempts.append(
                AttemptRecord(strategy.name, False, latency, message)
            )
            logger.warning(
                "%s strategy failed after %.1f ms: %s",
                name,
                latency,
                message,
                extra={"strategy": name, "outcome": "failure", "latency_ms": latency},
            )
            if handle is not None:
                await self._close_quietly(handle)
            return None

        latency = _elapsed_ms(started)
        self.attempts.append(AttemptRecord(strategy.name, True, latency))
        logger.info(
            "%s strategy works (%.1f ms)",
            name,
            latency,
            extra={"strategy": name, "outcome": "success", "latency_ms": latency},
        )
        return handle

    @staticmethod
    async def _close_quietly(handle: ConnectionHandle) -> None:
        try:
            await handle.close()
        except Exception as e:  # pylint: disable=broad-except
            logger.debug(
                "Ignoring cleanup failure for %s: %s", handle.strategy.value, e
            )

    async def reconnect(self) -> StrategyName:
        """Release the active connection, then bootstrap again."""
        await self.shutdown()
        return await self.connect()

    async def shutdown(self) -> None:
        """Release the active connection.

        Idempotent, safe before any bootstrap, and never raises.
        """
        handle, strategy = self._handle, self._strategy
        self._handle, self._strategy = None, None
        if handle is None or strategy is None:
            logger.debug("No database connection to release")
            return
        try:
            await handle.close()
        except Exception as e:  # pylint: disable=broad-except
            logger.error(
                "Error disconnecting from database (%s): %s", strategy.value, e
            )
        else:
            logger.info("Closed %s database connection", strategy.value)

    # --- facade ------------------------------------------------------------------

    def _require_handle(self) -> tuple[ConnectionHandle, StrategyName]:
        handle, strategy = self._handle, self._strategy
        if handle is None or strategy is None:
            raise NotConnectedError
        return handle, strategy

    async def query(self, sql: str, params: Params | None = None) -> QueryResult:
        """Run one statement through the active strategy.

        Args:
            sql: Statement with named ``:param`` placeholders.
            params: Values for the placeholders.

        Returns:
            QueryResult: Rows as mappings plus the row count.

        Raises:
            NotConnectedError: If no connection is established.
            QueryError: If the driver rejects the statement. Not retried.
        """
        handle, strategy = self._require_handle()
        excerpt = statement_excerpt(sql)
        param_count = len(params or {})
        try:
            result = await handle.execute(sql, params)
        except QueryError as e:
            logger.error(
                "Database query failed: %s",
                e.original_message,
                extra={
                    "strategy": strategy.value,
                    "query": excerpt,
                    "param_count": param_count,
                },
            )
            raise
        logger.debug(
            "Database query executed (%s): %s [params=%d, rows=%d]",
            strategy.value,
            excerpt,
            param_count,
            result.row_count,
        )
        return result

    async def transaction(self, fn: Callable[[Channel], Awaitable[T]]) -> T:
        """Run ``fn`` inside BEGIN/COMMIT on one connection.

        ``fn`` receives a `Channel`; every statement it issues through the
        channel runs on the same physical connection, which no other caller
        can use until the transaction ends. If ``fn`` raises, ROLLBACK is
        issued and the exception is re-raised unchanged. A failed COMMIT is
        followed by a best-effort ROLLBACK.

        Returns:
            Whatever ``fn`` returns.

        Raises:
            NotConnectedError: If no connection is established.
            TransactionError: If BEGIN or COMMIT fails at the driver level.
        """
        handle, strategy = self._require_handle()
        async with handle.checkout() as channel:
            await channel.begin()
            try:
                result = await fn(channel)
            except BaseException as e:
                try:
                    await channel.rollback()
                except TransactionError as rollback_error:
                    logger.error(
                        "ROLLBACK failed after %s: %s",
                        type(e).__name__,
                        rollback_error.original_message,
                    )
                logger.warning(
                    "Database transaction rolled back (%s): %s",
                    strategy.value,
                    e,
                )
                raise
            try:
                await channel.commit()
            except TransactionError:
                try:
                    await channel.rollback()
                except TransactionError as rollback_error:
                    logger.debug(
                        "ROLLBACK after failed COMMIT also failed: %s",
                        rollback_error.original_message,
                    )
                raise
            return result

    async def health_check(self) -> HealthStatus:
        """Probe the active connection. Never raises.

        Returns:
            HealthStatus: Healthy with latency and server time, or unhealthy
            with the reason (including "not connected" and timeouts).
        """
        checked_at = datetime.now(timezone.utc)
        handle, strategy = self._handle, self._strategy
        if handle is None:
            return HealthStatus(False, checked_at, error=NOT_CONNECTED)

        started = time.perf_counter()
        try:
            result = await asyncio.wait_for(handle.ping(), timeout=self._health_timeout)
        except asyncio.TimeoutError:
            error = f"health check timed out after {self._health_timeout:g}s"
        except Exception as e:  # pylint: disable=broad-except
            error = self._sanitize(str(e)) or type(e).__name__
        else:
            latency = _elapsed_ms(started)
            row = result.first() or {}
            logger.debug("Database health check passed in %.1f ms", latency)
            return HealthStatus(
                True,
                checked_at,
                strategy=strategy,
                latency_ms=latency,
                server_time=row.get("server_time"),
            )

        logger.error("Database health check failed: %s", error)
        return HealthStatus(False, checked_at, strategy=strategy, error=error)
