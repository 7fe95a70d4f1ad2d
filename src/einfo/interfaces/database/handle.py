"""Connection handle contracts shared by the service layer and adapters.

A *connection handle* wraps whatever a successful strategy produced (a pool,
a single client connection or a driver-native connection) behind one
interface. A *channel* is the single physical connection a transaction body
runs on. A *strategy* is a small descriptor pairing a connection-string
transform with an opener that produces a handle.
"""

from __future__ import annotations

import abc
from collections.abc import Awaitable, Callable, Mapping
from contextlib import AbstractAsyncContextManager
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

PING_QUERY = "SELECT 1 AS health_check, CURRENT_TIMESTAMP AS server_time"

Params = Mapping[str, Any]


class StrategyName(str, Enum):
    """Tags identifying how the active handle was opened.

    Attributes:
        POOL_SSL_PREFER: Connection pool, permissive SSL.
        CLIENT_SSL_PREFER: Single client connection, permissive SSL.
        POOL_NO_SSL: Connection pool, SSL disabled.
        CLIENT_NO_SSL: Single client connection, SSL disabled.
        NATIVE_CONNECT: Driver-native connect, last resort.
    """

    POOL_SSL_PREFER = "pool-ssl-prefer"
    CLIENT_SSL_PREFER = "client-ssl-prefer"
    POOL_NO_SSL = "pool-no-ssl"
    CLIENT_NO_SSL = "client-no-ssl"
    NATIVE_CONNECT = "native-connect"

    @property
    def pooled(self) -> bool:
        """True for strategies that check out a connection per operation."""
        return self in {StrategyName.POOL_SSL_PREFER, StrategyName.POOL_NO_SSL}

    @property
    def ssl_disabled(self) -> bool:
        """True for strategies that force SSL off."""
        return self in {StrategyName.POOL_NO_SSL, StrategyName.CLIENT_NO_SSL}


@dataclass(frozen=True, slots=True)
class QueryResult:
    """Normalized result of a statement, whatever strategy served it."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    row_count: int = 0

    def first(self) -> dict[str, Any] | None:
        """Return the first row, or None when no rows were produced."""
        return self.rows[0] if self.rows else None


@dataclass(frozen=True, slots=True)
class ConnectOptions:
    """Tuning passed to every opener."""

    connect_timeout: float = 5.0
    pool_size: int = 20


@dataclass(frozen=True, slots=True)
class HealthStatus:
    """Outcome of a health probe. Never carries an exception, only its text."""

    healthy: bool
    checked_at: datetime
    strategy: StrategyName | None = None
    latency_ms: float | None = None
    error: str | None = None
    server_time: Any = None

    @property
    def status(self) -> str:
        """Return ``"healthy"`` or ``"unhealthy"``."""
        return "healthy" if self.healthy else "unhealthy"

    def to_dict(self) -> dict[str, Any]:
        """Render the status as a JSON-friendly mapping."""
        payload: dict[str, Any] = {
            "status": self.status,
            "timestamp": self.checked_at.isoformat(),
            "strategy": self.strategy.value if self.strategy else None,
        }
        if self.healthy:
            payload["response_time_ms"] = self.latency_ms
            payload["server_time"] = (
                self.server_time.isoformat()
                if isinstance(self.server_time, datetime)
                else self.server_time
            )
        else:
            payload["error"] = self.error
        return payload


@dataclass(frozen=True, slots=True)
class AttemptRecord:
    """One bootstrap attempt and its outcome."""

    strategy: StrategyName
    succeeded: bool
    latency_ms: float
    error: str | None = None


class Channel(abc.ABC):
    """One physical connection, held exclusively for a transaction."""

    @abc.abstractmethod
    async def execute(self, sql: str, params: Params | None = None) -> QueryResult:
        """Run a statement on this connection.

        Raises:
            QueryError: If the driver rejects the statement.
        """

    @abc.abstractmethod
    async def begin(self) -> None:
        """Open a transaction.

        Raises:
            TransactionError: If the driver rejects BEGIN.
        """

    @abc.abstractmethod
    async def commit(self) -> None:
        """Commit the open transaction.

        Raises:
            TransactionError: If the driver rejects COMMIT.
        """

    @abc.abstractmethod
    async def rollback(self) -> None:
        """Roll back the open transaction.

        Raises:
            TransactionError: If the driver rejects ROLLBACK.
        """


class ConnectionHandle(abc.ABC):
    """An established connection or pool produced by one strategy."""

    strategy: StrategyName

    @abc.abstractmethod
    async def execute(self, sql: str, params: Params | None = None) -> QueryResult:
        """Run one statement and commit it.

        Pool-style handles check out a connection for the call and release it;
        direct handles use their single connection.

        Raises:
            QueryError: If the driver rejects the statement.
        """

    @abc.abstractmethod
    def checkout(self) -> AbstractAsyncContextManager[Channel]:
        """Hold one physical connection exclusively for the ``async with`` body.

        The connection is released (or unlocked) when the body exits, however
        it exits.
        """

    @abc.abstractmethod
    async def close(self) -> None:
        """Release every resource held by the handle."""

    async def ping(self) -> QueryResult:
        """Run the trivial verification query."""
        return await self.execute(PING_QUERY)


Opener = Callable[[str, ConnectOptions], Awaitable[ConnectionHandle]]


@dataclass(frozen=True)
class Strategy:
    """A named way of opening a connection.

    Attributes:
        name: Tag recorded when this strategy wins.
        transform: Rewrites the normalized connection string for this strategy.
        opener: Opens a handle on the transformed connection string.
    """

    name: StrategyName
    transform: Callable[[str], str]
    opener: Opener
