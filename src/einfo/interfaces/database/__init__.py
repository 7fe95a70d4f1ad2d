"""E-Info Database Interface Package"""

from .errors import (
    ConfigurationError,
    ConnectionExhaustedError,
    DatabaseError,
    DatabaseUrlNotSetError,
    NotConnectedError,
    QueryError,
    StrategyAttemptError,
    TransactionError,
    statement_excerpt,
)
from .handle import (
    PING_QUERY,
    AttemptRecord,
    Channel,
    ConnectionHandle,
    ConnectOptions,
    HealthStatus,
    Opener,
    Params,
    QueryResult,
    Strategy,
    StrategyName,
)

__all__ = [
    "PING_QUERY",
    "AttemptRecord",
    "Channel",
    "ConfigurationError",
    "ConnectOptions",
    "ConnectionExhaustedError",
    "ConnectionHandle",
    "DatabaseError",
    "DatabaseUrlNotSetError",
    "HealthStatus",
    "NotConnectedError",
    "Opener",
    "Params",
    "QueryError",
    "QueryResult",
    "Strategy",
    "StrategyAttemptError",
    "StrategyName",
    "TransactionError",
    "statement_excerpt",
]
