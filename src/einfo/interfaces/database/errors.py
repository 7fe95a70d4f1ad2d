"""Exceptions for database bootstrap and access."""

from __future__ import annotations

from collections.abc import Sequence

EXCERPT_LENGTH = 100


def statement_excerpt(sql: str, length: int = EXCERPT_LENGTH) -> str:
    """Return a single-line excerpt of ``sql`` suitable for logs and errors.

    Args:
        sql: The statement text.
        length: Maximum number of characters kept before the ellipsis.

    Returns:
        str: The collapsed statement, truncated with ``...`` when longer than
        ``length``.
    """
    collapsed = " ".join(sql.split())
    if len(collapsed) > length:
        return collapsed[:length] + "..."
    return collapsed


class DatabaseError(Exception):
    """Base class for database bootstrap and access errors."""


class ConfigurationError(DatabaseError):
    """Required database configuration is missing or invalid."""


class DatabaseUrlNotSetError(ConfigurationError):
    """Raised when the DATABASE_URL environment variable is not set."""

    def __init__(self, message: str = "DATABASE_URL is not configured") -> None:
        super().__init__(message)


class StrategyAttemptError(DatabaseError):
    """One connection strategy failed to open or verify.

    Always handled inside the bootstrapper, which moves on to the next
    strategy.

    Attributes:
        strategy (str): Name of the strategy that failed.
        cause (BaseException): The underlying failure.
    """

    def __init__(self, strategy: str, cause: BaseException):
        super().__init__(f"{strategy} strategy failed: {cause}")
        self.strategy = strategy
        self.cause = cause


class ConnectionExhaustedError(DatabaseError):
    """Every connection strategy failed.

    Attributes:
        failures (tuple[StrategyAttemptError, ...]): Per-strategy failures in
            attempt order.
    """

    def __init__(self, failures: Sequence[StrategyAttemptError]):
        self.failures = tuple(failures)
        last = self.failures[-1].cause if self.failures else None
        super().__init__(
            "All database connection strategies failed. "
            f"Last error: {last if last is not None else 'no strategies configured'}"
        )


class NotConnectedError(DatabaseError):
    """A query or transaction was attempted with no established connection."""

    def __init__(
        self,
        message: str = (
            "Database connection not established. "
            "Make sure the database bootstrap completed successfully."
        ),
    ) -> None:
        super().__init__(message)


class QueryError(DatabaseError):
    """The driver rejected a statement.

    Attributes:
        original_message (str): The driver's error message.
        statement (str): Excerpt of the failing statement.
    """

    def __init__(self, original_message: str, statement: str):
        super().__init__(f"Query failed: {original_message} [{statement}]")
        self.original_message = original_message
        self.statement = statement


class TransactionError(DatabaseError):
    """BEGIN, COMMIT or ROLLBACK failed at the driver level.

    Attributes:
        original_message (str): The driver's error message.
        statement (str): The transaction-control statement that failed.
    """

    def __init__(self, original_message: str, statement: str):
        super().__init__(f"Transaction {statement} failed: {original_message}")
        self.original_message = original_message
        self.statement = statement
