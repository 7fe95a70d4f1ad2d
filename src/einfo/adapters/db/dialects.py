"""Utility enums and helpers for database dialect handling.

This module defines the set of supported database dialect names and the async
driver each one is opened with. Centralizing these names as an Enum avoids
scattering string literals (e.g., "postgresql", "sqlite") throughout the
connection-string and engine code.
"""

from __future__ import annotations

from enum import Enum


class UnsupportedDialect(Exception):
    """Raised when an unsupported database dialect is encountered."""


class DialectName(str, Enum):
    """Enumeration of supported SQLAlchemy dialect names.

    Attributes:
        POSTGRES: PostgreSQL dialect (``"postgresql"``); production target.
        SQLITE:   SQLite dialect (``"sqlite"``); local development and tests.
    """

    POSTGRES = "postgresql"
    SQLITE = "sqlite"

    @classmethod
    def from_string(cls, dialect_str: str | None) -> DialectName:
        """Normalize and convert an arbitrary dialect string to DialectName.

        Accepts common aliases and driver-qualified names (e.g., 'postgres',
        'postgresql+psycopg', 'sqlite', 'sqlite+aiosqlite').

        Args:
            dialect_str: a raw dialect string (a URL scheme works too)

        Returns:
            The corresponding DialectName enum member.

        Raises:
            UnsupportedDialect: if the dialect is not recognized or supported.
        """

        raw = (dialect_str or "").strip().lower()
        # Strip driver suffix if present
        base = raw.split("+", 1)[0]

        # Map common aliases
        if base in {"postgres", "postgresql", "pg"}:
            return cls.POSTGRES
        if base in {"sqlite"}:
            return cls.SQLITE

        raise UnsupportedDialect(f"Unsupported dialect: {dialect_str!r}")

    @property
    def async_drivername(self) -> str:
        """SQLAlchemy drivername used by the engine-backed strategies."""
        if self is DialectName.POSTGRES:
            return "postgresql+psycopg"
        return "sqlite+aiosqlite"

    @property
    def supports_ssl(self) -> bool:
        """True when the dialect understands ``sslmode``."""
        return self is DialectName.POSTGRES
