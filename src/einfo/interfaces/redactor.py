"""Interfaces for redacting credentials from connection strings.

Connection strings are logged on every bootstrap attempt and shown by the CLI,
so they always pass through a Redactor first. Implementations provide
``sanitize_dsn``, which returns a display-safe string with passwords (and, in
strict mode, user names) replaced by a placeholder.
"""

import abc
from enum import Enum

# pylint: disable=too-few-public-methods


class RedactorMode(Enum):
    """Enumeration for redactor modes.

    Modes:
    - LENIENT: redact passwords and key material but keep user names visible.
    - STRICT: also redact user names.
    """

    LENIENT = "lenient"
    STRICT = "strict"


class Redactor(abc.ABC):
    """Interface for sanitizing credentials from connection strings."""

    _mode: RedactorMode

    @abc.abstractmethod
    def sanitize_dsn(self, raw_dsn: str) -> str:
        """Return a display-safe connection string.

        Args:
            raw_dsn: Connection URL or libpq ``key=value`` string, or any text
                that may embed one (such as a driver error message).

        Returns:
            The input with credentials redacted.
        """

    @property
    def mode(self) -> RedactorMode:
        """Return the redaction mode."""
        return self._mode
