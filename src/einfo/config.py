"""Configuration utilities for E-Info.

This module centralizes the environment variables the database bootstrap
consumes and exposes them as a frozen `DatabaseSettings` value.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum

from einfo.interfaces.database import ConfigurationError, DatabaseUrlNotSetError

logger = logging.getLogger(__name__)

DATABASE_URL_KEY = "DATABASE_URL"  # pragma: no mutate
ENVIRONMENT_KEY = "EINFO_ENV"  # pragma: no mutate
FORCE_NO_SSL_KEY = "FORCE_NO_SSL"  # pragma: no mutate
ALLOW_DEGRADED_KEY = "EINFO_ALLOW_DEGRADED"  # pragma: no mutate
CONNECT_TIMEOUT_KEY = "EINFO_DB_CONNECT_TIMEOUT"  # pragma: no mutate
POOL_SIZE_KEY = "EINFO_DB_POOL_SIZE"  # pragma: no mutate
HEALTH_TIMEOUT_KEY = "EINFO_HEALTH_TIMEOUT"  # pragma: no mutate

DEFAULT_CONNECT_TIMEOUT = 5.0
DEFAULT_POOL_SIZE = 20
DEFAULT_HEALTH_TIMEOUT = 5.0

TRUTHY = {"1", "true", "yes", "on"}
FALSY = {"", "0", "false", "no", "off"}

__all__ = [
    "ConfigurationError",
    "DatabaseSettings",
    "DatabaseUrlNotSetError",
    "Environment",
    "get_db_url",
    "get_environment",
    "get_force_no_ssl",
    "load_database_settings",
]


class Environment(str, Enum):
    """Deployment mode. Production connects eagerly and relaxes SSL mode."""

    PRODUCTION = "production"
    DEVELOPMENT = "development"

    @property
    def is_production(self) -> bool:
        """True in production."""
        return self is Environment.PRODUCTION


@dataclass(frozen=True, slots=True)
class DatabaseSettings:
    """Everything the database bootstrap needs to know.

    Attributes:
        url: The raw connection string.
        environment: Deployment mode.
        force_no_ssl: Try the SSL-less strategies first.
        allow_degraded: Development only; keep running when bootstrap fails.
        connect_timeout: Per-attempt connect timeout, in seconds.
        pool_size: Size of the pool opened by pooled strategies.
        health_timeout: Upper bound for one health probe, in seconds.
    """

    url: str
    environment: Environment = Environment.DEVELOPMENT
    force_no_ssl: bool = False
    allow_degraded: bool = False
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    pool_size: int = DEFAULT_POOL_SIZE
    health_timeout: float = DEFAULT_HEALTH_TIMEOUT

    @property
    def connect_eagerly(self) -> bool:
        """True when the container should connect as soon as it is built."""
        return self.environment.is_production


def get_db_url(environ: Mapping[str, str] | None = None) -> str:
    """Get the database URL from the environment.

    Args:
        environ: Mapping to read from; defaults to ``os.environ``.

    Returns:
        The value of the `DATABASE_URL` environment variable.

    Raises:
        DatabaseUrlNotSetError: If `DATABASE_URL` is not set or blank.
    """
    env = os.environ if environ is None else environ
    if not (url := env.get(DATABASE_URL_KEY, "").strip()):
        raise DatabaseUrlNotSetError
    return url


def get_environment(environ: Mapping[str, str] | None = None) -> Environment:
    """Get the deployment mode from `EINFO_ENV` (default: development).

    Raises:
        ConfigurationError: If the value is not a known mode.
    """
    env = os.environ if environ is None else environ
    raw = env.get(ENVIRONMENT_KEY, "").strip().lower() or Environment.DEVELOPMENT.value
    try:
        return Environment(raw)
    except ValueError as e:
        choices = ", ".join(m.value for m in Environment)
        raise ConfigurationError(
            f"{ENVIRONMENT_KEY} must be one of {choices}; got {raw!r}"
        ) from e


def _flag(env: Mapping[str, str], key: str) -> bool:
    raw = env.get(key, "").strip().lower()
    if raw in TRUTHY:
        return True
    if raw in FALSY:
        return False
    raise ConfigurationError(f"{key} must be a boolean flag; got {raw!r}")


def get_force_no_ssl(environ: Mapping[str, str] | None = None) -> bool:
    """Whether `FORCE_NO_SSL` asks for the SSL-less strategies first.

    Raises:
        ConfigurationError: If the value is not a boolean flag.
    """
    return _flag(os.environ if environ is None else environ, FORCE_NO_SSL_KEY)


def _positive_number(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{key} must be a number; got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{key} must be positive; got {raw!r}")
    return value


def load_database_settings(environ: Mapping[str, str] | None = None) -> DatabaseSettings:
    """Build `DatabaseSettings` from the environment.

    Args:
        environ: Mapping to read from; defaults to ``os.environ``.

    Returns:
        The validated settings.

    Raises:
        DatabaseUrlNotSetError: If `DATABASE_URL` is missing.
        ConfigurationError: If any other variable holds an invalid value.
    """
    env = os.environ if environ is None else environ
    environment = get_environment(env)
    allow_degraded = _flag(env, ALLOW_DEGRADED_KEY)
    if allow_degraded and environment.is_production:
        logger.warning(
            "%s is ignored in production; a failed bootstrap stays fatal",
            ALLOW_DEGRADED_KEY,
        )
        allow_degraded = False

    return DatabaseSettings(
        url=get_db_url(env),
        environment=environment,
        force_no_ssl=_flag(env, FORCE_NO_SSL_KEY),
        allow_degraded=allow_degraded,
        connect_timeout=_positive_number(
            env, CONNECT_TIMEOUT_KEY, DEFAULT_CONNECT_TIMEOUT
        ),
        pool_size=int(_positive_number(env, POOL_SIZE_KEY, DEFAULT_POOL_SIZE)),
        health_timeout=_positive_number(
            env, HEALTH_TIMEOUT_KEY, DEFAULT_HEALTH_TIMEOUT
        ),
    )
