"""Connection-string rewriting for the bootstrap strategies.

Every strategy starts from the same *normalized* connection string:

- ``channel_binding=require`` is removed. Some hosted PostgreSQL providers
  advertise it in their URLs, but it fails behind TLS-terminating proxies.
- The scheme is pinned to the async SQLAlchemy driver for the dialect
  (``postgres://`` becomes ``postgresql+psycopg://``).

Each strategy then applies its own SSL transform on top:

- `prefer_ssl` relaxes ``sslmode=require`` to ``sslmode=prefer`` in
  production.
- `disable_ssl` drops any ``sslmode`` and appends ``sslmode=disable``.
- `to_native_dsn` renders a plain libpq URI for the driver-native connect.

SQLite URLs carry no SSL parameters and pass through the SSL transforms
unchanged. Parsing uses SQLAlchemy's URL parser; no I/O is performed.
"""

from __future__ import annotations

from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import ArgumentError

from einfo.interfaces.database import ConfigurationError

from .dialects import DialectName, UnsupportedDialect

CHANNEL_BINDING_KEY = "channel_binding"
SSLMODE_KEY = "sslmode"


def _parse(raw: str) -> URL:
    try:
        return make_url(raw)
    except ArgumentError as e:
        raise ConfigurationError(
            "The database URL is not a valid connection URL."
        ) from e


def _render(url: URL) -> str:
    return url.render_as_string(hide_password=False)


def _has_value(url: URL, key: str, value: str) -> bool:
    # A repeated key comes back as a tuple of its values.
    current = url.query.get(key)
    if isinstance(current, tuple):
        return value in current
    return current == value


def dialect_of(raw: str) -> DialectName:
    """Return the dialect a connection string targets.

    Raises:
        ConfigurationError: If the string is not a URL or names an unsupported
            dialect.
    """
    try:
        return DialectName.from_string(_parse(raw).drivername)
    except UnsupportedDialect as e:
        raise ConfigurationError(str(e)) from e


def normalize(raw: str) -> str:
    """Strip ``channel_binding=require`` and pin the async driver.

    Args:
        raw: The connection string as configured.

    Returns:
        str: The normalized connection string every strategy starts from.

    Raises:
        ConfigurationError: If the string cannot be parsed or its dialect is
            unsupported.
    """
    url = _parse(raw)
    dialect = dialect_of(raw)
    if _has_value(url, CHANNEL_BINDING_KEY, "require"):
        url = url.difference_update_query([CHANNEL_BINDING_KEY])
    return _render(url.set(drivername=dialect.async_drivername))


def prefer_ssl(raw: str, *, production: bool) -> str:
    """Relax ``sslmode=require`` to ``sslmode=prefer`` in production.

    Outside production, or for dialects without SSL, the string is returned
    unchanged.
    """
    url = _parse(raw)
    if not production or not dialect_of(raw).supports_ssl:
        return raw
    if _has_value(url, SSLMODE_KEY, "require"):
        url = url.update_query_dict({SSLMODE_KEY: "prefer"})
    return _render(url)


def disable_ssl(raw: str) -> str:
    """Replace any ``sslmode`` with ``sslmode=disable``."""
    if not dialect_of(raw).supports_ssl:
        return raw
    url = _parse(raw).difference_update_query([SSLMODE_KEY])
    return _render(url.update_query_dict({SSLMODE_KEY: "disable"}))


def to_native_dsn(raw: str) -> str:
    """Render the connection string as a libpq URI for the native driver.

    Non-PostgreSQL strings are returned unchanged; the native opener rejects
    them.
    """
    if dialect_of(raw) is not DialectName.POSTGRES:
        return raw
    return _render(_parse(raw).set(drivername="postgresql"))
