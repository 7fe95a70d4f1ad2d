"""Default connection strategies, in attempt order.

Each `Strategy` pairs a connection-string transform with an opener. The
default order tries permissive SSL first and falls back to SSL-less variants,
then to the driver-native connect. ``force_no_ssl`` moves the SSL-less
variants to the front; the native connect always stays last.
"""

from __future__ import annotations

from functools import partial

from einfo.interfaces.database import Strategy, StrategyName

from . import connection_string
from .handles import open_client, open_native, open_pooled

DEFAULT_ORDER = (
    StrategyName.POOL_SSL_PREFER,
    StrategyName.CLIENT_SSL_PREFER,
    StrategyName.POOL_NO_SSL,
    StrategyName.CLIENT_NO_SSL,
    StrategyName.NATIVE_CONNECT,
)

FORCE_NO_SSL_ORDER = (
    StrategyName.POOL_NO_SSL,
    StrategyName.CLIENT_NO_SSL,
    StrategyName.POOL_SSL_PREFER,
    StrategyName.CLIENT_SSL_PREFER,
    StrategyName.NATIVE_CONNECT,
)


def strategy_order(*, force_no_ssl: bool = False) -> tuple[StrategyName, ...]:
    """Return the attempt order for the given SSL posture."""
    return FORCE_NO_SSL_ORDER if force_no_ssl else DEFAULT_ORDER


def build_strategy(name: StrategyName, *, production: bool) -> Strategy:
    """Build the descriptor for one strategy name.

    Args:
        name: Which strategy to build.
        production: Whether SSL-prefer variants relax ``sslmode=require``.

    Returns:
        Strategy: The descriptor.
    """
    if name is StrategyName.NATIVE_CONNECT:
        return Strategy(name, connection_string.to_native_dsn, open_native)

    if name.ssl_disabled:
        transform = connection_string.disable_ssl
    else:
        transform = partial(connection_string.prefer_ssl, production=production)

    opener = open_pooled if name.pooled else open_client
    return Strategy(name, transform, partial(opener, strategy=name))


def default_strategies(
    *, production: bool = False, force_no_ssl: bool = False
) -> list[Strategy]:
    """Build the full strategy list in attempt order.

    Args:
        production: Whether SSL-prefer variants relax ``sslmode=require``.
        force_no_ssl: Try the SSL-less variants first.

    Returns:
        list[Strategy]: Descriptors in the order they should be attempted.
    """
    return [
        build_strategy(name, production=production)
        for name in strategy_order(force_no_ssl=force_no_ssl)
    ]
