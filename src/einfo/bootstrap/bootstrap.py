"""Assemble the database service and own its process lifecycle."""

from __future__ import annotations

import asyncio
import atexit
import logging
import signal
import time
from collections.abc import Sequence
from dataclasses import dataclass, field

from einfo import __version__, config
from einfo.adapters.db import default_strategies, normalize
from einfo.adapters.redactor import Redactor
from einfo.config import ALLOW_DEGRADED_KEY, DatabaseSettings
from einfo.interfaces.database import (
    ConnectionExhaustedError,
    ConnectOptions,
    Strategy,
)
from einfo.interfaces.redactor import Redactor as AbstractRedactor
from einfo.service_layer.database import Database
from einfo.service_layer.health import HealthReport, health_report

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


@dataclass
class AppContainer:
    """The process-wide services, built once at startup and passed around."""

    settings: DatabaseSettings
    database: Database
    started_at: float = field(default_factory=time.monotonic)

    async def start(self) -> None:
        """Bootstrap the database connection.

        Raises:
            ConnectionExhaustedError: If every strategy failed, unless degraded
                mode is allowed (development only), in which case the failure
                is logged and the container stays up but not ready.
        """
        try:
            await self.database.connect()
        except ConnectionExhaustedError:
            if not self.settings.allow_degraded:
                raise
            logger.warning(
                "Database bootstrap failed; continuing in DEGRADED mode because "
                "%s is set. Requests needing the database will fail until "
                "a reconnect succeeds.",
                ALLOW_DEGRADED_KEY,
            )

    async def health(self) -> HealthReport:
        """Build the health report for probes."""
        return await health_report(
            self.database,
            version=__version__,
            environment=self.settings.environment.value,
            started_at=self.started_at,
        )

    async def shutdown(self) -> None:
        """Release the database connection. Idempotent."""
        await self.database.shutdown()


def build_database(
    settings: DatabaseSettings,
    *,
    strategies: Sequence[Strategy] | None = None,
    redactor: AbstractRedactor | None = None,
) -> Database:
    """Build the database service with the default strategies injected."""
    if strategies is None:
        strategies = default_strategies(
            production=settings.environment.is_production,
            force_no_ssl=settings.force_no_ssl,
        )
    return Database(
        settings.url,
        strategies,
        normalize=normalize,
        options=ConnectOptions(
            connect_timeout=settings.connect_timeout,
            pool_size=settings.pool_size,
        ),
        health_timeout=settings.health_timeout,
        redactor=redactor or Redactor(),
    )


async def bootstrap(
    settings: DatabaseSettings | None = None,
    *,
    strategies: Sequence[Strategy] | None = None,
    redactor: AbstractRedactor | None = None,
    connect: bool | None = None,
) -> AppContainer:
    """Build the application container.

    Production connects eagerly here; development defers the connection to an
    explicit `AppContainer.start()` unless ``connect`` says otherwise.

    Args:
        settings: Settings to use; read from the environment when omitted.
        strategies: Override the default strategy list (tests, tooling).
        redactor: Redactor for logged connection strings.
        connect: Force (True) or skip (False) connecting now.

    Raises:
        ConfigurationError: If the environment is missing or invalid.
        ConnectionExhaustedError: If connecting now and every strategy failed
            outside an allowed degraded mode.
    """
    settings = settings or config.load_database_settings()
    container = AppContainer(
        settings=settings,
        database=build_database(settings, strategies=strategies, redactor=redactor),
    )
    if settings.connect_eagerly if connect is None else connect:
        await container.start()
    return container


class ShutdownHooks:
    """Signal and interpreter-exit hooks that shut the container down.

    ``stopped`` is set once a signal-triggered shutdown has finished, so a
    serving loop can ``await hooks.stopped.wait()`` and return.
    """

    def __init__(self, container: AppContainer, loop: asyncio.AbstractEventLoop):
        self.container = container
        self.loop = loop
        self.stopped = asyncio.Event()
        self._signals: list[signal.Signals] = []
        self._task: asyncio.Task | None = None

    def install(self) -> ShutdownHooks:
        """Register SIGINT/SIGTERM handlers and the ``atexit`` hook."""
        for sig in SHUTDOWN_SIGNALS:
            try:
                self.loop.add_signal_handler(sig, self._on_signal, sig)
            except (NotImplementedError, RuntimeError) as e:
                logger.debug("Cannot install %s handler: %s", sig.name, e)
            else:
                self._signals.append(sig)
        atexit.register(self._on_exit)
        return self

    def remove(self) -> None:
        """Unregister every hook installed by `install()`."""
        for sig in self._signals:
            self.loop.remove_signal_handler(sig)
        self._signals.clear()
        atexit.unregister(self._on_exit)

    def _on_signal(self, sig: signal.Signals) -> None:
        if self._task is not None:
            return
        logger.info("Received %s signal, shutting down gracefully...", sig.name)
        self._task = self.loop.create_task(self._shutdown())

    async def _shutdown(self) -> None:
        try:
            await self.container.shutdown()
        finally:
            self.stopped.set()

    def _on_exit(self) -> None:
        if not self.container.database.is_ready:
            return
        logger.info("Application is shutting down, disconnecting from database...")
        try:
            asyncio.run(self.container.shutdown())
        except RuntimeError as e:
            logger.debug("Could not run shutdown at interpreter exit: %s", e)


def install_shutdown_hooks(
    container: AppContainer, loop: asyncio.AbstractEventLoop | None = None
) -> ShutdownHooks:
    """Shut ``container`` down on SIGINT, SIGTERM or interpreter exit.

    Must be called from within the running loop unless ``loop`` is given.
    """
    return ShutdownHooks(container, loop or asyncio.get_running_loop()).install()
