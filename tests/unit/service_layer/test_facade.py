"""Unit tests for query, transaction, health_check and shutdown on Database."""

import asyncio
import logging

import pytest

from einfo.interfaces.database import (
    NotConnectedError,
    QueryError,
    StrategyName,
    TransactionError,
)
from einfo.service_layer.database import Database
from tests.unit.service_layer.fakes import (
    SERVER_TIME,
    FakeHandle,
    ResourceCounter,
    fake_strategy,
)

# pylint: disable=redefined-outer-name

URL = "sqlite:///einfo.db"


def _connected(**handle_kwargs) -> tuple[Database, FakeHandle, ResourceCounter]:
    counter = ResourceCounter()
    handles: list[FakeHandle] = []
    database = Database(
        URL,
        [
            fake_strategy(
                StrategyName.CLIENT_NO_SSL, counter, handles=handles, **handle_kwargs
            )
        ],
        health_timeout=0.2,
    )
    asyncio.run(database.connect())
    return database, handles[0], counter


# --- query ---------------------------------------------------------------------


def test_query_before_connect_raises_not_connected():
    """query() without a bootstrap raises NotConnectedError."""
    database = Database(URL, [])
    with pytest.raises(NotConnectedError):
        asyncio.run(database.query("SELECT 1"))


def test_transaction_before_connect_raises_not_connected():
    """transaction() without a bootstrap raises NotConnectedError."""
    database = Database(URL, [])

    async def body(channel):
        return None  # pragma: no cover

    with pytest.raises(NotConnectedError):
        asyncio.run(database.transaction(body))


def test_query_returns_rows_from_the_active_handle():
    """Rows and row count come back as a QueryResult."""
    rows = [{"id": 1, "title": "GitHub"}, {"id": 2, "title": "Portfolio"}]
    database, handle, _ = _connected(rows=rows)

    result = asyncio.run(
        database.query("SELECT id, title FROM links WHERE user_id = :uid", {"uid": 7})
    )

    assert result.rows == rows
    assert result.row_count == 2
    assert result.first() == rows[0]
    assert handle.log == ["SELECT id, title FROM links WHERE user_id = :uid"]


def test_query_logs_excerpt_and_counts_at_debug(caplog):
    """Each query logs strategy, excerpt, parameter count and row count."""
    database, _, _ = _connected(rows=[{"id": 1}])

    with caplog.at_level(logging.DEBUG, logger="einfo.service_layer.database"):
        asyncio.run(database.query("SELECT id FROM links WHERE id = :id", {"id": 1}))

    assert "client-no-ssl" in caplog.text
    assert "params=1, rows=1" in caplog.text


def test_query_error_is_logged_and_reraised(caplog):
    """Driver errors surface as QueryError and are not retried."""
    database, handle, _ = _connected(query_error='relation "linkz" does not exist')

    with caplog.at_level(logging.ERROR, logger="einfo.service_layer.database"):
        with pytest.raises(QueryError) as excinfo:
            asyncio.run(database.query("SELECT * FROM linkz"))

    assert excinfo.value.original_message == 'relation "linkz" does not exist'
    assert "Database query failed" in caplog.text
    assert handle.log == []


# --- transaction -----------------------------------------------------------------


def test_transaction_commits_and_returns_the_body_result():
    """A body that returns normally is committed."""
    database, handle, _ = _connected()

    async def body(channel):
        await channel.execute("UPDATE links SET position = 1 WHERE id = 4")
        return "moved"

    assert asyncio.run(database.transaction(body)) == "moved"
    assert handle.log == ["BEGIN", "UPDATE links SET position = 1 WHERE id = 4", "COMMIT"]


def test_transaction_rolls_back_and_reraises_the_original_error():
    """A failing body triggers ROLLBACK and the same exception propagates."""
    database, handle, _ = _connected()

    class Boom(Exception):
        """Raised by the transaction body."""

    async def body(channel):
        await channel.execute("INSERT INTO links (title) VALUES ('x')")
        raise Boom("stop")

    with pytest.raises(Boom, match="stop"):
        asyncio.run(database.transaction(body))

    assert handle.log == ["BEGIN", "INSERT INTO links (title) VALUES ('x')", "ROLLBACK"]


def test_failed_rollback_does_not_mask_the_body_error(caplog):
    """If ROLLBACK itself fails, the body's exception still propagates."""
    database, _, _ = _connected(rollback_error="connection lost")

    async def body(channel):
        raise ValueError("bad input")

    with caplog.at_level(logging.ERROR, logger="einfo.service_layer.database"):
        with pytest.raises(ValueError, match="bad input"):
            asyncio.run(database.transaction(body))

    assert "ROLLBACK failed" in caplog.text


def test_commit_failure_raises_transaction_error():
    """A driver failure on COMMIT surfaces as TransactionError after a ROLLBACK."""
    database, handle, _ = _connected(commit_error="could not serialize access")

    async def body(channel):
        return 1

    with pytest.raises(TransactionError) as excinfo:
        asyncio.run(database.transaction(body))

    assert excinfo.value.statement == "COMMIT"
    assert handle.log == ["BEGIN", "ROLLBACK"]


def test_commit_failure_survives_a_failing_rollback():
    """The COMMIT error propagates even when the follow-up ROLLBACK fails."""
    database, _, _ = _connected(
        commit_error="could not serialize access", rollback_error="connection lost"
    )

    async def body(channel):
        return 1

    with pytest.raises(TransactionError) as excinfo:
        asyncio.run(database.transaction(body))

    assert excinfo.value.statement == "COMMIT"


# --- health check ----------------------------------------------------------------


def test_health_check_without_connection_is_unhealthy():
    """No bootstrap means unhealthy with "not connected", never an exception."""
    status = asyncio.run(Database(URL, []).health_check())

    assert not status.healthy
    assert status.error == "not connected"
    assert status.to_dict()["status"] == "unhealthy"


def test_health_check_reports_latency_and_server_time():
    """A healthy probe carries strategy, latency and the server time."""
    database, _, _ = _connected()

    status = asyncio.run(database.health_check())

    assert status.healthy
    assert status.strategy is StrategyName.CLIENT_NO_SSL
    assert status.latency_ms is not None and status.latency_ms >= 0
    assert status.server_time == SERVER_TIME
    payload = status.to_dict()
    assert payload["status"] == "healthy"
    assert payload["strategy"] == "client-no-ssl"
    assert "response_time_ms" in payload


def test_health_check_with_failing_probe_is_unhealthy():
    """A probe that raises becomes an unhealthy status."""
    database, handle, _ = _connected()
    handle.ping_error = OSError("server closed the connection unexpectedly")

    status = asyncio.run(database.health_check())

    assert not status.healthy
    assert "server closed the connection" in status.error
    assert status.to_dict()["error"] == status.error


def test_health_check_with_hung_probe_times_out():
    """A probe that hangs is bounded by the health timeout."""
    database, handle, _ = _connected()
    handle.ping_delay = 5

    status = asyncio.run(database.health_check())

    assert not status.healthy
    assert "timed out" in status.error


# --- shutdown --------------------------------------------------------------------


def test_shutdown_twice_after_connect_succeeds():
    """shutdown() is idempotent and clears the state."""
    database, handle, counter = _connected()

    async def scenario():
        await database.shutdown()
        await database.shutdown()

    asyncio.run(scenario())

    assert handle.closed
    assert counter.open == 0
    assert database.handle is None
    assert database.strategy is None


def test_shutdown_before_connect_is_safe():
    """shutdown() without a bootstrap does nothing."""
    asyncio.run(Database(URL, []).shutdown())


def test_shutdown_swallows_close_errors(caplog):
    """A failing close is logged; shutdown never raises and still clears state."""
    database, _, _ = _connected(close_error=RuntimeError("socket already closed"))

    with caplog.at_level(logging.ERROR, logger="einfo.service_layer.database"):
        asyncio.run(database.shutdown())

    assert "socket already closed" in caplog.text
    assert not database.is_ready


def test_query_after_shutdown_raises_not_connected():
    """Once shut down the facade refuses work."""
    database, _, _ = _connected()
    asyncio.run(database.shutdown())

    with pytest.raises(NotConnectedError):
        asyncio.run(database.query("SELECT 1"))
