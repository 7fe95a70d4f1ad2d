"""Fixtures for end-to-end CLI logging tests.

Registers a test-only ``log-demo`` command on the ``einfo`` group that logs
at every level on a project logger and on a driver logger, the way a
bootstrap with a failed strategy does.
"""

import logging

import click
import pytest
from click.testing import CliRunner

from einfo.entrypoints.cli.main import einfo

# pylint: disable=redefined-outer-name


@click.command()
def log_demo():
    """Emit representative log messages for CLI/flight-recorder tests."""
    logger = logging.getLogger("einfo.demo")
    logger.debug("This is a debug-level test message.")
    logger.info("This is an info-level test message.")
    logger.warning("This is a warning-level test message.")
    logger.error("This is an error-level test message.")
    logger.critical("This is a critical-level test message.")
    driver_logger = logging.getLogger("psycopg.pool")
    driver_logger.debug("This is a debug-level driver test message.")
    driver_logger.info("This is an info-level driver test message.")
    driver_logger.warning("This is a warning-level driver test message.")
    logger.debug("This is a final debug-level test message.")


def _remove_command_everywhere(group, name: str) -> None:
    """Remove a command from a Click group and click-extra's sections."""
    group.commands.pop(name, None)
    if hasattr(group, "_default_section"):
        group._default_section.commands.pop(name, None)  # pylint: disable=protected-access
    for sec in getattr(group, "_sections", []):
        getattr(sec, "commands", {}).pop(name, None)


@pytest.fixture
def registered_log_demo():
    """Register ``log-demo`` on the ``einfo`` group for one test."""
    einfo.add_command(log_demo, name="log-demo")
    try:
        yield
    finally:
        _remove_command_everywhere(einfo, "log-demo")


@pytest.fixture
def runner():
    """Return a Click CliRunner."""
    return CliRunner()


@pytest.fixture
def fs(runner):
    """Run the test inside an isolated working directory."""
    with runner.isolated_filesystem():
        yield
