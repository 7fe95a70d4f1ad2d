"""Unit tests for einfo.config."""

import logging

import pytest

from einfo import config
from einfo.config import (
    ConfigurationError,
    DatabaseSettings,
    DatabaseUrlNotSetError,
    Environment,
)

URL = "postgresql://u:p@h/db"


def test_get_db_url_reads_the_environment(monkeypatch):
    """get_db_url() returns DATABASE_URL from os.environ."""
    monkeypatch.setenv("DATABASE_URL", URL)
    assert config.get_db_url() == URL


@pytest.mark.parametrize("environ", [{}, {"DATABASE_URL": ""}, {"DATABASE_URL": "   "}])
def test_get_db_url_missing(environ):
    """A missing or blank DATABASE_URL raises DatabaseUrlNotSetError."""
    with pytest.raises(DatabaseUrlNotSetError):
        config.get_db_url(environ)


def test_defaults():
    """Only DATABASE_URL is required."""
    settings = config.load_database_settings({"DATABASE_URL": URL})
    assert settings == DatabaseSettings(url=URL)
    assert settings.environment is Environment.DEVELOPMENT
    assert not settings.connect_eagerly
    assert settings.connect_timeout == 5.0
    assert settings.pool_size == 20
    assert settings.health_timeout == 5.0


def test_all_variables():
    """Every variable is read and converted."""
    settings = config.load_database_settings(
        {
            "DATABASE_URL": URL,
            "EINFO_ENV": "Production",
            "FORCE_NO_SSL": "yes",
            "EINFO_DB_CONNECT_TIMEOUT": "2.5",
            "EINFO_DB_POOL_SIZE": "5",
            "EINFO_HEALTH_TIMEOUT": "1",
        }
    )
    assert settings.environment is Environment.PRODUCTION
    assert settings.connect_eagerly
    assert settings.force_no_ssl
    assert settings.connect_timeout == 2.5
    assert settings.pool_size == 5
    assert settings.health_timeout == 1.0


def test_allow_degraded_in_development():
    """Degraded mode can be enabled in development."""
    settings = config.load_database_settings(
        {"DATABASE_URL": URL, "EINFO_ALLOW_DEGRADED": "true"}
    )
    assert settings.allow_degraded


def test_allow_degraded_is_ignored_in_production(caplog):
    """Production never runs degraded; the override is logged."""
    with caplog.at_level(logging.WARNING, logger="einfo.config"):
        settings = config.load_database_settings(
            {
                "DATABASE_URL": URL,
                "EINFO_ENV": "production",
                "EINFO_ALLOW_DEGRADED": "1",
            }
        )
    assert not settings.allow_degraded
    assert "ignored in production" in caplog.text


@pytest.mark.parametrize(
    "key,value",
    [
        ("EINFO_ENV", "staging"),
        ("FORCE_NO_SSL", "maybe"),
        ("EINFO_ALLOW_DEGRADED", "2"),
        ("EINFO_DB_CONNECT_TIMEOUT", "soon"),
        ("EINFO_DB_POOL_SIZE", "0"),
        ("EINFO_HEALTH_TIMEOUT", "-1"),
    ],
)
def test_invalid_values_raise_configuration_error(key, value):
    """Bad values fail loudly and name the variable."""
    with pytest.raises(ConfigurationError, match=key):
        config.load_database_settings({"DATABASE_URL": URL, key: value})


def test_missing_url_is_a_configuration_error():
    """DatabaseUrlNotSetError is a ConfigurationError."""
    with pytest.raises(ConfigurationError):
        config.load_database_settings({})


@pytest.mark.parametrize("value,expected", [("", False), ("off", False), ("ON", True)])
def test_get_force_no_ssl(value, expected):
    """FORCE_NO_SSL accepts the usual boolean spellings."""
    assert config.get_force_no_ssl({"FORCE_NO_SSL": value}) is expected
