"""Shared fixtures."""

from __future__ import annotations

import time
from typing import Any
from unittest.mock import MagicMock
from urllib.parse import urlsplit

import pytest

from gaspredictor.config.loader import Config
from gaspredictor.config.settings import Settings
from gaspredictor.connections.base import BaseConnection
from gaspredictor.connections.duckdb import DuckDBConnection
from gaspredictor.connections.manager import create_connection


def make_config(environment: str = "test", **overrides: Any) -> Config:
    """Config with every required value set; sections in ``overrides`` are merged."""
    data: dict[str, Any] = {
        "environment": environment,
        "server": {"host": "127.0.0.1", "port": 8000},
        "auth": {"jwt_secret": "super-secret"},
        "cors": {"origin": "http://localhost:3000"},
        "rate_limit": {"window_ms": 60000, "max": 100},
        "database": {
            "readiness_timeout": 0.5,
            "heartbeat_interval": 60,
            "retry": {"max_retries": 0, "base_delay": 0, "max_delay": 0, "max_jitter": 0, "per_attempt_timeout": 2},
        },
        "logging": {"level": "INFO"},
    }
    for section, values in overrides.items():
        if isinstance(values, dict) and isinstance(data.get(section), dict):
            data[section].update(values)
        else:
            data[section] = values
    return Config(data)


def make_settings(environment: str = "test", **overrides: Any) -> Settings:
    return Settings.from_config(make_config(environment, **overrides))


class FakeConnection(BaseConnection):
    """
    Connection whose driver is a MagicMock.

    ``fail_open``/``fail_query`` inject errors; ``open_delay`` slows connects.
    """

    backend = "fake"

    def __init__(self, name: str = "fake", *, fail_open: Exception | None = None, open_delay: float = 0.0):
        super().__init__(name, urlsplit("fake://localhost/fake"))
        self.fail_open = fail_open
        self.open_delay = open_delay
        self.opened: list[MagicMock] = []
        self.fail_query: Exception | None = None
        self.queries: list[str] = []

    def _open(self) -> Any:
        # Runs in a worker thread, like a slow driver handshake
        time.sleep(self.open_delay)
        if self.fail_open is not None:
            raise self.fail_open
        backend = MagicMock()
        self.opened.append(backend)
        return backend

    def _run(self, backend: Any, query: str) -> list[tuple]:
        self.queries.append(query)
        if self.fail_query is not None:
            raise self.fail_query
        return [(1,)]


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest.fixture
def base_environ() -> dict[str, str]:
    """Minimal environment that satisfies every required setting."""
    return {
        "APP_ENV": "development",
        "PORT": "8080",
        "JWT_SECRET": "super-secret",
        "CORS_ORIGIN": "http://localhost:3000,http://localhost:5173",
        "RATE_LIMIT_WINDOW_MS": "900000",
        "RATE_LIMIT_MAX": "100",
    }


@pytest.fixture
def memory_connection() -> DuckDBConnection:
    connection = create_connection("duckdb://", name="test")
    assert isinstance(connection, DuckDBConnection)
    return connection
