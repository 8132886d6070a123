"""
Abstract base connection class for ibis-backed databases.

Owns the connection state signal that the readiness gate observes. Driver
calls are blocking, so they run in a worker thread.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import SplitResult

import ibis

from gaspredictor.core.retry.readiness import ConnectionState
from gaspredictor.exceptions import DatabaseConnectionError
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.connections.base")


class BaseConnection(ABC):
    """
    Base class for database connections using ibis.

    State transitions::

        DISCONNECTED -> CONNECTING -> CONNECTED -> DISCONNECTING -> DISCONNECTED
                            |                |
                            +-> DISCONNECTED <+  (connect failure / lost connection)

    Only this class mutates ``state``; everything else reads it.
    """

    backend: str = "unknown"

    def __init__(self, name: str, url: SplitResult):
        """
        Initialize connection.

        Args:
            name: Connection name used in logs and status output
            url: Parsed database URL
        """
        self.name = name
        self.url = url
        self._connection: ibis.BaseBackend | None = None
        self._state = ConnectionState.DISCONNECTED
        self._was_connected = False
        self._lock = asyncio.Lock()
        self._cleanup_tasks: set[asyncio.Task] = set()

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def connection(self) -> ibis.BaseBackend:
        """The live ibis backend.

        Raises:
            DatabaseConnectionError: If not connected
        """
        if self._connection is None:
            raise DatabaseConnectionError(f"Connection '{self.name}' is not open", details={"state": str(self.state)})
        return self._connection

    @abstractmethod
    def _open(self) -> ibis.BaseBackend:
        """Create the ibis backend (blocking)."""

    @abstractmethod
    def _run(self, backend: ibis.BaseBackend, query: str) -> list[tuple]:
        """Execute a statement and fetch its rows (blocking)."""

    def translate_error(self, error: Exception) -> Exception:
        """
        Map a driver exception onto the project exception hierarchy.

        Subclasses translate what their driver raises for request problems
        (duplicate keys, bad casts, constraint violations). Anything else is
        returned unchanged.
        """
        return error

    async def connect(self) -> None:
        """
        Open the connection.

        If the caller is cancelled (e.g. a per-attempt timeout) while the
        backend is opening, the state goes back to ``disconnected`` and the
        backend is closed as soon as the worker thread finishes opening it.

        Raises:
            DatabaseConnectionError: If the backend cannot be opened
        """
        async with self._lock:
            if self._state == ConnectionState.CONNECTED:
                return

            self._state = ConnectionState.CONNECTING
            try:
                await self._discard_stale()
                opening = asyncio.ensure_future(asyncio.to_thread(self._open))
                try:
                    self._connection = await asyncio.shield(opening)
                except asyncio.CancelledError:
                    opening.add_done_callback(self._discard_abandoned)
                    raise
            except asyncio.CancelledError:
                self._state = ConnectionState.DISCONNECTED
                logger.warning(f"Connecting to database '{self.name}' was cancelled")
                raise
            except Exception as e:
                self._state = ConnectionState.DISCONNECTED
                logger.error(f"Database connection error for '{self.name}': {e}")
                raise DatabaseConnectionError(
                    f"Cannot connect to {self.backend} database '{self.name}': {e}",
                    details=self.status(),
                ) from e

            self._state = ConnectionState.CONNECTED
            if self._was_connected:
                logger.info(f"Database '{self.name}' reconnected")
            else:
                logger.info(f"Database '{self.name}' connected ({self.backend})")
            self._was_connected = True

    async def _discard_stale(self) -> None:
        """Close a backend left over from a lost connection."""
        stale, self._connection = self._connection, None
        if stale is None:
            return
        try:
            await asyncio.to_thread(stale.disconnect)
        except Exception as e:
            logger.debug(f"Ignoring error while discarding stale backend '{self.name}': {e}")

    def _discard_abandoned(self, opening: asyncio.Future) -> None:
        """Done callback for an open whose caller was cancelled."""
        if opening.cancelled() or opening.exception() is not None:
            return
        backend = opening.result()
        logger.debug(f"Closing backend '{self.name}' opened after its connect was cancelled")
        task = opening.get_loop().create_task(self._close_backend(backend))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)

    async def _close_backend(self, backend: ibis.BaseBackend) -> None:
        try:
            await asyncio.to_thread(backend.disconnect)
        except Exception as e:
            logger.debug(f"Ignoring error while closing abandoned backend '{self.name}': {e}")

    async def close(self) -> None:
        """Close connection and cleanup resources."""
        async with self._lock:
            if self._connection is None:
                self._state = ConnectionState.DISCONNECTED
                return

            self._state = ConnectionState.DISCONNECTING
            backend, self._connection = self._connection, None
            try:
                await asyncio.to_thread(backend.disconnect)
            except Exception as e:
                logger.warning(f"Error while closing database '{self.name}': {e}")
            finally:
                self._state = ConnectionState.DISCONNECTED
            logger.info(f"Database '{self.name}' connection closed")

    def mark_disconnected(self, reason: Exception | str) -> None:
        """Record that the connection was lost (e.g. a failed heartbeat)."""
        if self._state == ConnectionState.CONNECTED:
            logger.warning(f"Database '{self.name}' disconnected: {reason}")
        self._state = ConnectionState.DISCONNECTED

    async def execute(self, query: str) -> list[tuple]:
        """
        Execute a SQL statement and return its rows.

        Raises:
            DatabaseConnectionError: If not connected
            RequestError: Driver errors translated by ``translate_error``
        """
        backend = self.connection
        try:
            return await asyncio.to_thread(self._run, backend, query)
        except Exception as e:
            translated = self.translate_error(e)
            if translated is e:
                raise
            raise translated from e

    async def ping(self) -> None:
        """Round-trip a trivial query."""
        await self.execute("SELECT 1")

    def status(self) -> dict[str, Any]:
        """Connection status details."""
        return {
            "name": self.name,
            "backend": self.backend,
            "state": str(self._state),
            "host": self.url.hostname,
            "port": self.url.port,
            "database": self.database_name,
        }

    @property
    def database_name(self) -> str | None:
        return self.url.path.lstrip("/") or None

    async def __aenter__(self) -> BaseConnection:
        await self.connect()
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name='{self.name}', state='{self._state}')"
