"""
Connection heartbeat.

Pings the database periodically, reports a lost connection through the
connection state, and reconnects through the resilient executor.
"""

import asyncio

from gaspredictor.connections.base import BaseConnection
from gaspredictor.connections.health import check_database_health
from gaspredictor.core.retry.manager import RetryManager
from gaspredictor.core.retry.readiness import ConnectionState
from gaspredictor.exceptions import RetryError
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.connections.monitor")


class ConnectionMonitor:
    """Background heartbeat for one connection."""

    def __init__(self, connection: BaseConnection, retry_manager: RetryManager, interval: float = 10.0):
        if interval <= 0:
            raise ValueError("interval must be > 0")
        self.connection = connection
        self.retry_manager = retry_manager
        self.interval = interval
        self._task: asyncio.Task | None = None
        self._stopping = asyncio.Event()

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping.clear()
        self._task = asyncio.create_task(self._loop(), name=f"heartbeat:{self.connection.name}")

    async def stop(self) -> None:
        self._stopping.set()
        if self._task is None:
            return
        self._task.cancel()
        await asyncio.gather(self._task, return_exceptions=True)
        self._task = None

    async def check(self) -> bool:
        """Run one heartbeat; returns whether the connection is healthy afterwards."""
        connection = self.connection
        if connection.state == ConnectionState.CONNECTED:
            if await check_database_health(connection):
                return True
            connection.mark_disconnected("heartbeat ping failed")

        if connection.state != ConnectionState.DISCONNECTED:
            # connect or close already in progress
            return False

        try:
            await self.retry_manager.execute(connection.connect, operation_name=f"reconnect:{connection.name}")
        except RetryError as e:
            logger.error(f"Could not reconnect database '{connection.name}': {e}")
            return False
        return True

    async def _loop(self) -> None:
        while not self._stopping.is_set():
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval)
                break
            except TimeoutError:
                pass
            await self.check()
