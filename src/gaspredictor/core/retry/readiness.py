"""
Readiness gate for stateful dependencies.

Waits until a connection reports ``connected`` without touching the
connection itself.
"""

import asyncio
import time
from collections.abc import Callable
from enum import StrEnum

from gaspredictor.exceptions import ReadinessTimeoutError
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.retry.readiness")

DEFAULT_READINESS_TIMEOUT = 30.0
DEFAULT_POLL_INTERVAL = 0.1


class ConnectionState(StrEnum):
    """Connection states as reported by the database driver wrapper."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    DISCONNECTING = "disconnecting"


StateAccessor = Callable[[], ConnectionState]


async def wait_for_ready(
    state_accessor: StateAccessor,
    timeout: float = DEFAULT_READINESS_TIMEOUT,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> None:
    """
    Block until ``state_accessor()`` reports ``CONNECTED``.

    The state is polled every ``poll_interval`` seconds; the last sleep is
    clamped to the remaining budget, so a failure is reported no later than
    ``timeout + poll_interval``.

    Args:
        state_accessor: Read-only accessor for the connection state
        timeout: Maximum time to wait in seconds
        poll_interval: Time between two state checks in seconds

    Raises:
        ReadinessTimeoutError: If the state is not ``CONNECTED`` within ``timeout``
    """
    if timeout < 0:
        raise ValueError("timeout must be >= 0")
    if poll_interval <= 0:
        raise ValueError("poll_interval must be > 0")

    started = time.monotonic()
    while True:
        state = state_accessor()
        if state == ConnectionState.CONNECTED:
            return

        elapsed = time.monotonic() - started
        if elapsed >= timeout:
            logger.warning(
                f"Connection not ready after {elapsed:.2f}s (state: {state})",
                extra={"elapsed": elapsed, "timeout": timeout, "state": str(state)},
            )
            raise ReadinessTimeoutError(elapsed, timeout, last_state=str(state))

        await asyncio.sleep(min(poll_interval, timeout - elapsed))
