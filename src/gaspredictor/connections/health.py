"""Database health probes."""

from typing import Any

from gaspredictor.connections.base import BaseConnection
from gaspredictor.core.retry.readiness import ConnectionState
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.connections.health")


async def check_database_health(connection: BaseConnection | None) -> bool:
    """True only if the connection is open and answers a ping. Never raises."""
    if connection is None or not connection.is_connected:
        return False
    try:
        await connection.ping()
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
    return True


def get_database_status(connection: BaseConnection | None) -> dict[str, Any]:
    """Connection state snapshot for status endpoints and the CLI."""
    if connection is None:
        return {
            "configured": False,
            "state": str(ConnectionState.DISCONNECTED),
            "status": "not configured",
        }
    status = connection.status()
    return {
        "configured": True,
        "status": "connected" if connection.is_connected else "disconnected",
        **status,
    }
