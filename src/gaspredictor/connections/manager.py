"""
Connection factory.

Picks the backend from the database URL scheme.
"""

from urllib.parse import urlsplit

from gaspredictor.connections.base import BaseConnection
from gaspredictor.connections.duckdb import DuckDBConnection
from gaspredictor.connections.postgres import PostgresConnection
from gaspredictor.exceptions import ConfigurationError
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.connections.manager")

BACKENDS: dict[str, type[BaseConnection]] = {
    "duckdb": DuckDBConnection,
    "postgres": PostgresConnection,
    "postgresql": PostgresConnection,
}


def create_connection(url: str, name: str = "default") -> BaseConnection:
    """
    Create (but do not open) a connection for ``url``.

    Raises:
        ConfigurationError: If the URL scheme has no backend
    """
    parts = urlsplit(url)
    scheme = parts.scheme.split("+", 1)[0].lower()
    connection_class = BACKENDS.get(scheme)
    if connection_class is None:
        raise ConfigurationError(
            f"Unsupported database URL scheme '{parts.scheme}'. Supported: {', '.join(sorted(BACKENDS))}",
            details={"scheme": parts.scheme},
        )
    logger.debug(f"Creating {connection_class.backend} connection '{name}'")
    return connection_class(name, parts)
