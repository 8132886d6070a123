"""
Database connections.

ibis-backed DuckDB and Postgres connections with an observable state,
health probes and a reconnecting heartbeat.
"""

from gaspredictor.connections.base import BaseConnection
from gaspredictor.connections.duckdb import DuckDBConnection
from gaspredictor.connections.health import check_database_health, get_database_status
from gaspredictor.connections.manager import create_connection
from gaspredictor.connections.monitor import ConnectionMonitor
from gaspredictor.connections.postgres import PostgresConnection

__all__ = [
    "BaseConnection",
    "DuckDBConnection",
    "PostgresConnection",
    "create_connection",
    "check_database_health",
    "get_database_status",
    "ConnectionMonitor",
]
