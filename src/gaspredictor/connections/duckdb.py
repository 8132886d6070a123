"""
DuckDB connection via ibis.

URLs follow the SQLAlchemy convention::

    duckdb://                   in-memory database
    duckdb:///:memory:          in-memory database
    duckdb:///data/gas.db       relative path
    duckdb:////var/lib/gas.db   absolute path
"""

from contextlib import closing
from pathlib import Path
from typing import Any

import duckdb
import ibis

from gaspredictor.connections.base import BaseConnection
from gaspredictor.exceptions import CastError, DuplicateKeyError, ValidationError
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.connections.duckdb")

MEMORY = ":memory:"


class DuckDBConnection(BaseConnection):
    """DuckDB connection wrapper using ibis."""

    backend = "duckdb"

    @property
    def path(self) -> str:
        if self.url.netloc == MEMORY:
            return MEMORY
        path = self.url.path[1:] if self.url.path.startswith("/") else self.url.path
        return path or MEMORY

    @property
    def database_name(self) -> str | None:
        return self.path

    def _open(self) -> ibis.BaseBackend:
        path = self.path
        if path == MEMORY:
            return ibis.duckdb.connect()

        Path(path).parent.mkdir(parents=True, exist_ok=True)
        try:
            return ibis.duckdb.connect(path)
        except duckdb.IOException as e:
            error_str = str(e)
            if "lock" in error_str.lower() or "conflicting" in error_str.lower():
                raise RuntimeError(f"DuckDB file '{path}' is locked by another process") from e
            raise

    def _run(self, backend: ibis.BaseBackend, query: str) -> list[tuple]:
        # One cursor per statement: the backend connection has a single
        # result set, shared by every thread
        with closing(backend.con.cursor()) as cursor:
            cursor.execute(query)
            if cursor.description is None:
                return []
            return cursor.fetchall()

    def translate_error(self, error: Exception) -> Exception:
        if isinstance(error, duckdb.ConstraintException):
            if "duplicate key" in str(error).lower():
                return DuplicateKeyError(str(error))
            return ValidationError(str(error))
        if isinstance(error, duckdb.ConversionException):
            return CastError(str(error))
        return error

    def status(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "backend": self.backend,
            "state": str(self.state),
            "host": None,
            "port": None,
            "database": self.database_name,
        }
