"""
Postgres connection via ibis.

ibis.postgres uses psycopg (v3); each statement runs on a fresh cursor
in a worker thread.
"""

from contextlib import closing
from urllib.parse import unquote

import ibis
import psycopg
from psycopg import errors as pg_errors

from gaspredictor.connections.base import BaseConnection
from gaspredictor.exceptions import CastError, DuplicateKeyError, ValidationError
from gaspredictor.utils.logging import get_logger

logger = get_logger("gaspredictor.connections.postgres")

DEFAULT_PORT = 5432


class PostgresConnection(BaseConnection):
    """Postgres connection wrapper using ibis."""

    backend = "postgres"

    def _open(self) -> ibis.BaseBackend:
        url = self.url
        return ibis.postgres.connect(
            host=url.hostname or "localhost",
            port=url.port or DEFAULT_PORT,
            user=unquote(url.username) if url.username else None,
            password=unquote(url.password) if url.password else None,
            database=self.database_name,
        )

    def _run(self, backend: ibis.BaseBackend, query: str) -> list[tuple]:
        with closing(backend.raw_sql(query)) as cursor:
            if cursor.description is None:
                return []
            return cursor.fetchall()

    def translate_error(self, error: Exception) -> Exception:
        # UniqueViolation is an IntegrityError, so check it first
        if isinstance(error, pg_errors.UniqueViolation):
            return DuplicateKeyError(str(error), details={"sqlstate": error.sqlstate})
        if isinstance(error, psycopg.DataError):
            return CastError(str(error), details={"sqlstate": error.sqlstate})
        if isinstance(error, psycopg.IntegrityError):
            return ValidationError(str(error), details={"sqlstate": error.sqlstate})
        return error
