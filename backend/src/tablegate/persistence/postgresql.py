"""PostgreSQL persistence adapter.

Uses psycopg v3 (psycopg[binary]>=3.1.0) for database access.
Mirrors SQLiteAdapter method-for-method; statements arrive already built
for the PostgreSQL dialect:
  - %s placeholders instead of ?
  - INSERT ... RETURNING "<pk>" for generated keys
  - dict_row cursor factory for dict-based row access

Identifier quoting
------------------
PostgreSQL folds unquoted identifiers to lowercase. Low-code generators
freely use mixed-case and reserved-word column names (``order``, ``group``,
``user``), so the query builder double-quotes every identifier.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

import psycopg
from psycopg.rows import dict_row

from tablegate.core.errors import DatabaseError
from tablegate.query.builder import POSTGRESQL

logger = logging.getLogger(__name__)


class PostgreSQLAdapter:
    """PostgreSQL persistence adapter using psycopg v3."""

    dialect = POSTGRESQL

    def __init__(self, url: str):
        # Accept both postgresql:// and postgresql+psycopg:// URLs.
        # psycopg.connect() wants a plain libpq DSN or postgres:// URL,
        # so strip the +psycopg driver suffix when present.
        self.url = url.replace("postgresql+psycopg://", "postgresql://")
        self.conn: Any = None

    def connect(self) -> None:
        """Establish database connection."""
        try:
            self.conn = psycopg.connect(self.url, row_factory=dict_row, autocommit=True)
        except psycopg.Error as exc:
            raise DatabaseError() from exc

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def _require_conn(self) -> Any:
        if not self.conn:
            raise RuntimeError("Database not connected")
        return self.conn

    def _run(self, sql: str, params: Sequence[Any]) -> Any:
        conn = self._require_conn()
        try:
            return conn.execute(sql, tuple(params))
        except psycopg.Error as exc:
            logger.debug("PostgreSQL statement failed: %s", sql)
            raise DatabaseError() from exc

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a query and return every row as a dict."""
        return [dict(row) for row in self._run(sql, params).fetchall()]

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        row = self._run(sql, params).fetchone()
        return dict(row) if row else None

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Return the first column of the first row, or None."""
        row = self._run(sql, params).fetchone()
        if not row:
            return None
        return next(iter(row.values()))

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement and return the affected row count."""
        return self._run(sql, params).rowcount

    def insert(
        self, sql: str, params: Sequence[Any] = (), primary_key: str | None = None
    ) -> Any:
        """Run an INSERT ... RETURNING and return the generated key."""
        row = self._run(sql, params).fetchone()
        if not row:
            return None
        if primary_key and primary_key in row:
            return row[primary_key]
        return next(iter(row.values()))
