"""SQLite persistence adapter."""

import logging
import sqlite3
from pathlib import Path
from typing import Any, Sequence

from tablegate.core.errors import DatabaseError
from tablegate.query.builder import SQLITE

logger = logging.getLogger(__name__)


class SQLiteAdapter:
    """Simple SQLite persistence adapter."""

    dialect = SQLITE

    def __init__(self, db_path: Path | str = ":memory:"):
        self.db_path = str(db_path)
        self.conn: sqlite3.Connection | None = None

    def connect(self) -> None:
        """Establish database connection."""
        self.conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row

    def close(self) -> None:
        """Close database connection."""
        if self.conn:
            self.conn.close()
            self.conn = None

    def _require_conn(self) -> sqlite3.Connection:
        if not self.conn:
            raise RuntimeError("Database not connected")
        return self.conn

    def _run(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        conn = self._require_conn()
        try:
            return conn.execute(sql, tuple(params))
        except (sqlite3.Error, OverflowError) as exc:
            logger.debug("SQLite statement failed: %s", sql)
            raise DatabaseError() from exc

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]:
        """Run a query and return every row as a dict."""
        cursor = self._run(sql, params)
        return [dict(row) for row in cursor.fetchall()]

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None:
        row = self._run(sql, params).fetchone()
        return dict(row) if row else None

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any:
        """Return the first column of the first row, or None."""
        row = self._run(sql, params).fetchone()
        return row[0] if row else None

    def _write(self, sql: str, params: Sequence[Any]) -> sqlite3.Cursor:
        conn = self._require_conn()
        try:
            cursor = conn.execute(sql, tuple(params))
            conn.commit()
            return cursor
        except (sqlite3.Error, OverflowError) as exc:
            conn.rollback()
            logger.debug("SQLite write failed: %s", sql)
            raise DatabaseError() from exc

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run a write statement and return the affected row count."""
        return self._write(sql, params).rowcount

    def insert(
        self, sql: str, params: Sequence[Any] = (), primary_key: str | None = None
    ) -> Any:
        """Run an INSERT and return the new row's id (SQLite rowid)."""
        return self._write(sql, params).lastrowid
