"""Database configuration and adapter factory.

The same URL feeds two consumers: the query adapter (raw DB-API driver)
and the membership store (SQLAlchemy engine). ``DatabaseConfig`` renders
the URL for each of them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import urlsplit, urlunsplit

if TYPE_CHECKING:
    from tablegate.persistence.adapter import PersistenceAdapter

_SCHEME_ALIASES = {
    "postgres": "postgresql",
    "postgresql+psycopg": "postgresql",
}


@dataclass
class DatabaseConfig:
    """Connection URL for the generator database.

    Supports sqlite:/// and postgresql:// (alias postgres://) URLs.
    """

    url: str

    def __post_init__(self) -> None:
        scheme, sep, rest = self.url.partition("://")
        if sep and scheme in _SCHEME_ALIASES:
            self.url = f"{_SCHEME_ALIASES[scheme]}://{rest}"

    @classmethod
    def from_env(cls, base_path: Path | None = None) -> DatabaseConfig:
        """Resolve the database URL from the environment.

        Resolution order:
        1. DATABASE_URL
        2. TABLEGATE_DB_PATH (a SQLite file)
        3. {base_path}/data/tablegate.db, or ./tablegate.db without a base path
        """
        url = os.environ.get("DATABASE_URL")
        if url:
            return cls(url=url)

        db_path = os.environ.get("TABLEGATE_DB_PATH")
        if db_path:
            return cls(url=f"sqlite:///{db_path}")

        if base_path:
            return cls(url=f"sqlite:///{base_path / 'data' / 'tablegate.db'}")
        return cls(url="sqlite:///tablegate.db")

    @property
    def scheme(self) -> str:
        return self.url.partition("://")[0]

    @property
    def is_sqlite(self) -> bool:
        return self.scheme == "sqlite"

    @property
    def is_postgresql(self) -> bool:
        return self.scheme == "postgresql"

    @property
    def sqlite_path(self) -> str:
        """Filesystem path of a sqlite:/// URL (":memory:" when empty)."""
        return self.url.replace("sqlite:///", "", 1) or ":memory:"

    @property
    def sqlalchemy_url(self) -> str:
        """URL for the membership store's SQLAlchemy engine.

        PostgreSQL URLs are pinned to the psycopg (v3) driver.
        """
        if self.is_postgresql:
            return self.url.replace("postgresql://", "postgresql+psycopg://", 1)
        return self.url

    @property
    def display_url(self) -> str:
        """The URL with any password replaced, for logs."""
        parts = urlsplit(self.url)
        if parts.password is None:
            return self.url
        netloc = parts.netloc.replace(f":{parts.password}@", ":***@", 1)
        return urlunsplit(parts._replace(netloc=netloc))


def create_adapter(config: DatabaseConfig) -> PersistenceAdapter:
    """Create a (not yet connected) adapter for the URL's scheme.

    Raises:
        ValueError: For unsupported URL schemes
    """
    if config.is_sqlite:
        from tablegate.persistence.sqlite import SQLiteAdapter

        return SQLiteAdapter(config.sqlite_path)

    if config.is_postgresql:
        from tablegate.persistence.postgresql import PostgreSQLAdapter

        return PostgreSQLAdapter(config.url)

    raise ValueError(f"Unsupported database URL scheme: {config.scheme}")
