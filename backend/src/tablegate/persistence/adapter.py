"""PersistenceAdapter Protocol: shared interface for all database adapters."""

from typing import Any, Protocol, Sequence, runtime_checkable

from tablegate.query.builder import Dialect


@runtime_checkable
class PersistenceAdapter(Protocol):
    """Interface all persistence adapters must implement.

    Adapters execute already-built statements; they never compose SQL from
    request input. Driver errors surface as ``DatabaseError``.
    """

    # Raw connection handle. Type varies by adapter (sqlite3.Connection,
    # psycopg.Connection).
    conn: Any
    dialect: Dialect

    def connect(self) -> None: ...

    def close(self) -> None: ...

    def fetch_all(self, sql: str, params: Sequence[Any] = ()) -> list[dict[str, Any]]: ...

    def fetch_one(self, sql: str, params: Sequence[Any] = ()) -> dict[str, Any] | None: ...

    def scalar(self, sql: str, params: Sequence[Any] = ()) -> Any: ...

    def execute(self, sql: str, params: Sequence[Any] = ()) -> int: ...

    def insert(
        self, sql: str, params: Sequence[Any] = (), primary_key: str | None = None
    ) -> Any: ...
