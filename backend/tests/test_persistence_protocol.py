"""Tests for PersistenceAdapter Protocol, SQLiteAdapter, and DatabaseConfig."""

import pytest

from tablegate.core.errors import DatabaseError
from tablegate.persistence.adapter import PersistenceAdapter
from tablegate.persistence.config import DatabaseConfig, create_adapter
from tablegate.persistence.postgresql import PostgreSQLAdapter
from tablegate.persistence.sqlite import SQLiteAdapter
from tablegate.query.builder import POSTGRESQL, SQLITE


class TestPersistenceAdapterProtocol:
    """Verify both adapters satisfy the PersistenceAdapter protocol."""

    def test_sqlite_adapter_is_instance(self):
        assert isinstance(SQLiteAdapter(":memory:"), PersistenceAdapter)

    def test_postgresql_adapter_is_instance(self):
        assert isinstance(PostgreSQLAdapter("postgresql://localhost/x"), PersistenceAdapter)

    def test_adapters_carry_dialect(self):
        assert SQLiteAdapter(":memory:").dialect is SQLITE
        assert PostgreSQLAdapter("postgresql://localhost/x").dialect is POSTGRESQL

    def test_sqlite_adapter_has_conn_attribute(self):
        adapter = SQLiteAdapter(":memory:")
        assert adapter.conn is None
        adapter.connect()
        assert adapter.conn is not None
        adapter.close()
        assert adapter.conn is None


class TestSQLiteAdapter:
    def test_fetch_all_returns_dicts(self, db):
        rows = db.fetch_all('SELECT "id", "name" FROM products WHERE "id" <= ? ORDER BY "id"', (2,))
        assert rows == [{"id": 1, "name": "Alpha"}, {"id": 2, "name": "Bravo"}]

    def test_fetch_one_and_scalar(self, db):
        assert db.fetch_one('SELECT "name" FROM products WHERE "id" = ?', (3,)) == {
            "name": "Charlie"
        }
        assert db.fetch_one('SELECT "name" FROM products WHERE "id" = ?', (99,)) is None
        assert db.scalar("SELECT COUNT(*) FROM products") == 5

    def test_execute_returns_rowcount(self, db):
        assert db.execute('UPDATE products SET "status" = ? WHERE "status" = ?', ("x", "inactive")) == 2
        assert db.execute('DELETE FROM products WHERE "id" = ?', (99,)) == 0

    def test_insert_returns_new_id(self, db):
        new_id = db.insert('INSERT INTO products ("name") VALUES (?)', ("Foxtrot",), "id")
        assert new_id == 6

    def test_errors_are_wrapped(self, db):
        with pytest.raises(DatabaseError) as exc_info:
            db.fetch_all("SELECT * FROM no_such_table")
        assert exc_info.value.__cause__ is not None
        assert "no_such_table" not in exc_info.value.message

    def test_unbindable_integer_is_wrapped(self, db):
        with pytest.raises(DatabaseError) as exc_info:
            db.fetch_all("SELECT * FROM products LIMIT ? OFFSET ?", (10, 2**64))
        assert isinstance(exc_info.value.__cause__, OverflowError)
        with pytest.raises(DatabaseError):
            db.execute('UPDATE products SET "price" = ? WHERE "id" = ?', (1.0, 2**64))

    def test_failed_write_is_rolled_back(self, db):
        with pytest.raises(DatabaseError):
            db.execute('INSERT INTO products ("id", "name") VALUES (?, ?)', (1, "dup"))
        assert db.scalar("SELECT COUNT(*) FROM products") == 5

    def test_requires_connection(self):
        with pytest.raises(RuntimeError):
            SQLiteAdapter(":memory:").fetch_all("SELECT 1")


class TestDatabaseConfig:
    def test_database_url_wins(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@h/db")
        monkeypatch.setenv("TABLEGATE_DB_PATH", "/tmp/ignored.db")
        config = DatabaseConfig.from_env()
        assert config.is_postgresql
        assert config.sqlalchemy_url == "postgresql+psycopg://u:p@h/db"

    def test_db_path(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("TABLEGATE_DB_PATH", "/tmp/gate.db")
        config = DatabaseConfig.from_env()
        assert config.url == "sqlite:////tmp/gate.db"
        assert config.sqlite_path == "/tmp/gate.db"

    def test_default_under_base_path(self, monkeypatch, tmp_path):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.delenv("TABLEGATE_DB_PATH", raising=False)
        config = DatabaseConfig.from_env(tmp_path)
        assert config.url == f"sqlite:///{tmp_path / 'data' / 'tablegate.db'}"
        assert config.is_sqlite

    def test_create_adapter_by_scheme(self):
        assert isinstance(create_adapter(DatabaseConfig("sqlite:///x.db")), SQLiteAdapter)
        assert isinstance(
            create_adapter(DatabaseConfig("postgresql://localhost/x")), PostgreSQLAdapter
        )

    @pytest.mark.parametrize(
        "url", ["postgres://u:p@h/db", "postgresql+psycopg://u:p@h/db"]
    )
    def test_scheme_aliases(self, url):
        config = DatabaseConfig(url)
        assert config.url == "postgresql://u:p@h/db"
        assert isinstance(create_adapter(config), PostgreSQLAdapter)

    def test_display_url_hides_password(self):
        assert DatabaseConfig("postgresql://app:hunter2@db:5432/gen").display_url == (
            "postgresql://app:***@db:5432/gen"
        )
        assert DatabaseConfig("sqlite:///x.db").display_url == "sqlite:///x.db"

    def test_unsupported_scheme(self):
        with pytest.raises(ValueError):
            create_adapter(DatabaseConfig("mysql://localhost/x"))
