"""Shared fixtures: a seeded generator database and the repo's table configs."""

import sqlite3
from pathlib import Path

import pytest

from tablegate.auth.password import PasswordService
from tablegate.persistence.sqlite import SQLiteAdapter
from tablegate.registry.loader import TableRegistry

REPO_ROOT = Path(__file__).resolve().parents[2]
METADATA_PATH = REPO_ROOT / "metadata"

PASSWORD = "s3cret-pass"

SCHEMA = """
CREATE TABLE membership_grouppermissions (
    "permissionID" INTEGER PRIMARY KEY AUTOINCREMENT,
    "groupID" TEXT NOT NULL,
    "tableName" TEXT NOT NULL,
    "allowInsert" INTEGER NOT NULL DEFAULT 0,
    "allowView" INTEGER NOT NULL DEFAULT 0,
    "allowEdit" INTEGER NOT NULL DEFAULT 0,
    "allowDelete" INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE membership_users (
    "memberID" TEXT PRIMARY KEY,
    "passHash" TEXT,
    "groupID" TEXT NOT NULL,
    "isApproved" INTEGER NOT NULL DEFAULT 1,
    "isBanned" INTEGER NOT NULL DEFAULT 0
);
CREATE TABLE products (
    "id" INTEGER PRIMARY KEY AUTOINCREMENT,
    "name" TEXT NOT NULL,
    "description" TEXT,
    "status" TEXT,
    "price" REAL,
    "in_stock" INTEGER,
    "created_at" TEXT
);
CREATE TABLE orders (
    "id" INTEGER PRIMARY KEY AUTOINCREMENT,
    "customer_id" INTEGER,
    "owner" TEXT,
    "status" TEXT,
    "total" REAL,
    "order_date" TEXT,
    "notes" TEXT
);
CREATE TABLE customers (
    "id" INTEGER PRIMARY KEY AUTOINCREMENT,
    "name" TEXT,
    "email" TEXT,
    "city" TEXT,
    "password_hint" TEXT
);
"""

# (groupID, tableName, insert, view, edit, delete)
PERMISSIONS = [
    ("2", "products", 0, 3, 0, 0),
    ("2", "orders", 1, 1, 1, 1),
    ("2", "customers", 0, 2, 0, 0),
    ("Admins", "products", 3, 3, 3, 3),
    ("Admins", "orders", 3, 3, 3, 3),
    ("Admins", "customers", 3, 3, 3, 3),
    ("anonymous", "products", 0, 3, 0, 0),
]

PRODUCTS = [
    # 3 active and 2 inactive rows; Bravo and Charlie share a price
    (1, "Alpha", "Basic widget", "active", 10.0, 1, "2024-01-05 09:00:00"),
    (2, "Bravo", "Premium widget", "active", 30.0, 1, "2024-02-10 12:30:00"),
    (3, "Charlie", "Premium gadget", "active", 30.0, 0, "2024-03-15 08:15:00"),
    (4, "Delta", "Discontinued gadget", "inactive", 50.0, 0, "2023-11-01 00:00:00"),
    (5, "Echo", None, "inactive", 5.0, None, None),
]

ORDERS = [
    (5, 1, "u1", "open", 120.0, "2024-04-01", "rush delivery"),
    (6, 2, "u2", "open", 80.0, "2024-04-02", None),
    (7, 1, "u1", "shipped", 45.5, "2024-04-03", "gift wrap"),
]

CUSTOMERS = [
    (1, "Ada Lovelace", "ada@example.com", "London", "engine"),
    (2, "Grace Hopper", "grace@example.com", "Arlington", "cobol"),
]


def seed_database(path: Path, password_hash: str) -> None:
    """Create the generator tables and fill them with the fixture rows."""
    conn = sqlite3.connect(path)
    try:
        conn.executescript(SCHEMA)
        conn.executemany(
            'INSERT INTO membership_grouppermissions ("groupID", "tableName", "allowInsert",'
            ' "allowView", "allowEdit", "allowDelete") VALUES (?, ?, ?, ?, ?, ?)',
            PERMISSIONS,
        )
        conn.executemany(
            'INSERT INTO membership_users ("memberID", "passHash", "groupID", "isApproved",'
            ' "isBanned") VALUES (?, ?, ?, ?, ?)',
            [
                ("u1", password_hash, "2", 1, 0),
                ("u2", password_hash, "2", 1, 0),
                ("admin", password_hash, "Admins", 1, 0),
                ("banned", password_hash, "2", 1, 1),
                ("pending", password_hash, "2", 0, 0),
            ],
        )
        conn.executemany("INSERT INTO products VALUES (?, ?, ?, ?, ?, ?, ?)", PRODUCTS)
        conn.executemany("INSERT INTO orders VALUES (?, ?, ?, ?, ?, ?, ?)", ORDERS)
        conn.executemany("INSERT INTO customers VALUES (?, ?, ?, ?, ?)", CUSTOMERS)
        conn.commit()
    finally:
        conn.close()


@pytest.fixture(scope="session")
def password_hash() -> str:
    # Low work factor keeps the suite fast
    return PasswordService(rounds=4).hash(PASSWORD)


@pytest.fixture
def db_path(tmp_path, password_hash) -> Path:
    path = tmp_path / "tablegate.db"
    seed_database(path, password_hash)
    return path


@pytest.fixture
def db(db_path):
    adapter = SQLiteAdapter(db_path)
    adapter.connect()
    yield adapter
    adapter.close()


@pytest.fixture
def registry() -> TableRegistry:
    loaded = TableRegistry(METADATA_PATH)
    loaded.load_all()
    return loaded
