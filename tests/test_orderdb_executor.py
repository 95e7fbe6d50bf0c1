from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from order_desk.errors import StorageUnavailable
from order_desk.orderdb import OrderDatabase, Statement


def test_update_reports_rows_and_inserted_id(db: OrderDatabase) -> None:
    result = db.update(
        "INSERT INTO orders (date, customer_id, total_price) VALUES (?, ?, ?);",
        ("2024-06-01", "1001", 10.0),
    )
    assert result.rows_affected == 1
    assert result.inserted_id == 1

    changed = db.update("UPDATE orders SET total_price = ? WHERE order_number = ?;", (12.0, 1))
    assert changed.rows_affected == 1
    assert changed.inserted_id is None


def test_query_returns_row_mappings_in_order(db: OrderDatabase) -> None:
    for number, name in (("3", "C"), ("1", "A"), ("2", "B")):
        db.update("INSERT INTO products (product_number, name, price) VALUES (?, ?, 1.0);", (number, name))

    rows = db.query("SELECT product_number, name FROM products ORDER BY product_number;")
    assert rows == [
        {"product_number": "1", "name": "A"},
        {"product_number": "2", "name": "B"},
        {"product_number": "3", "name": "C"},
    ]
    assert db.query_one("SELECT name FROM products WHERE product_number = ?;", ("9",)) is None


def test_transaction_commits_all_statements(db: OrderDatabase) -> None:
    affected = db.transaction(
        [
            Statement("INSERT INTO products (product_number, name, price) VALUES (?, ?, ?);", ("1001", "A", 1.0)),
            Statement("INSERT INTO products (product_number, name, price) VALUES (?, ?, ?);", ("1002", "B", 2.0)),
        ]
    )
    assert affected == 2
    assert db.count("products") == 2


def test_transaction_rolls_back_everything_and_reraises(db: OrderDatabase) -> None:
    statements = [
        Statement("INSERT INTO products (product_number, name, price) VALUES (?, ?, ?);", ("1001", "A", 1.0)),
        Statement("INSERT INTO products (product_number, name, price) VALUES (?, ?, ?);", ("1002", "B", 2.0)),
        Statement("INSERT INTO products (product_number, name, price) VALUES (?, ?, ?);", ("1001", "dup", 3.0)),
    ]
    with pytest.raises(sqlite3.IntegrityError):
        db.transaction(statements)

    assert db.count("products") == 0
    # The connection is usable again after the rollback.
    db.update("INSERT INTO products (product_number, name, price) VALUES ('1003', 'C', 1.0);")
    assert db.count("products") == 1


def test_atomic_exposes_lastrowid_and_rolls_back_on_error(db: OrderDatabase) -> None:
    with pytest.raises(RuntimeError):
        with db.atomic() as cur:
            cur.execute("INSERT INTO orders (date, customer_id, total_price) VALUES ('2024-01-01', '1', 0);")
            assert cur.lastrowid == 1
            raise RuntimeError("boom")
    assert db.count("orders") == 0


def test_line_items_require_existing_order(db: OrderDatabase) -> None:
    with pytest.raises(sqlite3.IntegrityError):
        db.update(
            "INSERT INTO order_line_items (order_number, product_number, qty, subtotal) VALUES (99, '1001', 1, 1.0);"
        )


def test_close_forces_reinitialization_on_next_use(tmp_path: Path) -> None:
    db = OrderDatabase(str(tmp_path / "orders.sqlite3"))
    db.update("INSERT INTO customers (customer_id, name, phone) VALUES ('1001', 'Jane', '1234567');")
    assert db.initialized

    db.close()
    assert db.initialized is False
    db.close()  # second close is a no-op

    assert db.count("customers") == 1
    assert db.initialized is True
    db.close()


def test_wait_until_ready_gives_up_after_attempts(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("x", encoding="utf-8")
    db = OrderDatabase(str(blocker / "orders.sqlite3"))
    with pytest.raises(StorageUnavailable):
        db.wait_until_ready(attempts=2, delay=0)
    assert db.initialized is False


class _TrackingConnection:
    """Delegates to a real connection and remembers the cursors it hands out."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self.cursors: list = []

    def cursor(self) -> sqlite3.Cursor:
        cur = self._conn.cursor()
        self.cursors.append(cur)
        return cur

    def __getattr__(self, name: str):
        return getattr(self._conn, name)


def test_atomic_closes_cursor_when_begin_fails(db: OrderDatabase) -> None:
    tracking = _TrackingConnection(db.open())
    db._conn = tracking  # type: ignore[assignment]

    with db.atomic() as outer:
        outer.execute("INSERT INTO products (product_number, name, price) VALUES ('2001', 'Cupcake', 3.5);")
        # A second BEGIN inside an open transaction is rejected by SQLite.
        with pytest.raises(sqlite3.OperationalError):
            with db.atomic():
                pass
        with pytest.raises(sqlite3.ProgrammingError):
            tracking.cursors[-1].execute("SELECT 1;")

    assert db.count("products") == 1
