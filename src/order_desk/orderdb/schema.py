from __future__ import annotations

import sqlite3
from typing import List, Tuple

from ..logging import get_logger


LOG = get_logger("orderdb-schema")


TABLES: Tuple[str, ...] = (
    "users",
    "products",
    "customers",
    "orders",
    "order_line_items",
)


CONNECTION_PRAGMAS: Tuple[str, ...] = (
    "PRAGMA foreign_keys = ON;",
    "PRAGMA journal_mode = WAL;",
    "PRAGMA synchronous = NORMAL;",
)


# orders.customer_id and order_line_items.product_number are soft references:
# they are checked by the order composer at commit time but carry no REFERENCES
# clause, so deleting a product or customer leaves order history intact.
SCHEMA_SQL = """
-- 1) Accounts
CREATE TABLE IF NOT EXISTS users (
  user_id       INTEGER PRIMARY KEY AUTOINCREMENT,
  full_name     TEXT,
  email         TEXT,
  username      TEXT NOT NULL UNIQUE,
  password      TEXT NOT NULL,          -- pbkdf2_sha256$iterations$salt$digest
  is_logged_in  INTEGER NOT NULL DEFAULT 0 CHECK(is_logged_in IN (0, 1))
);

-- 2) Catalog and address book
CREATE TABLE IF NOT EXISTS products (
  product_number  TEXT PRIMARY KEY,
  name            TEXT NOT NULL,
  price           REAL NOT NULL CHECK(price >= 0)
);

CREATE TABLE IF NOT EXISTS customers (
  customer_id  TEXT PRIMARY KEY,
  name         TEXT NOT NULL,
  phone        TEXT NOT NULL
);

-- 3) Order header
CREATE TABLE IF NOT EXISTS orders (
  order_number  INTEGER PRIMARY KEY AUTOINCREMENT,
  date          TEXT NOT NULL,            -- "YYYY-MM-DD"
  customer_id   TEXT NOT NULL,
  total_price   REAL NOT NULL CHECK(total_price >= 0)
);

-- 4) Line items (subtotal is a price snapshot taken at commit)
CREATE TABLE IF NOT EXISTS order_line_items (
  line_id         INTEGER PRIMARY KEY AUTOINCREMENT,
  order_number    INTEGER NOT NULL REFERENCES orders(order_number),
  product_number  TEXT NOT NULL,
  qty             INTEGER NOT NULL CHECK(qty > 0),
  subtotal        REAL NOT NULL CHECK(subtotal >= 0)
);

CREATE INDEX IF NOT EXISTS idx_line_items_order ON order_line_items(order_number);
CREATE INDEX IF NOT EXISTS idx_orders_customer  ON orders(customer_id);
"""


def apply_connection_pragmas(conn: sqlite3.Connection) -> None:
    """Enable FK enforcement and WAL journaling on a fresh connection."""
    for pragma in CONNECTION_PRAGMAS:
        conn.execute(pragma)
    # In-memory databases silently keep journal_mode=memory.
    mode = conn.execute("PRAGMA journal_mode;").fetchone()[0]
    LOG.debug("journal_mode=%s", mode)


def ensure_schema(conn: sqlite3.Connection) -> None:
    """Create every table and index that is missing. Safe to call repeatedly."""
    LOG.info("Ensuring order DB schema is present…")
    conn.executescript(SCHEMA_SQL)
    LOG.info("Order DB schema ensured.")


def existing_tables(conn: sqlite3.Connection) -> List[str]:
    rows = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name NOT LIKE 'sqlite_%' ORDER BY name;"
    ).fetchall()
    return [row[0] for row in rows]
