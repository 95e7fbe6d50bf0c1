from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Sequence

from ..errors import StorageUnavailable
from ..logging import get_logger
from .retry import retry_call
from .schema import apply_connection_pragmas, ensure_schema


LOG = get_logger("orderdb-db")

MEMORY_PATH = ":memory:"


@dataclass(frozen=True)
class Statement:
    sql: str
    params: Sequence[Any] = ()


@dataclass(frozen=True)
class UpdateResult:
    rows_affected: int
    inserted_id: Optional[int] = None


class OrderDatabase:
    """SQLite-backed order store.

    - One shared connection per instance, opened on first use.
    - Ensures schema when the connection is opened.
    - `close()` drops the connection; the next call re-opens and re-initializes.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None
        self.initialized = False

    def __enter__(self) -> "OrderDatabase":
        return self

    def __exit__(self, *_exc: Any) -> None:
        self.close()

    # --------------- Lifecycle ---------------
    def open(self) -> sqlite3.Connection:
        """Open the connection and ensure the schema; idempotent."""
        if self._conn is not None and self.initialized:
            return self._conn
        self._drop_connection()
        try:
            if self.db_path != MEMORY_PATH:
                folder = os.path.dirname(os.path.abspath(self.db_path))
                os.makedirs(folder, exist_ok=True)
            conn = sqlite3.connect(self.db_path, isolation_level=None, check_same_thread=False)
        except (sqlite3.Error, OSError) as exc:
            LOG.exception("Error opening database at %s", self.db_path)
            raise StorageUnavailable() from exc
        conn.row_factory = sqlite3.Row
        try:
            apply_connection_pragmas(conn)
            ensure_schema(conn)
        except sqlite3.Error as exc:
            LOG.exception("Error initializing tables in %s", self.db_path)
            conn.close()
            raise StorageUnavailable() from exc
        self._conn = conn
        self.initialized = True
        LOG.info(f"Order DB ready at: {self.db_path}")
        return conn

    def close(self) -> None:
        if self._conn is not None:
            LOG.info("Closing order DB connection.")
        self._drop_connection()

    def _drop_connection(self) -> None:
        conn, self._conn = self._conn, None
        self.initialized = False
        if conn is None:
            return
        try:
            conn.close()
        except sqlite3.Error:
            LOG.exception("Error closing database")

    def _connection(self) -> sqlite3.Connection:
        if not self.initialized or self._conn is None:
            return self.open()
        return self._conn

    def is_ready(self) -> bool:
        """Return True if the store answers a trivial query, initializing it if needed."""
        try:
            self._connection().execute("SELECT 1;").fetchone()
        except (StorageUnavailable, sqlite3.Error) as exc:
            LOG.error("Error checking database readiness: %s", exc)
            return False
        return True

    def wait_until_ready(self, attempts: int = 3, delay: float = 1.0) -> None:
        """Open the store, retrying transient failures with a fixed delay."""
        retry_call(self.open, attempts=attempts, delay=delay, label="Database initialization")

    # --------------- Statements ---------------
    @staticmethod
    def _rows_to_dicts(rows: Sequence[sqlite3.Row]) -> List[Dict[str, Any]]:
        return [dict(row) for row in rows]

    def query(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        cur = self._connection().execute(sql, tuple(params))
        return self._rows_to_dicts(cur.fetchall())

    def query_one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        row = self._connection().execute(sql, tuple(params)).fetchone()
        return dict(row) if row is not None else None

    def update(self, sql: str, params: Sequence[Any] = ()) -> UpdateResult:
        cur = self._connection().execute(sql, tuple(params))
        inserted_id = cur.lastrowid if sql.lstrip().upper().startswith("INSERT") else None
        return UpdateResult(rows_affected=cur.rowcount, inserted_id=inserted_id)

    @contextmanager
    def atomic(self) -> Iterator[sqlite3.Cursor]:
        """Run the enclosed statements as one unit; roll back and re-raise on error."""
        conn = self._connection()
        cur = conn.cursor()
        try:
            cur.execute("BEGIN IMMEDIATE;")
            try:
                yield cur
            except BaseException:
                LOG.warning("Rolling back transaction")
                try:
                    conn.rollback()
                except sqlite3.Error:
                    LOG.exception("Rollback failed")
                raise
            else:
                conn.commit()
        finally:
            cur.close()

    def transaction(self, statements: Sequence[Statement]) -> int:
        """Execute every statement in order, all or nothing. Returns rows affected."""
        total = 0
        with self.atomic() as cur:
            for stmt in statements:
                cur.execute(stmt.sql, tuple(stmt.params))
                total += max(cur.rowcount, 0)
        return total

    def count(self, table: str) -> int:
        row = self.query_one(f"SELECT COUNT(*) AS count FROM {table};")
        return int(row["count"]) if row else 0
