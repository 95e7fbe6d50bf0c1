from __future__ import annotations

import sqlite3
from typing import Any, Callable, Dict, List, Optional, Tuple, TypeVar

from ..errors import DuplicateKey, RecordNotFound, StorageError
from ..logging import get_logger
from .db import OrderDatabase


LOG = get_logger("orderdb-entities")

T = TypeVar("T")


def store_call(fn: Callable[[], T], action: str, *, duplicate_message: Optional[str] = None) -> T:
    """Run a store call, translating sqlite errors into service errors."""
    try:
        return fn()
    except sqlite3.IntegrityError as exc:
        if "UNIQUE" in str(exc) or "PRIMARY KEY" in str(exc):
            LOG.warning("Duplicate key on %s: %s", action, exc)
            raise DuplicateKey(duplicate_message) from exc
        LOG.exception("Integrity error on %s", action)
        raise StorageError() from exc
    except sqlite3.Error as exc:
        LOG.exception("Error on %s", action)
        raise StorageError() from exc


class EntityService:
    """CRUD over one table keyed by a single identity column.

    Subclasses set the table layout and implement `_validate`, which turns raw
    form fields into the column values to write.
    """

    table: str = ""
    key_column: str = ""
    columns: Tuple[str, ...] = ()
    sortable: Tuple[str, ...] = ()
    default_order: Tuple[str, str] = ("", "asc")
    duplicate_message = "A record with this key already exists."

    def __init__(self, db: OrderDatabase) -> None:
        self.db = db

    # --------------- Hooks ---------------
    def _validate(self, fields: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        raise NotImplementedError

    def _present(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return row

    # --------------- Reads ---------------
    def _select_list(self) -> str:
        return ", ".join(self.columns)

    def list(self, order_by: Optional[str] = None, direction: str = "asc") -> List[Dict[str, Any]]:
        default_col, default_dir = self.default_order
        if order_by in self.sortable:
            sort_col, sort_dir = order_by, direction
        else:
            sort_col, sort_dir = default_col, default_dir
        sort_dir = "DESC" if str(sort_dir).lower() == "desc" else "ASC"
        rows = self._run(
            lambda: self.db.query(
                f"SELECT {self._select_list()} FROM {self.table} ORDER BY {sort_col} {sort_dir}, {self.key_column} ASC;"
            ),
            f"list {self.table}",
        )
        LOG.debug("Loaded %d %s", len(rows), self.table)
        return [self._present(row) for row in rows]

    def _fetch(self, key: Any) -> Optional[Dict[str, Any]]:
        return self._run(
            lambda: self.db.query_one(
                f"SELECT {self._select_list()} FROM {self.table} WHERE {self.key_column} = ?;",
                (key,),
            ),
            f"fetch {self.table}",
        )

    def get(self, key: Any) -> Optional[Dict[str, Any]]:
        row = self._fetch(key)
        return self._present(row) if row is not None else None

    def exists(self, key: Any) -> bool:
        return self._fetch(key) is not None

    def count(self) -> int:
        return self._run(lambda: self.db.count(self.table), f"count {self.table}")

    # --------------- Writes ---------------
    def _ensure_unique(self, key: Any, current_key: Any = None) -> None:
        existing = self._fetch(key)
        if existing is not None and existing[self.key_column] != current_key:
            raise DuplicateKey(self.duplicate_message)

    def create(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        values = self._validate(fields)
        if self.key_column in values:
            self._ensure_unique(values[self.key_column])
        names = list(values)
        placeholders = ", ".join("?" for _ in names)
        result = self._run(
            lambda: self.db.update(
                f"INSERT INTO {self.table} ({', '.join(names)}) VALUES ({placeholders});",
                [values[n] for n in names],
            ),
            f"insert into {self.table}",
        )
        key = values.get(self.key_column, result.inserted_id)
        LOG.info("Created %s %s", self.table, key)
        return self.get(key)  # type: ignore[return-value]

    def update(self, key: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        current = self._fetch(key)
        if current is None:
            raise RecordNotFound(f"No record {key} in {self.table}.")
        values = self._validate(fields, current)
        new_key = values.get(self.key_column, key)
        if new_key != key:
            self._ensure_unique(new_key, current_key=key)
        assignments = ", ".join(f"{n} = ?" for n in values)
        self._run(
            lambda: self.db.update(
                f"UPDATE {self.table} SET {assignments} WHERE {self.key_column} = ?;",
                [*values.values(), key],
            ),
            f"update {self.table}",
        )
        LOG.info("Updated %s %s", self.table, new_key)
        return self.get(new_key)  # type: ignore[return-value]

    def delete(self, key: Any) -> bool:
        result = self._run(
            lambda: self.db.update(f"DELETE FROM {self.table} WHERE {self.key_column} = ?;", (key,)),
            f"delete from {self.table}",
        )
        deleted = result.rows_affected > 0
        if deleted:
            LOG.info("Deleted %s %s", self.table, key)
        return deleted

    def _run(self, fn: Callable[[], T], action: str) -> T:
        return store_call(fn, action, duplicate_message=self.duplicate_message)
