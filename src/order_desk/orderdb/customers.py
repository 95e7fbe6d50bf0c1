from __future__ import annotations

import random
from typing import Any, Dict, Optional

from ..logging import get_logger
from .db import OrderDatabase
from .entities import EntityService
from .identity import KeyGenerator
from .validation import require_fields, validate_phone


LOG = get_logger("orderdb-customers")


class CustomerService(EntityService):
    """Customer address book. Deletion never touches existing orders."""

    table = "customers"
    key_column = "customer_id"
    columns = ("customer_id", "name", "phone")
    sortable = ("customer_id", "name")
    default_order = ("customer_id", "desc")
    duplicate_message = "Customer ID already exists."

    def __init__(self, db: OrderDatabase, *, rng: Optional[random.Random] = None) -> None:
        super().__init__(db)
        self._keys = KeyGenerator(db, self.table, self.key_column, rng=rng)

    def _validate(self, fields: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        cleaned = require_fields(fields, self.columns)
        return {
            "customer_id": cleaned["customer_id"],
            "name": cleaned["name"],
            "phone": validate_phone(cleaned["phone"]),
        }

    def generate_key(self) -> str:
        """Return a random unused 4-digit customer id."""
        key = self._run(self._keys, "generate customer id")
        LOG.info("Generated customer id %s", key)
        return key
