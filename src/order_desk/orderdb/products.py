from __future__ import annotations

import random
from typing import Any, Dict, Optional

from ..logging import get_logger
from .db import OrderDatabase
from .entities import EntityService
from .identity import KeyGenerator
from .validation import parse_price, require_fields


LOG = get_logger("orderdb-products")


class ProductService(EntityService):
    """Product catalog.

    Deleting a product leaves historical order line items untouched; their
    subtotals are price snapshots and the product number becomes a soft
    reference.
    """

    table = "products"
    key_column = "product_number"
    columns = ("product_number", "name", "price")
    sortable = ("product_number", "name", "price")
    default_order = ("product_number", "desc")
    duplicate_message = "Product number already exists."

    def __init__(self, db: OrderDatabase, *, rng: Optional[random.Random] = None) -> None:
        super().__init__(db)
        self._keys = KeyGenerator(db, self.table, self.key_column, rng=rng)

    def _validate(self, fields: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        cleaned = require_fields(fields, self.columns)
        return {
            "product_number": cleaned["product_number"],
            "name": cleaned["name"],
            "price": float(parse_price(cleaned["price"])),
        }

    def generate_key(self) -> str:
        """Return a random unused 4-digit product number."""
        key = self._run(self._keys, "generate product number")
        LOG.info("Generated product number %s", key)
        return key
