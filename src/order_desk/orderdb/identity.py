from __future__ import annotations

import random
from typing import Collection, Optional

from ..errors import IdGenerationExhausted
from ..logging import get_logger
from .db import OrderDatabase


LOG = get_logger("orderdb-identity")

KEY_MIN = 1000
KEY_MAX = 9999
MAX_ATTEMPTS = 20


def generate_key(
    existing: Collection[str],
    *,
    attempts: int = MAX_ATTEMPTS,
    rng: Optional[random.Random] = None,
) -> str:
    """Draw a random 4-digit key not present in `existing`.

    At most `attempts` draws are made before giving up.
    """
    rand = rng or random
    for _ in range(attempts):
        candidate = str(rand.randint(KEY_MIN, KEY_MAX))
        if candidate not in existing:
            return candidate
    LOG.warning("No free key after %d draws (%d keys in use)", attempts, len(existing))
    raise IdGenerationExhausted()


class KeyGenerator:
    """Generates unused keys for one text key column."""

    def __init__(self, db: OrderDatabase, table: str, column: str, *, rng: Optional[random.Random] = None) -> None:
        self.db = db
        self.table = table
        self.column = column
        self.rng = rng

    def existing_keys(self) -> set:
        rows = self.db.query(f"SELECT {self.column} AS key FROM {self.table};")
        return {str(row["key"]) for row in rows}

    def __call__(self) -> str:
        key = generate_key(self.existing_keys(), rng=self.rng)
        LOG.debug("Generated %s.%s=%s", self.table, self.column, key)
        return key
