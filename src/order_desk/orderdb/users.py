from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Any, Dict, Optional

from ..config import DEFAULT_PASSWORD_ITERATIONS
from ..errors import DuplicateKey
from ..logging import get_logger
from .db import OrderDatabase
from .entities import EntityService
from .models import User
from .validation import require_fields, validate_email, validate_password


LOG = get_logger("orderdb-users")

HASH_SCHEME = "pbkdf2_sha256"
SALT_BYTES = 16


def hash_password(password: str, *, iterations: int = DEFAULT_PASSWORD_ITERATIONS, salt: Optional[bytes] = None) -> str:
    """Return `pbkdf2_sha256$<iterations>$<salt hex>$<digest hex>`."""
    salt = salt or secrets.token_bytes(SALT_BYTES)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, iterations)
    return f"{HASH_SCHEME}${iterations}${salt.hex()}${digest.hex()}"


def verify_password(password: str, stored: Optional[str]) -> bool:
    """Constant-time check of `password` against a stored hash string."""
    try:
        scheme, iterations, salt_hex, digest_hex = (stored or "").split("$")
        if scheme != HASH_SCHEME:
            return False
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(digest_hex)
        rounds = int(iterations)
    except ValueError:
        return False
    actual = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(actual, expected)


class UserService(EntityService):
    """Registered users. Rows returned here never include the password hash."""

    table = "users"
    key_column = "user_id"
    columns = ("user_id", "full_name", "email", "username", "is_logged_in")
    sortable = ("user_id", "full_name", "username")
    default_order = ("user_id", "asc")
    duplicate_message = "Username already taken. Please choose another."

    def __init__(self, db: OrderDatabase, *, iterations: int = DEFAULT_PASSWORD_ITERATIONS) -> None:
        super().__init__(db)
        self.iterations = iterations

    def _present(self, row: Dict[str, Any]) -> Dict[str, Any]:
        row = dict(row)
        row["is_logged_in"] = bool(row.get("is_logged_in"))
        return row

    def _validate(self, fields: Dict[str, Any], current: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        cleaned = require_fields(fields, ("full_name", "email", "username", "password"))
        email = validate_email(cleaned["email"])
        password = validate_password(fields.get("password"))
        username = cleaned["username"]
        self._ensure_username_free(username, current["user_id"] if current else None)
        return {
            "full_name": cleaned["full_name"],
            "email": email,
            "username": username,
            "password": hash_password(password, iterations=self.iterations),
        }

    def _ensure_username_free(self, username: str, user_id: Optional[int]) -> None:
        row = self._run(
            lambda: self.db.query_one(
                "SELECT user_id FROM users WHERE username = ? AND user_id IS NOT ?;",
                (username, user_id),
            ),
            "check username",
        )
        if row is not None:
            raise DuplicateKey(self.duplicate_message)

    def register(self, fields: Dict[str, Any]) -> Dict[str, Any]:
        return self.create(fields)

    def get_user(self, user_id: int) -> Optional[User]:
        row = self.get(user_id)
        return User.from_row(row) if row else None

    def find_credentials(self, username: str) -> Optional[Dict[str, Any]]:
        """Return the full row for `username`, password hash included."""
        return self._run(
            lambda: self.db.query_one(
                "SELECT user_id, full_name, email, username, password, is_logged_in FROM users WHERE username = ?;",
                (username,),
            ),
            "fetch credentials",
        )
