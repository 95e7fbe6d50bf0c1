from __future__ import annotations

from typing import Optional

from ..errors import AuthFailed, ValidationFailed
from ..logging import get_logger
from .db import OrderDatabase, Statement
from .entities import store_call
from .models import User
from .users import UserService, verify_password


LOG = get_logger("orderdb-session")


class SessionManager:
    """Tracks the single logged-in user through the `users.is_logged_in` flag.

    The flag is not a credential; it only records who used the app last.
    """

    def __init__(self, db: OrderDatabase, users: Optional[UserService] = None) -> None:
        self.db = db
        self.users = users or UserService(db)

    def login(self, username: str, password: str) -> User:
        username = (username or "").strip()
        if not username or not password:
            raise ValidationFailed("Both fields are required.")

        row = self.users.find_credentials(username)
        if row is None or not verify_password(password, row["password"]):
            LOG.info("Login rejected for username %r", username)
            raise AuthFailed()

        # Clearing and setting the flag happen in one unit so that at most one
        # row is ever marked as logged in.
        store_call(
            lambda: self.db.transaction(
                [
                    Statement("UPDATE users SET is_logged_in = 0 WHERE is_logged_in <> 0;"),
                    Statement("UPDATE users SET is_logged_in = 1 WHERE user_id = ?;", (row["user_id"],)),
                ]
            ),
            "login",
        )
        LOG.info("User %s logged in", username)
        return self.users.get_user(row["user_id"])  # type: ignore[return-value]

    def current_user(self) -> Optional[User]:
        row = store_call(
            lambda: self.db.query_one(
                "SELECT user_id, full_name, email, username, is_logged_in FROM users WHERE is_logged_in = 1 LIMIT 1;"
            ),
            "fetch current user",
        )
        return User.from_row(row) if row else None

    def logout(self) -> None:
        """Clear every login flag, then close the store for a clean next session."""
        try:
            store_call(
                lambda: self.db.update("UPDATE users SET is_logged_in = 0;"),
                "logout",
            )
        finally:
            self.db.close()
        LOG.info("Logged out; store closed.")
