"""
Repository: SQL operations for `users`.

DB interaction only. Rows come back as dicts (see `db.Database`) and are
turned into `UserRecord`. Uniqueness of `username` is enforced by the
table's UNIQUE constraint, not here.
"""

from typing import Any, Dict

from db import Database, build_assignments
from models import UserRecord


USER_COLUMNS = "id, username, password_hash, display_name, subtitle, description, profile_image"

# ProfilePatch field -> column; anything else is never written
PROFILE_COLUMNS = {
    "display_name": "display_name",
    "subtitle": "subtitle",
    "description": "description",
    "profile_image": "profile_image",
}


class UserRepo:
    """DB access only. No business logic here."""

    def __init__(self, db: Database):
        self.db = db

    def get_by_id(self, user_id: str) -> UserRecord | None:
        return self._fetch_one(f"SELECT {USER_COLUMNS} FROM users WHERE id=%s", (user_id,))

    def get_by_username(self, username: str) -> UserRecord | None:
        return self._fetch_one(
            f"SELECT {USER_COLUMNS} FROM users WHERE username=%s", (username,)
        )

    def insert(self, user: UserRecord) -> None:
        """Insert a new identity.

        Raises `psycopg.errors.UniqueViolation` when the username is taken;
        the service translates that into `DuplicateUsername`.
        """

        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"INSERT INTO users ({USER_COLUMNS}) VALUES (%s, %s, %s, %s, %s, %s, %s)",
                    (
                        user.id,
                        user.username,
                        user.password_hash,
                        user.display_name,
                        user.subtitle,
                        user.description,
                        user.profile_image,
                    ),
                )
            conn.commit()

    def set_password(self, user_id: str, password_hash: str) -> bool:
        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE users SET password_hash=%s WHERE id=%s",
                    (password_hash, user_id),
                )
                updated = cur.rowcount
            conn.commit()
        return updated == 1

    def update_profile(self, user_id: str, changes: Dict[str, Any]) -> UserRecord | None:
        """Apply `changes` in one UPDATE and return the row as stored."""

        if not changes:
            return self.get_by_id(user_id)

        assignments, params = build_assignments(changes, PROFILE_COLUMNS)
        params.append(user_id)
        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"UPDATE users SET {assignments} WHERE id=%s RETURNING {USER_COLUMNS}",
                    params,
                )
                row = cur.fetchone()
            conn.commit()
        return UserRecord(**row) if row else None

    def _fetch_one(self, query: str, params: tuple) -> UserRecord | None:
        with self.db.connect() as conn:
            with conn.cursor() as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        return UserRecord(**row) if row else None

