"""
Credential store: identities and password verification.

Passwords are hashed with bcrypt at a fixed work factor and never leave
this module in plaintext. The username check before insert gives a clear
error in the common case; the UNIQUE constraint on `users.username`
settles concurrent registrations.
"""

import logging

import bcrypt
from psycopg import errors as pg_errors

from errors import DuplicateUsername, InvalidCredentials, NotFound, ValidationError
from models import ProfilePatch, UserOut, UserRecord, new_id
from repo_users import UserRepo

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


class CredentialStore:
    """Business rules for identities.

    Example usage:
        store = CredentialStore(UserRepo(db), rounds=10)
        user_id = store.register("alice", "pw1", "Alice")
        store.verify_credential("alice", "pw1")
    """

    def __init__(self, repo: UserRepo, rounds: int = 10):
        self.repo = repo
        self.rounds = rounds

    def register(self, username: str, password: str, display_name: str) -> str:
        """Create an identity and return its id.

        Raises `DuplicateUsername` if the username is taken.
        """

        if self.repo.get_by_username(username) is not None:
            raise DuplicateUsername()

        user = UserRecord(
            id=new_id(),
            username=username,
            password_hash=self._hash(password),
            display_name=display_name,
        )
        try:
            self.repo.insert(user)
        except pg_errors.UniqueViolation as e:
            raise DuplicateUsername() from e

        logger.info("registered user %s", user.id)
        return user.id

    def verify_credential(self, username: str, password: str) -> UserRecord:
        user = self.repo.get_by_username(username)
        if user is None or not self._check(password, user.password_hash):
            raise InvalidCredentials()
        return user

    def update_password(self, identity_id: str, current_password: str, new_password: str) -> None:
        user = self._require(identity_id)
        if not self._check(current_password, user.password_hash):
            raise InvalidCredentials("Current password is incorrect")
        if not self.repo.set_password(identity_id, self._hash(new_password)):
            raise NotFound("User not found")

    def update_profile(self, identity_id: str, patch: ProfilePatch) -> UserOut:
        """Apply only the fields present in `patch`."""

        user = self.repo.update_profile(identity_id, patch.changes())
        if user is None:
            raise NotFound("User not found")
        return user.public()

    def get_public_profile(self, identity_id: str) -> UserOut:
        return self._require(identity_id).public()

    def _require(self, identity_id: str) -> UserRecord:
        user = self.repo.get_by_id(identity_id)
        if user is None:
            raise NotFound("User not found")
        return user

    def _hash(self, password: str) -> str:
        raw = password.encode("utf-8")
        if len(raw) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=self.rounds)).decode("ascii")

    @staticmethod
    def _check(password: str, password_hash: str) -> bool:
        raw = password.encode("utf-8")
        if len(raw) > MAX_PASSWORD_BYTES:
            return False
        return bcrypt.checkpw(raw, password_hash.encode("ascii"))
