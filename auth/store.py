"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Service and route code never touches SQL directly.

Uniqueness:
  users.email and users.username carry unique indexes (core/db.py). create()
  and update() do not pre-check for duplicates -- two concurrent writes with
  the same email are settled by the index, and the loser's IntegrityError is
  translated into DuplicateUser naming the colliding field.

Case policy:
  Emails are stripped, NFC-normalized and lower-cased on the way in, for
  both writes and lookups. normalize_email() is the only place this happens. Usernames are stripped only and compared case-sensitively.

Authorization:
  None. update(user_id, ...) trusts user_id. AuthFlow is responsible for only
  ever passing the authenticated caller's own id.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

import unicodedata
from datetime import datetime, timezone

from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from auth.models import User
from core.db import is_unique_violation, storage_errors, users, violated_column
from core.errors import DuplicateUser, NotFound

_UNIQUE_FIELDS = ("email", "username")

# Columns update() may overwrite. Anything else is a programming error.
_UPDATABLE_FIELDS = frozenset({"email", "username", "password_hash", "bio", "image"})


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_email(email: str) -> str:
    return unicodedata.normalize("NFC", email.strip()).lower()


def normalize_username(username: str) -> str:
    return username.strip()


class UserStore:
    """Repository for User entities.

    Usage:
        engine = make_engine("sqlite:///conduit.db")
        store = UserStore(engine)
        user = store.create(User(email="a@x.com", username="alice", password_hash=digest))
        store.get_by_username("alice")
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, user: User) -> User:
        """Insert user and return the stored record with its assigned id.

        Raises DuplicateUser if the email or username is already taken.
        """
        now = _now_iso()
        with storage_errors("create user"):
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(
                        users.insert().values(
                            email=normalize_email(user.email),
                            username=normalize_username(user.username),
                            password_hash=user.password_hash,
                            bio=user.bio,
                            image=user.image,
                            created_at=now,
                            updated_at=now,
                        )
                    )
                    conn.commit()
                    user_id = result.inserted_primary_key[0]
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise DuplicateUser(violated_column(exc, _UNIQUE_FIELDS)) from exc
                raise
        return self.get_by_id(user_id)

    def update(self, user_id: int, **fields) -> User:
        """Overwrite the named fields of user_id and return the fresh record.

        Accepted fields: email, username, password_hash, bio, image. Raises
        NotFound if user_id does not exist, DuplicateUser if the new email or
        username belongs to another user.
        """
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown user fields: {sorted(unknown)!r}")
        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
        if "username" in fields:
            fields["username"] = normalize_username(fields["username"])

        with storage_errors("update user"):
            try:
                with self.engine.connect() as conn:
                    result = conn.execute(
                        users.update().where(users.c.id == user_id).values(updated_at=_now_iso(), **fields)
                    )
                    conn.commit()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise DuplicateUser(violated_column(exc, _UNIQUE_FIELDS)) from exc
                raise
        if result.rowcount == 0:
            raise NotFound(f"user {user_id} not found")
        return self.get_by_id(user_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get_by_id(self, user_id: int) -> User:
        return self._get_one(users.c.id == user_id, f"user {user_id} not found")

    def get_by_email(self, email: str) -> User:
        return self._get_one(users.c.email == normalize_email(email), "user not found")

    def get_by_username(self, username: str) -> User:
        """Look up a user by exact username (case-sensitive)."""
        return self._get_one(users.c.username == normalize_username(username), "profile not found")

    def _get_one(self, clause, missing: str) -> User:
        with storage_errors("load user"):
            with self.engine.connect() as conn:
                row = conn.execute(users.select().where(clause)).fetchone()
        if row is None:
            raise NotFound(missing)
        return _row_to_user(row)


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        username=row.username,
        password_hash=row.password_hash,
        bio=row.bio,
        image=row.image,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
