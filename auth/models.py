"""
auth/models.py -- Domain dataclasses for account entities.

Pattern: Data class (pure data container, zero logic). Stores and services
do the work; these only own domain shape.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email is stored normalized (stripped, lower-cased); username is stored
    stripped and compared case-sensitively.

    There is deliberately no plaintext password field. password_hash is the
    bcrypt digest and never leaves the core -- the API response model does not
    declare it.

    token is transient: the service layer sets it after register/login/
    current-user lookups. The store never reads or writes it.
    """

    email: str
    username: str
    password_hash: str
    id: int | None = None
    bio: str | None = None
    image: str | None = None
    created_at: str | None = None
    updated_at: str | None = None
    token: str | None = None


@dataclass
class UserDraft:
    """Caller input for registration and profile updates.

    Every field is optional at the type level. AuthFlow.register requires
    email, username and password; AuthFlow.update_profile only touches the
    fields that are not None.
    """

    email: str | None = None
    username: str | None = None
    password: str | None = None
    bio: str | None = None
    image: str | None = None
