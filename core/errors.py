"""
core/errors.py -- Domain error taxonomy shared by auth/ and social/.

Every failure the core can report is a ConduitError subclass with a stable
machine-readable code. The HTTP adapter maps codes to status codes in one
place (api/main.py); the core never knows about HTTP.

Messages are safe to show to clients. StorageError in particular carries a
generic message only -- the underlying SQLAlchemy exception is chained via
`raise ... from exc` and logged, never rendered.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/ or social/.
"""

from __future__ import annotations


class ConduitError(Exception):
    """Base class for all domain failures."""

    code = "error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ValidationError(ConduitError):
    """A required field is missing or malformed."""

    code = "validation_error"


class DuplicateUser(ConduitError):
    """Email or username already belongs to another user."""

    code = "duplicate_user"

    def __init__(self, field: str | None = None) -> None:
        self.field = field
        what = field if field else "email or username"
        super().__init__(f"{what} has already been taken")


class AuthenticationFailed(ConduitError):
    """Bad credentials. The message never says which half was wrong."""

    code = "bad_credentials"

    def __init__(self) -> None:
        super().__init__("email or password is invalid")


class TokenInvalid(ConduitError):
    code = "token_invalid"

    def __init__(self, message: str = "token is invalid") -> None:
        super().__init__(message)


class TokenExpired(ConduitError):
    code = "token_expired"

    def __init__(self, message: str = "token has expired") -> None:
        super().__init__(message)


class NotFound(ConduitError):
    code = "not_found"


class AlreadyFollowing(ConduitError):
    code = "already_following"

    def __init__(self) -> None:
        super().__init__("you are already following this user")


class SelfFollow(ConduitError):
    code = "self_follow"

    def __init__(self) -> None:
        super().__init__("you cannot follow yourself")


class StorageError(ConduitError):
    """Wraps any persistence failure that is not a known constraint violation."""

    code = "storage_error"

    def __init__(self) -> None:
        super().__init__("a storage error occurred")


class HashingError(ConduitError):
    """Password cannot be hashed, or a stored digest is malformed."""

    code = "hashing_error"
