"""
auth/passwords.py -- bcrypt password hashing with a bounded admission limit.

Using bcrypt directly rather than passlib[bcrypt] because passlib's internal
wrap-bug detection creates a password longer than 72 bytes, which bcrypt 4.x
rejects with an explicit error.

Cost: a fixed 10 rounds. Callers cannot tune it; changing it is a code change
and existing digests keep verifying because the cost is embedded in them.

Concurrency: bcrypt is CPU-bound. Every hash/verify first takes a slot from a
BoundedSemaphore so a burst of logins cannot occupy every worker thread.

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

import threading

import bcrypt

from core.errors import HashingError

BCRYPT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes of input.
MAX_PASSWORD_BYTES = 72


class PasswordHasher:
    """Hash and verify passwords.

    Usage:
        hasher = PasswordHasher(max_concurrent=4)
        digest = hasher.hash("secret")
        hasher.verify(digest, "secret")  # True
    """

    def __init__(self, max_concurrent: int = 4) -> None:
        self._slots = threading.BoundedSemaphore(max_concurrent)
        self._dummy_hash: str | None = None

    def hash(self, password: str) -> str:
        """Return a salted bcrypt digest of password.

        Raises HashingError for an empty password or one longer than 72 bytes
        once UTF-8 encoded (bcrypt would silently truncate it otherwise).
        """
        raw = password.encode("utf-8")
        if not raw:
            raise HashingError("password must not be empty")
        if len(raw) > MAX_PASSWORD_BYTES:
            raise HashingError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
        with self._slots:
            return bcrypt.hashpw(raw, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")

    def verify(self, digest: str, password: str) -> bool:
        """Return True if password matches digest.

        A well-formed digest that does not match returns False. A password too
        long to have been hashed can never match, so it also returns False.
        Only a malformed digest raises HashingError.
        """
        raw = password.encode("utf-8")
        if len(raw) > MAX_PASSWORD_BYTES:
            # Keep the cost of this branch in line with a real comparison.
            raw = raw[:MAX_PASSWORD_BYTES]
            self._checkpw(raw, self.dummy_hash)
            return False
        return self._checkpw(raw, digest)

    @property
    def dummy_hash(self) -> str:
        """A digest of a throwaway value for timing equalization.

        Computed on first use and cached, so only the very first caller pays
        for it.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("conduit_timing_dummy")
        return self._dummy_hash

    def _checkpw(self, raw: bytes, digest: str) -> bool:
        with self._slots:
            try:
                return bcrypt.checkpw(raw, digest.encode("utf-8"))
            except ValueError as exc:
                raise HashingError("stored password digest is malformed") from exc
