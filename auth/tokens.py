"""
auth/tokens.py -- Stateless, signed, time-bounded session tokens.

Security design decisions:
  JWT: python-jose with HS256. Tokens carry user_id, iat and exp and are
       signed with the secret passed to TokenService at construction. There
       is no server-side session table; verification needs only the key.

  Expiry: checked against the service clock rather than jose's internal
       time source, so tests can drive the Issued -> Valid -> Expired
       transition without sleeping. now == exp is still valid.

  Failures: any signature, structure or claim problem is TokenInvalid; a
       correctly signed token past exp is TokenExpired. Callers treat both as
       "anonymous" -- there is no partial trust.

  Secret: never read from a module global. The composition root passes
       Settings.secret_key into TokenService(secret_key=...).

Layer rule: no imports from api/ or social/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from core.errors import TokenExpired, TokenInvalid

logger = logging.getLogger("conduit.auth")

_ALGORITHM = "HS256"

DEFAULT_TTL = timedelta(hours=24)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Issue and verify session tokens.

    Usage:
        tokens = TokenService(secret_key=settings.secret_key)
        token = tokens.issue(user.id, timedelta(hours=24))
        user_id = tokens.verify(token)
    """

    def __init__(
        self,
        secret_key: str,
        default_ttl: timedelta = DEFAULT_TTL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret_key:
            raise ValueError("TokenService requires a non-empty secret_key")
        self._secret_key = secret_key
        self.default_ttl = default_ttl
        self._clock = clock

    def issue(self, user_id: int, ttl: timedelta | None = None) -> str:
        """Return a signed token for user_id that expires at now + ttl."""
        now = self._clock()
        expires_at = now + (ttl if ttl is not None else self.default_ttl)
        payload = {
            "user_id": user_id,
            "iat": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    def verify(self, token: str) -> int:
        """Return the user id embedded in token.

        Raises TokenInvalid for a bad signature, malformed token or missing
        claims, and TokenExpired once the clock is past exp.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False},
            )
        except JWTError as exc:
            logger.info("Rejected token: %s", exc)
            raise TokenInvalid() from exc

        user_id = payload.get("user_id")
        expires_at = payload.get("exp")
        # bool is an int subclass.
        if not isinstance(user_id, int) or isinstance(user_id, bool):
            raise TokenInvalid()
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            raise TokenInvalid()

        if self._clock().timestamp() > expires_at:
            raise TokenExpired()
        return user_id
