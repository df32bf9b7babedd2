"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

The token travels in the Authorization header, as either
"Token <jwt>" (RealWorld clients) or "Bearer <jwt>". Both schemes converge
on AuthFlow.current_user(), which is the only place a token becomes a user.

try_get_current_user() is the soft variant (returns None on any token
failure) for routes where the caller is optional, e.g. profile views.
get_current_user() requires a token; a missing header is a 401 here and a
bad or expired token is a TokenInvalid/TokenExpired that the API exception
handler renders as 401.

The resolved user is handed to route handlers as a parameter. Routes then
pass user.id into the core explicitly -- the core never looks it up itself.

Layer rule: no imports from api/ or social/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User
from auth.service import AuthFlow
from core.errors import TokenExpired, TokenInvalid

_SCHEMES = ("token", "bearer")


def _token_from_header(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() in _SCHEMES and credentials.strip():
        return credentials.strip()
    return None


def try_get_current_user(request: Request) -> User | None:
    """Return the authenticated User, or None for an anonymous request.

    Never raises for token problems -- a bad token on an optional route is
    the same as no token.
    """
    token = _token_from_header(request)
    if token is None:
        return None
    auth_flow: AuthFlow = request.app.state.auth_flow
    try:
        return auth_flow.current_user(token)
    except (TokenInvalid, TokenExpired):
        return None


def get_current_user(request: Request) -> User:
    """Require authentication.

    Use as a FastAPI dependency:
        @router.get("/user")
        def route(user: User = Depends(get_current_user)): ...
    """
    token = _token_from_header(request)
    if token is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    auth_flow: AuthFlow = request.app.state.auth_flow
    return auth_flow.current_user(token)
