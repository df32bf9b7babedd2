"""
api/routes/users.py -- Registration, login and current-user endpoints.

Routes:
  POST /api/users         -- register; returns the new user with a token
  POST /api/users/login   -- password login; returns the user with a token
  GET  /api/user          -- current user (requires auth)
  PUT  /api/user          -- update the current user's own record (requires auth)

Handlers are plain `def`, not `async def`: register, login and update run
bcrypt, and FastAPI executes sync handlers on its threadpool so the event
loop stays free. PasswordHasher bounds how many of them hash at once.

Domain errors (ValidationError, DuplicateUser, AuthenticationFailed, ...)
propagate to the ConduitError handler in api/main.py.

Security:
  [C1] login goes through AuthFlow.login(), which equalizes timing between
       unknown email and wrong password. Do not inline the lookup here.
  [M5] Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response

from api.models import LoginRequest, RegisterRequest, UpdateUserRequest, UserResponse
from auth.dependencies import get_current_user
from auth.models import User
from auth.service import AuthFlow

# Auth policy:
# - POST /api/users:        public
# - POST /api/users/login:  public
# - GET  /api/user:         requires auth (get_current_user)
# - PUT  /api/user:         requires auth; only ever updates current_user.id
router = APIRouter()


def _auth_flow(request: Request) -> AuthFlow:
    return request.app.state.auth_flow


@router.post("/users", response_model=UserResponse)
def register(request: Request, response: Response, body: RegisterRequest) -> UserResponse:
    """Create an account and return it with a session token."""
    user = _auth_flow(request).register(body.user.to_draft())
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return UserResponse.from_user(user)


@router.post("/users/login", response_model=UserResponse)
def login(request: Request, response: Response, body: LoginRequest) -> UserResponse:
    """Authenticate with email and password.

    Wrong email and wrong password produce the same 401 "bad_credentials".
    """
    user = _auth_flow(request).login(body.user.email, body.user.password)
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return UserResponse.from_user(user)


@router.get("/user", response_model=UserResponse)
def me(current_user: User = Depends(get_current_user)) -> UserResponse:
    """Return the user the presented token was issued for."""
    return UserResponse.from_user(current_user)


@router.put("/user", response_model=UserResponse)
def update_user(
    request: Request,
    response: Response,
    body: UpdateUserRequest,
    current_user: User = Depends(get_current_user),
) -> UserResponse:
    """Overwrite the supplied fields of the caller's own record."""
    user = _auth_flow(request).update_profile(current_user.id, body.user.to_draft())
    response.headers["Cache-Control"] = "no-store"  # [M5]
    return UserResponse.from_user(user)
