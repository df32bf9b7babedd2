"""
API request and response models for the Conduit REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py and
social/models.py, which own the internal domain representation. Route
handlers map between the two.

Request fields are optional at this layer on purpose: "required" and
"well-formed" are decided once, in AuthFlow, so the API and any other caller
get the same rules and the same messages.

Envelopes follow the RealWorld convention: {"user": {...}} and
{"profile": {...}}.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from auth.models import User, UserDraft
from social.models import Profile

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class NewUser(BaseModel):
    """Body of POST /api/users."""

    email: Optional[str] = Field(default=None, max_length=255)
    username: Optional[str] = Field(default=None, max_length=255)
    password: Optional[str] = Field(default=None, max_length=255, json_schema_extra={"format": "password"})
    bio: Optional[str] = Field(default=None, max_length=2000)
    image: Optional[str] = Field(default=None, max_length=2000)

    def to_draft(self) -> UserDraft:
        return UserDraft(
            email=self.email,
            username=self.username,
            password=self.password,
            bio=self.bio,
            image=self.image,
        )


class UserUpdate(NewUser):
    """Body of PUT /api/user. Omitted fields are left unchanged."""


class LoginUser(BaseModel):
    email: str = Field(max_length=255)
    password: str = Field(max_length=255)


class RegisterRequest(BaseModel):
    """Request body for POST /api/users."""

    user: NewUser


class LoginRequest(BaseModel):
    """Request body for POST /api/users/login."""

    user: LoginUser


class UpdateUserRequest(BaseModel):
    """Request body for PUT /api/user."""

    user: UserUpdate


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class UserBody(BaseModel):
    """The authenticated user as returned to its owner. No password, no hash."""

    model_config = ConfigDict(frozen=True)

    email: str
    token: Optional[str] = None
    username: str
    bio: Optional[str] = None
    image: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "UserBody":
        return cls(
            email=user.email,
            token=user.token,
            username=user.username,
            bio=user.bio,
            image=user.image,
        )


class UserResponse(BaseModel):
    user: UserBody

    @classmethod
    def from_user(cls, user: User) -> "UserResponse":
        return cls(user=UserBody.from_user(user))


class ProfileBody(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    bio: Optional[str] = None
    image: Optional[str] = None
    following: bool = False


class ProfileResponse(BaseModel):
    profile: ProfileBody

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            profile=ProfileBody(
                username=profile.username,
                bio=profile.bio,
                image=profile.image,
                following=profile.following,
            )
        )


class ErrorDetail(BaseModel):
    code: str
    message: str
    detail: Optional[str] = None


class ErrorResponse(BaseModel):
    """Uniform error envelope for every non-2xx response."""

    error: ErrorDetail


class HealthResponse(BaseModel):
    status: str
    version: str
    components: dict[str, str]
