"""
api/routes/profiles.py -- Public profiles and follow/unfollow endpoints.

Routes:
  GET    /api/profiles/{username}         -- profile; auth optional
  POST   /api/profiles/{username}/follow  -- follow (requires auth)
  DELETE /api/profiles/{username}/follow  -- unfollow (requires auth)

GET uses try_get_current_user: an anonymous or badly authenticated caller
still gets the profile, with following=false.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from api.models import ProfileResponse
from auth.dependencies import get_current_user, try_get_current_user
from auth.models import User
from social.profiles import ProfileResolver

router = APIRouter()


def _profiles(request: Request) -> ProfileResolver:
    return request.app.state.profiles


@router.get("/profiles/{username}", response_model=ProfileResponse)
def get_profile(
    request: Request,
    username: str,
    viewer: Optional[User] = Depends(try_get_current_user),
) -> ProfileResponse:
    viewer_id = viewer.id if viewer is not None else None
    profile = _profiles(request).resolve(username, viewer_id)
    return ProfileResponse.from_profile(profile)


@router.post("/profiles/{username}/follow", response_model=ProfileResponse)
def follow_user(
    request: Request,
    username: str,
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    """Follow username. 409 if already following, 422 for yourself."""
    profile = _profiles(request).follow_user(current_user.id, username)
    return ProfileResponse.from_profile(profile)


@router.delete("/profiles/{username}/follow", response_model=ProfileResponse)
def unfollow_user(
    request: Request,
    username: str,
    current_user: User = Depends(get_current_user),
) -> ProfileResponse:
    """Unfollow username. Succeeds even if there was nothing to undo."""
    profile = _profiles(request).unfollow_user(current_user.id, username)
    return ProfileResponse.from_profile(profile)
