"""
social/models.py -- Domain dataclasses for the follow graph.

Pure data containers. Profile is derived on every read and never persisted;
FollowEdge mirrors one row of the follows table.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class Profile:
    """Public, viewer-relative projection of a user.

    following is relative to whoever asked: False for an anonymous viewer.
    Email and password hash are never part of a profile.
    """

    username: str
    bio: str | None = None
    image: str | None = None
    following: bool = False


@dataclass
class FollowEdge:
    follower_id: int
    followed_id: int
    created_at: str | None = None
