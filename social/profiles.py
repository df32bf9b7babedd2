"""
social/profiles.py -- Viewer-relative profile resolution and follow actions.

"following" is computed in two explicit steps: load the target by username,
then ask FollowGraph.is_following(viewer, target) -- one indexed point
lookup per profile view. The viewer is always a plain argument; None means
anonymous and always yields following=False.
"""

from __future__ import annotations

from auth.models import User
from auth.store import UserStore
from social.models import Profile
from social.store import FollowGraph


class ProfileResolver:
    def __init__(self, users: UserStore, graph: FollowGraph) -> None:
        self.users = users
        self.graph = graph

    def resolve(self, target_username: str, viewer_id: int | None = None) -> Profile:
        """Return the public profile of target_username as seen by viewer_id.

        Raises NotFound if no user has that username.
        """
        target = self.users.get_by_username(target_username)
        following = False
        if viewer_id is not None:
            following = self.graph.is_following(viewer_id, target.id)
        return _to_profile(target, following)

    def follow_user(self, auth_user_id: int, target_username: str) -> Profile:
        """Make auth_user_id follow target_username. Raises AlreadyFollowing, SelfFollow, NotFound."""
        target = self.users.get_by_username(target_username)
        self.graph.follow(auth_user_id, target.id)
        return _to_profile(target, True)

    def unfollow_user(self, auth_user_id: int, target_username: str) -> Profile:
        target = self.users.get_by_username(target_username)
        self.graph.unfollow(auth_user_id, target.id)
        return _to_profile(target, False)


def _to_profile(user: User, following: bool) -> Profile:
    return Profile(username=user.username, bio=user.bio, image=user.image, following=following)
