"""
social/store.py -- SQLAlchemy Core persistence for directed follow edges.

Pattern: Repository + Data Mapper, same as auth/store.py.

Invariants (enforced by the schema in core/db.py, translated here):
  - at most one edge per ordered (follower_id, followed_id) pair
    -> IntegrityError on the unique index becomes AlreadyFollowing
  - both ends reference existing users
    -> foreign key IntegrityError becomes NotFound
  - no self-follow
    -> rejected in code as SelfFollow before any SQL runs

follow() does not check is_following() first: two concurrent follows of
the same pair are settled by the unique index, exactly one succeeds.

unfollow() is idempotent. Deleting an edge that is not there is a success.

Security: all queries use bound parameters. No f-strings in SQL.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from sqlalchemy import literal, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.db import follows, is_unique_violation, storage_errors
from core.errors import AlreadyFollowing, NotFound, SelfFollow
from social.models import FollowEdge

logger = logging.getLogger("conduit.social")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FollowGraph:
    """Repository for follow edges.

    Usage:
        graph = FollowGraph(engine)
        graph.follow(alice.id, bob.id)
        graph.is_following(alice.id, bob.id)  # True
        graph.unfollow(alice.id, bob.id)
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def follow(self, follower_id: int, followed_id: int) -> FollowEdge:
        """Insert the edge follower -> followed and return it.

        Raises SelfFollow, AlreadyFollowing, or NotFound when either user
        does not exist.
        """
        if follower_id == followed_id:
            raise SelfFollow()
        edge = FollowEdge(follower_id=follower_id, followed_id=followed_id, created_at=_now_iso())
        with storage_errors("follow"):
            try:
                with self.engine.connect() as conn:
                    conn.execute(
                        follows.insert().values(
                            follower_id=edge.follower_id,
                            followed_id=edge.followed_id,
                            created_at=edge.created_at,
                        )
                    )
                    conn.commit()
            except IntegrityError as exc:
                if is_unique_violation(exc):
                    raise AlreadyFollowing() from exc
                if "foreign key" in str(exc.orig).lower():
                    raise NotFound("user not found") from exc
                raise
        logger.info("User id=%s followed id=%s", follower_id, followed_id)
        return edge

    def unfollow(self, follower_id: int, followed_id: int) -> bool:
        """Delete the edge if present. Returns True if a row was removed."""
        with storage_errors("unfollow"):
            with self.engine.connect() as conn:
                result = conn.execute(
                    follows.delete().where(
                        (follows.c.follower_id == follower_id) & (follows.c.followed_id == followed_id)
                    )
                )
                conn.commit()
        removed = result.rowcount > 0
        if removed:
            logger.info("User id=%s unfollowed id=%s", follower_id, followed_id)
        return removed

    def is_following(self, follower_id: int, followed_id: int) -> bool:
        """Point lookup on the (follower_id, followed_id) unique index."""
        query = (
            select(literal(1))
            .select_from(follows)
            .where((follows.c.follower_id == follower_id) & (follows.c.followed_id == followed_id))
            .limit(1)
        )
        with storage_errors("check follow"):
            with self.engine.connect() as conn:
                row = conn.execute(query).first()
        return row is not None

