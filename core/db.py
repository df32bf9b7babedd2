"""
core/db.py -- Shared SQLAlchemy Core schema and engine factory.

Uses SQLAlchemy Core (not ORM) so the dataclasses in auth/models.py and
social/models.py remain the authoritative domain representation. Swapping
SQLite for PostgreSQL is a connection string change, not a rewrite.

Both repositories (auth.store.UserStore, social.store.FollowGraph) share
one engine because follow edges carry foreign keys into users.

Uniqueness is the source of truth for concurrency: the unique indexes on
users.email, users.username and follows(follower_id, followed_id) decide
which of two racing writes wins. Stores translate the resulting
IntegrityError into a domain error with the helpers below.

Security: all queries use bound parameters. No f-strings in SQL.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/ or social/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import (
    CheckConstraint,
    Column,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    UniqueConstraint,
    create_engine,
    event,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from core.errors import StorageError

logger = logging.getLogger("conduit.db")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", String(255), nullable=False),
    Column("username", String(255), nullable=False),
    Column("password_hash", Text, nullable=False),
    Column("bio", Text),
    Column("image", Text),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    UniqueConstraint("email", name="uq_users_email"),
    UniqueConstraint("username", name="uq_users_username"),
)

follows = Table(
    "follows",
    metadata,
    Column("follower_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("followed_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("created_at", String(32), nullable=False),
    # Also serves the is_following() point lookup.
    UniqueConstraint("follower_id", "followed_id", name="uq_follows_pair"),
    CheckConstraint("follower_id <> followed_id", name="ck_follows_not_self"),
)


# ---------------------------------------------------------------------------
# SQLite connection setup
# ---------------------------------------------------------------------------


def _configure_sqlite(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode and foreign key enforcement.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool. Foreign keys are off by default in SQLite.
    """
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(db_url: str) -> Engine:
    """Create an engine for db_url and make sure the schema exists.

    Usage:
        engine = make_engine("sqlite:///conduit.db")
        engine = make_engine("postgresql://user:pw@host/db")
    """
    connect_args: dict = {}
    if db_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    engine = create_engine(db_url, connect_args=connect_args)
    if db_url.startswith("sqlite"):
        event.listen(engine, "connect", _configure_sqlite)
    metadata.create_all(engine)
    return engine


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


def is_unique_violation(exc: IntegrityError) -> bool:
    """True when exc came from a unique index (SQLite or PostgreSQL wording)."""
    message = str(exc.orig).lower()
    return "unique" in message or "duplicate key" in message


def violated_column(exc: IntegrityError, candidates: tuple[str, ...]) -> str | None:
    """Return the first candidate column named in the driver's error message."""
    message = str(exc.orig).lower()
    for name in candidates:
        if name in message:
            return name
    return None


@contextmanager
def storage_errors(action: str) -> Iterator[None]:
    """Wrap any SQLAlchemyError raised in the block as a StorageError.

    Stores catch the IntegrityErrors they understand inside the block and
    raise domain errors instead; those are not SQLAlchemyErrors and pass
    through untouched. Driver detail goes to the log, never to the caller.
    """
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Storage failure during %s", action)
        raise StorageError() from exc
