"""
Fellowship Backend — Relationship Models
==========================================

What:  The three tables of the Relationship Store:
       `friend_requests`, `friendships` and `follow_edges`.
How:   Only FriendingEngine writes the first two and only FollowingEngine
       writes the third. Identity columns are plain UUIDs without foreign
       keys: identities are opaque to the engines and their existence is the
       caller's precondition.

Uniqueness doubles as the cross-process concurrency guard:
    friend_requests.pair_key   UNIQUE   → one live request per unordered pair
    friendships (user, friend) PK       → one row per direction
    follow_edges (follower, followee) PK → one edge per ordered pair
"""

import enum
import uuid
from datetime import datetime
from typing import Tuple

from sqlalchemy import CheckConstraint, DateTime, Index, String, Uuid, text
from sqlalchemy.orm import Mapped, mapped_column

from fellowship.database import Base
from fellowship.models.user import utcnow


def unordered_pair(a: uuid.UUID, b: uuid.UUID) -> Tuple[uuid.UUID, uuid.UUID]:
    """The pair (a, b) in canonical order, so {a, b} and {b, a} coincide."""
    return (a, b) if str(a) <= str(b) else (b, a)


def unordered_pair_key(a: uuid.UUID, b: uuid.UUID) -> str:
    lo, hi = unordered_pair(a, b)
    return f"{lo}:{hi}"


class RequestStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class FriendRequest(Base):
    """
    A directional ask from `from_id` to `to_id`.

    Only pending rows are ever stored: accepting or rejecting deletes the
    row, which is what lets the pair_key constraint stand in for
    "at most one pending request per unordered pair".
    """

    __tablename__ = "friend_requests"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    from_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    to_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=RequestStatus.PENDING.value,
        server_default=text("'pending'"),
    )
    pair_key: Mapped[str] = mapped_column(String(80), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("from_id <> to_id", name="ck_friend_requests_not_self"),
    )

    def __repr__(self) -> str:
        return f"<FriendRequest({self.from_id} -> {self.to_id}, status='{self.status}')>"


class Friendship(Base):
    """
    One direction of a friendship. Every friendship is stored as the two rows
    (a, b) and (b, a), so "friends of X" is a primary-key prefix scan.
    """

    __tablename__ = "friendships"

    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    friend_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("user_id <> friend_id", name="ck_friendships_not_self"),
    )


class FollowEdge(Base):
    """Directed edge: `follower_id` follows `followee_id`. Immutable once created."""

    __tablename__ = "follow_edges"

    follower_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    followee_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
        server_default=text("CURRENT_TIMESTAMP"),
    )

    __table_args__ = (
        CheckConstraint("follower_id <> followee_id", name="ck_follow_edges_not_self"),
        # Reverse lookups: followers of X and follower counts
        Index("idx_follow_edges_followee", "followee_id"),
    )
