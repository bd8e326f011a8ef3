"""
Fellowship Backend — Relationship Store Repositories
======================================================

What:  A small typed repository over one ORM model plus the three concrete
       repositories the relationship engines use.
How:   A repository wraps an AsyncSession the caller already opened inside a
       transaction. It never commits: the engine owning the transaction
       decides when the unit of work ends.

    Repository[ModelT]
    ├── FriendRequestRepository   (friend_requests)
    ├── FriendshipRepository      (friendships)
    └── FollowEdgeRepository      (follow_edges)
"""

import uuid
from typing import Any, ClassVar, Generic, List, Optional, Set, Type, TypeVar

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from fellowship.database import Base
from fellowship.models.relationship import (
    FollowEdge,
    FriendRequest,
    Friendship,
    RequestStatus,
    unordered_pair_key,
)

ModelT = TypeVar("ModelT", bound=Base)


class Repository(Generic[ModelT]):
    """
    Create / point read / filtered read-many / count / delete over `model`.

    Criteria are SQLAlchemy column expressions, e.g.
    `repo.read_one(FollowEdge.follower_id == a)`.
    """

    model: ClassVar[Type[Base]]

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **values: Any) -> ModelT:
        """Insert one row and flush, so constraint violations surface here."""
        row = self.model(**values)
        self.session.add(row)
        await self.session.flush()
        return row

    async def read_one(self, *criteria: Any) -> Optional[ModelT]:
        result = await self.session.execute(select(self.model).where(*criteria).limit(1))
        return result.scalar_one_or_none()

    async def read_many(self, *criteria: Any, order_by: Any = None) -> List[ModelT]:
        query = select(self.model).where(*criteria)
        if order_by is not None:
            query = query.order_by(order_by)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(self, *criteria: Any) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(self.model).where(*criteria)
        )
        return result.scalar() or 0

    async def delete_many(self, *criteria: Any) -> int:
        """Delete matching rows; returns how many were removed."""
        result = await self.session.execute(
            delete(self.model).where(*criteria).execution_options(synchronize_session=False)
        )
        return result.rowcount or 0


class FriendRequestRepository(Repository[FriendRequest]):
    model = FriendRequest

    async def add_pending(self, from_id: uuid.UUID, to_id: uuid.UUID) -> FriendRequest:
        return await self.create(
            from_id=from_id,
            to_id=to_id,
            status=RequestStatus.PENDING.value,
            pair_key=unordered_pair_key(from_id, to_id),
        )

    async def find_pending_between(self, a: uuid.UUID, b: uuid.UUID) -> Optional[FriendRequest]:
        """Pending request between a and b in either direction."""
        return await self.read_one(
            FriendRequest.pair_key == unordered_pair_key(a, b),
            FriendRequest.status == RequestStatus.PENDING.value,
        )

    async def find_pending(self, from_id: uuid.UUID, to_id: uuid.UUID) -> Optional[FriendRequest]:
        """Pending request in exactly the direction from_id → to_id."""
        return await self.read_one(
            FriendRequest.from_id == from_id,
            FriendRequest.to_id == to_id,
            FriendRequest.status == RequestStatus.PENDING.value,
        )

    async def pending_involving(self, user: uuid.UUID) -> List[FriendRequest]:
        return await self.read_many(
            or_(FriendRequest.from_id == user, FriendRequest.to_id == user),
            FriendRequest.status == RequestStatus.PENDING.value,
            order_by=FriendRequest.created_at,
        )

    async def remove(self, request: FriendRequest) -> None:
        await self.session.delete(request)
        await self.session.flush()

    async def remove_involving(self, user: uuid.UUID) -> int:
        return await self.delete_many(
            or_(FriendRequest.from_id == user, FriendRequest.to_id == user)
        )


class FriendshipRepository(Repository[Friendship]):
    model = Friendship

    async def are_friends(self, a: uuid.UUID, b: uuid.UUID) -> bool:
        found = await self.read_one(Friendship.user_id == a, Friendship.friend_id == b)
        return found is not None

    async def link(self, a: uuid.UUID, b: uuid.UUID) -> None:
        """Insert both directions of the friendship."""
        self.session.add_all([
            Friendship(user_id=a, friend_id=b),
            Friendship(user_id=b, friend_id=a),
        ])
        await self.session.flush()

    async def unlink(self, a: uuid.UUID, b: uuid.UUID) -> int:
        return await self.delete_many(
            or_(
                and_(Friendship.user_id == a, Friendship.friend_id == b),
                and_(Friendship.user_id == b, Friendship.friend_id == a),
            )
        )

    async def friends_of(self, user: uuid.UUID) -> Set[uuid.UUID]:
        result = await self.session.execute(
            select(Friendship.friend_id).where(Friendship.user_id == user)
        )
        return set(result.scalars().all())

    async def remove_involving(self, user: uuid.UUID) -> int:
        return await self.delete_many(
            or_(Friendship.user_id == user, Friendship.friend_id == user)
        )


class FollowEdgeRepository(Repository[FollowEdge]):
    model = FollowEdge

    async def find(self, follower: uuid.UUID, followee: uuid.UUID) -> Optional[FollowEdge]:
        return await self.read_one(
            FollowEdge.follower_id == follower, FollowEdge.followee_id == followee
        )

    async def remove(self, follower: uuid.UUID, followee: uuid.UUID) -> int:
        return await self.delete_many(
            FollowEdge.follower_id == follower, FollowEdge.followee_id == followee
        )

    async def followers_of(self, user: uuid.UUID) -> Set[uuid.UUID]:
        result = await self.session.execute(
            select(FollowEdge.follower_id).where(FollowEdge.followee_id == user)
        )
        return set(result.scalars().all())

    async def following_of(self, user: uuid.UUID) -> Set[uuid.UUID]:
        result = await self.session.execute(
            select(FollowEdge.followee_id).where(FollowEdge.follower_id == user)
        )
        return set(result.scalars().all())

    async def count_followers(self, user: uuid.UUID) -> int:
        return await self.count(FollowEdge.followee_id == user)

    async def remove_involving(self, user: uuid.UUID) -> int:
        return await self.delete_many(
            or_(FollowEdge.follower_id == user, FollowEdge.followee_id == user)
        )
