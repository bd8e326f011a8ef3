"""
Fellowship Backend — Following Engine
=======================================

What:  Directed follow edges and the queries derived from them.
How:   Edges are present or absent, with no intermediate state. Mutations lock the
       *ordered* pair, so A→B and B→A are independent and never contend.
"""

import logging
import uuid
from typing import Set

from fellowship.exceptions import AlreadyFollowingError, NotFollowingError, SelfFollowError
from fellowship.repositories import FollowEdgeRepository
from fellowship.schemas.relationship import FollowEdgeRecord
from fellowship.services.relationships import RelationshipEngine

logger = logging.getLogger(__name__)


class FollowingEngine(RelationshipEngine):
    """Owns the `follow_edges` table."""

    name = "following"

    async def follow_user(self, follower: uuid.UUID, followee: uuid.UUID) -> FollowEdgeRecord:
        """
        Raises:
            SelfFollowError:       follower == followee
            AlreadyFollowingError: the edge already exists
            StorageUnavailableError
        """
        if follower == followee:
            raise SelfFollowError(user=follower)
        return await self._run("follow_user", self._follow_user(follower, followee))

    async def _follow_user(self, follower: uuid.UUID, followee: uuid.UUID) -> FollowEdgeRecord:
        async with self._unit_of_work(
            "follow_user",
            [self.ordered_key(follower, followee)],
            on_conflict=lambda: AlreadyFollowingError(follower=follower, followee=followee),
        ) as session:
            edges = FollowEdgeRepository(session)
            if await edges.find(follower, followee) is not None:
                raise AlreadyFollowingError(follower=follower, followee=followee)
            edge = await edges.create(follower_id=follower, followee_id=followee)
            record = FollowEdgeRecord.model_validate(edge)

        logger.info("Follow edge created: %s -> %s", follower, followee)
        return record

    async def unfollow_user(self, follower: uuid.UUID, followee: uuid.UUID) -> None:
        """
        Raises:
            NotFollowingError: no such edge
            StorageUnavailableError
        """
        await self._run("unfollow_user", self._unfollow_user(follower, followee))

    async def _unfollow_user(self, follower: uuid.UUID, followee: uuid.UUID) -> None:
        async with self._unit_of_work(
            "unfollow_user", [self.ordered_key(follower, followee)]
        ) as session:
            if await FollowEdgeRepository(session).remove(follower, followee) == 0:
                raise NotFollowingError(follower=follower, followee=followee)

        logger.info("Follow edge removed: %s -> %s", follower, followee)

    async def get_followers(self, user: uuid.UUID) -> Set[uuid.UUID]:
        async def query() -> Set[uuid.UUID]:
            async with self._read_session("get_followers") as session:
                return await FollowEdgeRepository(session).followers_of(user)

        return await self._run("get_followers", query())

    async def get_following(self, user: uuid.UUID) -> Set[uuid.UUID]:
        async def query() -> Set[uuid.UUID]:
            async with self._read_session("get_following") as session:
                return await FollowEdgeRepository(session).following_of(user)

        return await self._run("get_following", query())

    async def get_follower_count(self, user: uuid.UUID) -> int:
        """COUNT(*) over the followee index; equals len(get_followers(user))."""
        async def query() -> int:
            async with self._read_session("get_follower_count") as session:
                return await FollowEdgeRepository(session).count_followers(user)

        return await self._run("get_follower_count", query())

    async def is_following(self, follower: uuid.UUID, followee: uuid.UUID) -> bool:
        async def query() -> bool:
            async with self._read_session("is_following") as session:
                return await FollowEdgeRepository(session).find(follower, followee) is not None

        return await self._run("is_following", query())

    async def forget_user(self, user: uuid.UUID) -> None:
        """Drop every edge into or out of `user` (account deletion)."""
        async def purge() -> None:
            async with self._unit_of_work("forget_user", []) as session:
                removed = await FollowEdgeRepository(session).remove_involving(user)
            logger.info("Purged %d follow edges for %s", removed, user)

        await self._run("forget_user", purge())
