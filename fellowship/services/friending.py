"""
Fellowship Backend — Friending Engine
=======================================

What:  The friend request state machine and the symmetric friend set.
How:   Every mutation runs as one locked unit of work (see relationships.py)
       keyed by the unordered identity pair, so sends in opposite directions
       and an accept racing a remove all serialize on the same lock.

State machine for an unordered pair {A, B}:

    (none) ──send(A,B)──▶ pending(A→B) ──accept(A,B)──▶ friends ──remove──▶ (none)
                              │
                              └──reject(A,B)──▶ (none)

    send while pending (either direction) → AlreadyRequestedError
    send while friends                    → AlreadyFriendsError
    accept/reject with no pending A→B     → RequestNotFoundError
    remove with no friendship             → FriendNotFoundError

Redundant calls fail rather than silently succeeding, so a stale client
learns its view is out of date.
"""

import logging
import uuid
from typing import List, Set

from fellowship.exceptions import (
    AlreadyFriendsError,
    AlreadyRequestedError,
    FriendNotFoundError,
    RequestNotFoundError,
    SelfRelationError,
)
from fellowship.repositories import FriendRequestRepository, FriendshipRepository
from fellowship.schemas.relationship import FriendRequestRecord
from fellowship.services.relationships import RelationshipEngine

logger = logging.getLogger(__name__)


class FriendingEngine(RelationshipEngine):
    """
    Owns the `friend_requests` and `friendships` tables.

    Identities are opaque; callers guarantee they exist.
    """

    name = "friending"

    async def send_request(self, from_id: uuid.UUID, to_id: uuid.UUID) -> FriendRequestRecord:
        """
        Create a pending request from_id → to_id.

        Raises:
            SelfRelationError:     from_id == to_id
            AlreadyFriendsError:   the pair are already friends
            AlreadyRequestedError: a pending request exists in either direction
            StorageUnavailableError
        """
        if from_id == to_id:
            raise SelfRelationError(user=from_id)
        return await self._run("send_request", self._send_request(from_id, to_id))

    async def _send_request(self, from_id: uuid.UUID, to_id: uuid.UUID) -> FriendRequestRecord:
        async with self._unit_of_work(
            "send_request",
            [self.unordered_key(from_id, to_id)],
            on_conflict=lambda: AlreadyRequestedError(from_id=from_id, to_id=to_id),
        ) as session:
            friendships = FriendshipRepository(session)
            requests = FriendRequestRepository(session)

            if await friendships.are_friends(from_id, to_id):
                raise AlreadyFriendsError(user=from_id, friend=to_id)
            if await requests.find_pending_between(from_id, to_id) is not None:
                raise AlreadyRequestedError(from_id=from_id, to_id=to_id)

            request = await requests.add_pending(from_id, to_id)
            record = FriendRequestRecord.model_validate(request)

        logger.info("Friend request sent: %s -> %s", from_id, to_id)
        return record

    async def accept_request(self, from_id: uuid.UUID, to_id: uuid.UUID) -> None:
        """
        Accept the pending request from_id → to_id (to_id is the one accepting).

        Deleting the request and inserting both friendship rows happen in
        one transaction.

        Raises:
            RequestNotFoundError: no pending request in exactly this direction
            StorageUnavailableError
        """
        await self._run("accept_request", self._accept_request(from_id, to_id))

    async def _accept_request(self, from_id: uuid.UUID, to_id: uuid.UUID) -> None:
        async with self._unit_of_work(
            "accept_request",
            [self.unordered_key(from_id, to_id)],
            on_conflict=lambda: AlreadyFriendsError(user=from_id, friend=to_id),
        ) as session:
            requests = FriendRequestRepository(session)
            request = await requests.find_pending(from_id, to_id)
            if request is None:
                raise RequestNotFoundError(from_id=from_id, to_id=to_id)

            await requests.remove(request)
            await FriendshipRepository(session).link(from_id, to_id)

        logger.info("Friend request accepted: %s -> %s", from_id, to_id)

    async def reject_request(self, from_id: uuid.UUID, to_id: uuid.UUID) -> None:
        """
        Reject the pending request from_id → to_id. A later send is allowed.

        Raises:
            RequestNotFoundError: no pending request (including a repeat reject)
            StorageUnavailableError
        """
        await self._run("reject_request", self._reject_request(from_id, to_id))

    async def _reject_request(self, from_id: uuid.UUID, to_id: uuid.UUID) -> None:
        async with self._unit_of_work(
            "reject_request", [self.unordered_key(from_id, to_id)]
        ) as session:
            requests = FriendRequestRepository(session)
            request = await requests.find_pending(from_id, to_id)
            if request is None:
                raise RequestNotFoundError(from_id=from_id, to_id=to_id)
            await requests.remove(request)

        logger.info("Friend request rejected: %s -> %s", from_id, to_id)

    async def remove_friend(self, user: uuid.UUID, friend: uuid.UUID) -> None:
        """
        End the friendship between user and friend, in either order.

        Raises:
            FriendNotFoundError: the two are not friends
            StorageUnavailableError
        """
        await self._run("remove_friend", self._remove_friend(user, friend))

    async def _remove_friend(self, user: uuid.UUID, friend: uuid.UUID) -> None:
        async with self._unit_of_work(
            "remove_friend", [self.unordered_key(user, friend)]
        ) as session:
            removed = await FriendshipRepository(session).unlink(user, friend)
            if removed == 0:
                raise FriendNotFoundError(user=user, friend=friend)

        logger.info("Friendship removed: %s <-> %s", user, friend)

    async def get_friends(self, user: uuid.UUID) -> Set[uuid.UUID]:
        async def query() -> Set[uuid.UUID]:
            async with self._read_session("get_friends") as session:
                return await FriendshipRepository(session).friends_of(user)

        return await self._run("get_friends", query())

    async def get_requests(self, user: uuid.UUID) -> List[FriendRequestRecord]:
        """Pending requests where `user` is either party, oldest first."""
        async def query() -> List[FriendRequestRecord]:
            async with self._read_session("get_requests") as session:
                rows = await FriendRequestRepository(session).pending_involving(user)
                return [FriendRequestRecord.model_validate(row) for row in rows]

        return await self._run("get_requests", query())

    async def forget_user(self, user: uuid.UUID) -> None:
        """Drop every request and friendship touching `user` (account deletion)."""
        async def purge() -> None:
            async with self._unit_of_work("forget_user", []) as session:
                requests = await FriendRequestRepository(session).remove_involving(user)
                friendships = await FriendshipRepository(session).remove_involving(user)
            logger.info(
                "Purged friending state for %s: %d requests, %d friendship rows",
                user, requests, friendships,
            )

        await self._run("forget_user", purge())
