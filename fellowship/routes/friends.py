"""
Fellowship Backend — Friending Routes
=======================================

What:  HTTP surface of the FriendingEngine.
How:   The acting user comes from the session; the other party is named by
       username and resolved through the Authentication concept. Engine
       failures propagate to the global handler untouched.

    GET    /friends                   friend usernames
    GET    /friend/requests           pending requests, incoming and outgoing
    POST   /friend/request            {to}: send a request
    PUT    /friend/accept/{from}      accept a request sent to you
    PUT    /friend/reject/{from}      reject a request sent to you
    DELETE /friends/{friend}          unfriend
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fellowship.concepts import Concepts
from fellowship.database import get_db_session
from fellowship.dependencies import get_concepts, get_current_user_id
from fellowship.schemas.common import ErrorResponse, MessageResponse
from fellowship.schemas.relationship import (
    FriendRequestRecord,
    FriendRequestResponse,
    FriendRequestsResponse,
    RequestInbox,
    SendFriendRequest,
    SendFriendRequestResponse,
)

router = APIRouter(tags=["Friends"])

_conflicts = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


async def _present_requests(
    db: AsyncSession, concepts: Concepts, records: List[FriendRequestRecord]
) -> List[FriendRequestResponse]:
    ids = [i for r in records for i in (r.from_id, r.to_id)]
    names = await concepts.users.ids_to_usernames(db, ids)
    return [
        FriendRequestResponse(
            from_user=names[2 * n],
            to_user=names[2 * n + 1],
            status=record.status,
            created_at=record.created_at,
        )
        for n, record in enumerate(records)
    ]


@router.get("/friends", response_model=List[str], responses=_conflicts)
async def get_friends(
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> List[str]:
    friends = await concepts.friending.get_friends(user_id)
    return sorted(await concepts.users.ids_to_usernames(db, friends))


@router.get("/friend/requests", response_model=FriendRequestsResponse, responses=_conflicts)
async def get_friend_requests(
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> FriendRequestsResponse:
    records = await concepts.friending.get_requests(user_id)
    incoming, outgoing = RequestInbox.partition(user_id, records)
    return FriendRequestsResponse(
        incoming=await _present_requests(db, concepts, incoming),
        outgoing=await _present_requests(db, concepts, outgoing),
    )


@router.post(
    "/friend/request",
    response_model=SendFriendRequestResponse,
    status_code=201,
    responses=_conflicts,
)
async def send_friend_request(
    body: SendFriendRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> SendFriendRequestResponse:
    to_id = await concepts.users.resolve_identity_by_handle(db, body.to)
    record = await concepts.friending.send_request(user_id, to_id)
    (presented,) = await _present_requests(db, concepts, [record])
    return SendFriendRequestResponse(msg="Sent request!", request=presented)


@router.put("/friend/accept/{from_username}", response_model=MessageResponse, responses=_conflicts)
async def accept_friend_request(
    from_username: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    from_id = await concepts.users.resolve_identity_by_handle(db, from_username)
    await concepts.friending.accept_request(from_id, user_id)
    return MessageResponse(msg="Accepted request!")


@router.put("/friend/reject/{from_username}", response_model=MessageResponse, responses=_conflicts)
async def reject_friend_request(
    from_username: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    from_id = await concepts.users.resolve_identity_by_handle(db, from_username)
    await concepts.friending.reject_request(from_id, user_id)
    return MessageResponse(msg="Rejected request!")


@router.delete("/friends/{friend}", response_model=MessageResponse, responses=_conflicts)
async def remove_friend(
    friend: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    friend_id = await concepts.users.resolve_identity_by_handle(db, friend)
    await concepts.friending.remove_friend(user_id, friend_id)
    return MessageResponse(msg="Unfriended!")
