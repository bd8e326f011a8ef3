"""
Fellowship Backend — Following Routes
=======================================

What:  HTTP surface of the FollowingEngine. The follower is always the
       session user; follower/following listings are public.
"""

import uuid

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fellowship.concepts import Concepts
from fellowship.database import get_db_session
from fellowship.dependencies import get_concepts, get_current_user_id
from fellowship.schemas.common import ErrorResponse, MessageResponse
from fellowship.schemas.relationship import (
    FollowerCountResponse,
    FollowersResponse,
    FollowingResponse,
    FollowRequest,
    FollowStatusResponse,
)

router = APIRouter(tags=["Following"])

_errors = {
    400: {"model": ErrorResponse},
    401: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post("/follow", response_model=MessageResponse, status_code=201, responses=_errors)
async def follow_user(
    body: FollowRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    followee_id = await concepts.users.resolve_identity_by_handle(db, body.followee)
    await concepts.following.follow_user(user_id, followee_id)
    return MessageResponse(msg=f"Now following {body.followee}!")


@router.delete("/follow/{followee}", response_model=MessageResponse, responses=_errors)
async def unfollow_user(
    followee: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    followee_id = await concepts.users.resolve_identity_by_handle(db, followee)
    await concepts.following.unfollow_user(user_id, followee_id)
    return MessageResponse(msg=f"Unfollowed {followee}!")


@router.get("/follow/status/{followee}", response_model=FollowStatusResponse, responses=_errors)
async def get_follow_status(
    followee: str,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> FollowStatusResponse:
    followee_id = await concepts.users.resolve_identity_by_handle(db, followee)
    return FollowStatusResponse(
        is_following=await concepts.following.is_following(user_id, followee_id)
    )


@router.get("/followers/count/{username}", response_model=FollowerCountResponse, responses=_errors)
async def get_follower_count(
    username: str,
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> FollowerCountResponse:
    user_id = await concepts.users.resolve_identity_by_handle(db, username)
    return FollowerCountResponse(follower_count=await concepts.following.get_follower_count(user_id))


@router.get("/followers/{username}", response_model=FollowersResponse, responses=_errors)
async def get_followers(
    username: str,
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> FollowersResponse:
    user_id = await concepts.users.resolve_identity_by_handle(db, username)
    followers = await concepts.following.get_followers(user_id)
    return FollowersResponse(followers=sorted(await concepts.users.ids_to_usernames(db, followers)))


@router.get("/following/{username}", response_model=FollowingResponse, responses=_errors)
async def get_following(
    username: str,
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> FollowingResponse:
    user_id = await concepts.users.resolve_identity_by_handle(db, username)
    following = await concepts.following.get_following(user_id)
    return FollowingResponse(following=sorted(await concepts.users.ids_to_usernames(db, following)))
