"""
Fellowship Backend — User and Session Routes
==============================================

What:  Registration, lookup, renaming, deletion, login and logout.
How:   Thin handlers over UserService and SessionIssuer; deleting an account
       also purges its relationships through both engines.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fellowship.concepts import Concepts
from fellowship.database import get_db_session
from fellowship.dependencies import get_concepts, get_current_user_id, get_session_token
from fellowship.schemas.common import ErrorResponse, MessageResponse
from fellowship.schemas.user import (
    CreateUserRequest,
    CreateUserResponse,
    LoginRequest,
    LoginResponse,
    UpdateUsernameRequest,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Users"])


@router.get(
    "/session",
    response_model=UserResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Current session user",
)
async def get_session_user(
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await concepts.users.get_user_by_id(db, user_id)
    return UserResponse.model_validate(user)


@router.get("/users", response_model=List[UserResponse], summary="List users")
async def get_users(
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> List[UserResponse]:
    return [UserResponse.model_validate(u) for u in await concepts.users.get_users(db)]


@router.get(
    "/users/{username}",
    response_model=UserResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Get a user by username",
)
async def get_user(
    username: str,
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    return UserResponse.model_validate(await concepts.users.get_user_by_username(db, username))


@router.post(
    "/users",
    response_model=CreateUserResponse,
    status_code=201,
    responses={403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Register a new user (must be logged out)",
)
async def create_user(
    body: CreateUserRequest,
    token: Optional[str] = Depends(get_session_token),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> CreateUserResponse:
    concepts.sessions.assert_logged_out(token)
    user = await concepts.users.create(db, body.username)
    return CreateUserResponse(msg="Created user successfully!", user=UserResponse.model_validate(user))


@router.patch(
    "/users/username",
    response_model=UserResponse,
    responses={401: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Change your username",
)
async def update_username(
    body: UpdateUsernameRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> UserResponse:
    user = await concepts.users.update_username(db, user_id, body.username)
    return UserResponse.model_validate(user)


@router.delete(
    "/users",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Delete your account and end the session",
)
async def delete_user(
    token: Optional[str] = Depends(get_session_token),
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    # Account row first, committed before the purge: once it is gone no new
    # request or follow can resolve this user, so the purge sees every row.
    # The commit also releases SQLite's write lock for the engines' sessions.
    await concepts.users.delete(db, user_id)
    await db.commit()
    await concepts.friending.forget_user(user_id)
    await concepts.following.forget_user(user_id)
    concepts.sessions.end(token)
    return MessageResponse(msg="Deleted user!")


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Start a session",
)
async def log_in(
    body: LoginRequest,
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> LoginResponse:
    user_id = await concepts.users.resolve_identity_by_handle(db, body.username)
    token = concepts.sessions.start(user_id)
    logger.info("User %s logged in", body.username)
    return LoginResponse(msg="Logged in!", access_token=token)


@router.post(
    "/logout",
    response_model=MessageResponse,
    responses={401: {"model": ErrorResponse}},
    summary="End the current session",
)
async def log_out(
    token: Optional[str] = Depends(get_session_token),
    concepts: Concepts = Depends(get_concepts),
) -> MessageResponse:
    concepts.sessions.end(token)
    return MessageResponse(msg="Logged out!")
