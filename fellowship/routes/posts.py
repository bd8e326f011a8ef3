"""
Fellowship Backend — Post Routes
==================================

What:  Post listing (optionally by author username) and author-only edits.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fellowship.concepts import Concepts
from fellowship.database import get_db_session
from fellowship.dependencies import get_concepts, get_current_user_id
from fellowship.models.post import Post
from fellowship.schemas.common import ErrorResponse, MessageResponse
from fellowship.schemas.post import (
    CreatePostRequest,
    CreatePostResponse,
    PostOptions,
    PostResponse,
    UpdatePostRequest,
)

router = APIRouter(tags=["Posts"])


async def _present(db: AsyncSession, concepts: Concepts, posts: List[Post]) -> List[PostResponse]:
    authors = await concepts.users.ids_to_usernames(db, [p.author_id for p in posts])
    return [
        PostResponse(
            id=post.id,
            author=author,
            content=post.content,
            options=PostOptions(**post.options) if post.options else None,
            created_at=post.created_at,
            updated_at=post.updated_at,
        )
        for post, author in zip(posts, authors)
    ]


def _options_dict(options: Optional[PostOptions]) -> Optional[dict]:
    return options.model_dump(exclude_none=True) if options is not None else None


@router.get("/posts", response_model=List[PostResponse], summary="List posts, newest first")
async def get_posts(
    author: Optional[str] = Query(default=None, description="Only posts by this username"),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> List[PostResponse]:
    if author:
        author_id = await concepts.users.resolve_identity_by_handle(db, author)
        posts = await concepts.posts.get_by_author(db, author_id)
    else:
        posts = await concepts.posts.get_posts(db)
    return await _present(db, concepts, posts)


@router.post(
    "/posts",
    response_model=CreatePostResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 401: {"model": ErrorResponse}},
)
async def create_post(
    body: CreatePostRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> CreatePostResponse:
    post = await concepts.posts.create(db, user_id, body.content, _options_dict(body.options))
    (presented,) = await _present(db, concepts, [post])
    return CreatePostResponse(msg="Post successfully created!", post=presented)


@router.patch(
    "/posts/{post_id}",
    response_model=PostResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def update_post(
    post_id: uuid.UUID,
    body: UpdatePostRequest,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> PostResponse:
    await concepts.posts.assert_author_is_user(db, post_id, user_id)
    post = await concepts.posts.update(db, post_id, body.content, _options_dict(body.options))
    (presented,) = await _present(db, concepts, [post])
    return presented


@router.delete(
    "/posts/{post_id}",
    response_model=MessageResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
async def delete_post(
    post_id: uuid.UUID,
    user_id: uuid.UUID = Depends(get_current_user_id),
    concepts: Concepts = Depends(get_concepts),
    db: AsyncSession = Depends(get_db_session),
) -> MessageResponse:
    await concepts.posts.assert_author_is_user(db, post_id, user_id)
    await concepts.posts.delete(db, post_id)
    return MessageResponse(msg="Deleted post successfully!")
