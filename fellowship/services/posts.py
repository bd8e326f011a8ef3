"""
Fellowship Backend — Post Service (Posting concept)
=====================================================

What:  Create, list, edit and delete posts, and the author check the routes
       run before any edit.
"""

import logging
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from fellowship.exceptions import PostAuthorMismatchError, PostNotFoundError, ValidationError
from fellowship.models.post import Post

logger = logging.getLogger(__name__)


class PostService:

    async def create(
        self,
        db: AsyncSession,
        author_id: uuid.UUID,
        content: str,
        options: Optional[Dict[str, Any]] = None,
    ) -> Post:
        if not content or not content.strip():
            raise ValidationError(detail="Post content must be non-empty!", field="content")

        post = Post(author_id=author_id, content=content, options=options)
        db.add(post)
        await db.flush()
        logger.info("Post %s created by %s", post.id, author_id)
        return post

    async def get_posts(self, db: AsyncSession) -> List[Post]:
        """All posts, newest first."""
        result = await db.execute(select(Post).order_by(desc(Post.created_at)))
        return list(result.scalars().all())

    async def get_by_author(self, db: AsyncSession, author_id: uuid.UUID) -> List[Post]:
        result = await db.execute(
            select(Post).where(Post.author_id == author_id).order_by(desc(Post.created_at))
        )
        return list(result.scalars().all())

    async def get_post(self, db: AsyncSession, post_id: uuid.UUID) -> Post:
        post = await db.get(Post, post_id)
        if post is None:
            raise PostNotFoundError(post_id=post_id)
        return post

    async def update(
        self,
        db: AsyncSession,
        post_id: uuid.UUID,
        content: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Post:
        """Partial update: only the arguments that are not None change."""
        post = await self.get_post(db, post_id)
        if content is not None:
            if not content.strip():
                raise ValidationError(detail="Post content must be non-empty!", field="content")
            post.content = content
        if options is not None:
            post.options = options
        await db.flush()
        return post

    async def delete(self, db: AsyncSession, post_id: uuid.UUID) -> None:
        post = await self.get_post(db, post_id)
        await db.delete(post)
        await db.flush()
        logger.info("Post %s deleted", post_id)

    async def assert_author_is_user(
        self, db: AsyncSession, post_id: uuid.UUID, user_id: uuid.UUID
    ) -> None:
        post = await self.get_post(db, post_id)
        if post.author_id != user_id:
            raise PostAuthorMismatchError(user=user_id, post_id=post_id)
