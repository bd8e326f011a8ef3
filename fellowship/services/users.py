"""
Fellowship Backend — User Service (Authentication concept)
============================================================

What:  The user directory: registration, lookup by id or username, renaming,
       deletion and the username ↔ identity translation the routes need.
How:   Stateless; every method receives the request's AsyncSession, and
       commit/rollback is left to get_db_session.

Credentials are out of scope: users are identified by username alone.
"""

import logging
import uuid
from typing import Dict, Iterable, List

from sqlalchemy import delete as sql_delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from fellowship.exceptions import UsernameTakenError, UserNotFoundError, ValidationError
from fellowship.models.post import Post
from fellowship.models.user import User

logger = logging.getLogger(__name__)

DELETED_USER = "DELETED_USER"


class UserService:
    """
    Business logic for the `users` table.

    Error Handling:
        Missing users raise UserNotFoundError (404). Duplicate usernames
        raise UsernameTakenError (409), including when the unique index
        rejects a concurrent registration.
    """

    @staticmethod
    def _clean_username(username: str) -> str:
        cleaned = (username or "").strip()
        if not cleaned:
            raise ValidationError(detail="Username must be non-empty!", field="username")
        return cleaned

    async def create(self, db: AsyncSession, username: str) -> User:
        username = self._clean_username(username)
        await self._assert_username_unique(db, username)

        user = User(username=username)
        db.add(user)
        try:
            await db.flush()
        except IntegrityError as e:
            raise UsernameTakenError(username=username) from e

        logger.info("User created: %s (%s)", username, user.id)
        return user

    async def get_users(self, db: AsyncSession) -> List[User]:
        result = await db.execute(select(User).order_by(User.username))
        return list(result.scalars().all())

    async def get_user_by_id(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user=user_id)
        return user

    async def get_user_by_username(self, db: AsyncSession, username: str) -> User:
        result = await db.execute(select(User).where(User.username == username))
        user = result.scalar_one_or_none()
        if user is None:
            raise UserNotFoundError(user=username)
        return user

    async def resolve_identity_by_handle(self, db: AsyncSession, username: str) -> uuid.UUID:
        """Username → identity, the only translation the engines rely on."""
        return (await self.get_user_by_username(db, username)).id

    async def ids_to_usernames(self, db: AsyncSession, ids: Iterable[uuid.UUID]) -> List[str]:
        """
        Map identities to usernames, preserving input order.

        Identities with no user row (deleted accounts) map to DELETED_USER.
        """
        ids = list(ids)
        if not ids:
            return []
        result = await db.execute(select(User.id, User.username).where(User.id.in_(ids)))
        by_id: Dict[uuid.UUID, str] = {row.id: row.username for row in result}
        return [by_id.get(i, DELETED_USER) for i in ids]

    async def update_username(self, db: AsyncSession, user_id: uuid.UUID, username: str) -> User:
        username = self._clean_username(username)
        user = await self.get_user_by_id(db, user_id)
        if user.username == username:
            return user
        await self._assert_username_unique(db, username)

        old = user.username
        user.username = username
        try:
            await db.flush()
        except IntegrityError as e:
            raise UsernameTakenError(username=username) from e
        logger.info("User %s renamed: %s -> %s", user_id, old, username)
        return user

    async def delete(self, db: AsyncSession, user_id: uuid.UUID) -> None:
        """Delete the account and its posts (SQLite does not enforce ON DELETE CASCADE)."""
        user = await self.get_user_by_id(db, user_id)
        await db.execute(sql_delete(Post).where(Post.author_id == user_id))
        await db.delete(user)
        await db.flush()
        logger.info("User deleted: %s", user_id)

    async def _assert_username_unique(self, db: AsyncSession, username: str) -> None:
        result = await db.execute(select(User.id).where(User.username == username))
        if result.scalar_one_or_none() is not None:
            raise UsernameTakenError(username=username)
