"""
Fellowship Backend — User and Post Service Tests
==================================================

What:  UserService and PostService against a real SQLite session.

What we test:
    ✅ Registration validates and enforces unique usernames
    ✅ ids_to_usernames keeps order and marks deleted accounts
    ✅ Renaming and deletion (posts go with the account)
    ✅ Post CRUD and the author check
"""

from uuid import uuid4

import pytest
import pytest_asyncio

from fellowship.exceptions import (
    PostAuthorMismatchError,
    PostNotFoundError,
    UsernameTakenError,
    UserNotFoundError,
    ValidationError,
)
from fellowship.services.posts import PostService
from fellowship.services.users import DELETED_USER, UserService


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


class TestUserService:

    def setup_method(self):
        self.users = UserService()

    @pytest.mark.asyncio
    async def test_create_and_lookup(self, db):
        user = await self.users.create(db, "  alice ")

        assert user.username == "alice"
        assert (await self.users.get_user_by_username(db, "alice")).id == user.id
        assert await self.users.resolve_identity_by_handle(db, "alice") == user.id

    @pytest.mark.asyncio
    async def test_blank_username_rejected(self, db):
        with pytest.raises(ValidationError) as exc_info:
            await self.users.create(db, "   ")
        assert exc_info.value.field == "username"

    @pytest.mark.asyncio
    async def test_duplicate_username_rejected(self, db):
        await self.users.create(db, "alice")
        with pytest.raises(UsernameTakenError):
            await self.users.create(db, "alice")

    @pytest.mark.asyncio
    async def test_unknown_username_not_found(self, db):
        with pytest.raises(UserNotFoundError):
            await self.users.resolve_identity_by_handle(db, "nobody")

    @pytest.mark.asyncio
    async def test_get_users_sorted_by_username(self, db):
        for name in ("carol", "alice", "bob"):
            await self.users.create(db, name)
        assert [u.username for u in await self.users.get_users(db)] == ["alice", "bob", "carol"]

    @pytest.mark.asyncio
    async def test_ids_to_usernames_preserves_order_and_marks_missing(self, db):
        alice = await self.users.create(db, "alice")
        bob = await self.users.create(db, "bob")
        ghost = uuid4()

        names = await self.users.ids_to_usernames(db, [bob.id, ghost, alice.id])

        assert names == ["bob", DELETED_USER, "alice"]
        assert await self.users.ids_to_usernames(db, []) == []

    @pytest.mark.asyncio
    async def test_update_username(self, db):
        alice = await self.users.create(db, "alice")
        await self.users.create(db, "bob")

        renamed = await self.users.update_username(db, alice.id, "alicia")
        assert renamed.username == "alicia"
        with pytest.raises(UsernameTakenError):
            await self.users.update_username(db, alice.id, "bob")

    @pytest.mark.asyncio
    async def test_delete_removes_user_and_posts(self, db):
        alice = await self.users.create(db, "alice")
        posts = PostService()
        await posts.create(db, alice.id, "hello")

        await self.users.delete(db, alice.id)

        with pytest.raises(UserNotFoundError):
            await self.users.get_user_by_id(db, alice.id)
        assert await posts.get_by_author(db, alice.id) == []


class TestPostService:

    def setup_method(self):
        self.users = UserService()
        self.posts = PostService()

    @pytest.mark.asyncio
    async def test_create_and_list(self, db):
        alice = await self.users.create(db, "alice")
        bob = await self.users.create(db, "bob")
        await self.posts.create(db, alice.id, "first", {"background_color": "#fff"})
        await self.posts.create(db, bob.id, "second")

        assert len(await self.posts.get_posts(db)) == 2
        mine = await self.posts.get_by_author(db, alice.id)
        assert [p.content for p in mine] == ["first"]
        assert mine[0].options == {"background_color": "#fff"}

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self, db):
        alice = await self.users.create(db, "alice")
        with pytest.raises(ValidationError):
            await self.posts.create(db, alice.id, "  ")

    @pytest.mark.asyncio
    async def test_partial_update(self, db):
        alice = await self.users.create(db, "alice")
        post = await self.posts.create(db, alice.id, "draft", {"background_color": "#000"})

        updated = await self.posts.update(db, post.id, content="final")

        assert updated.content == "final"
        assert updated.options == {"background_color": "#000"}

    @pytest.mark.asyncio
    async def test_author_check(self, db):
        alice = await self.users.create(db, "alice")
        bob = await self.users.create(db, "bob")
        post = await self.posts.create(db, alice.id, "mine")

        await self.posts.assert_author_is_user(db, post.id, alice.id)
        with pytest.raises(PostAuthorMismatchError):
            await self.posts.assert_author_is_user(db, post.id, bob.id)

    @pytest.mark.asyncio
    async def test_delete_then_missing(self, db):
        alice = await self.users.create(db, "alice")
        post = await self.posts.create(db, alice.id, "bye")

        await self.posts.delete(db, post.id)
        with pytest.raises(PostNotFoundError):
            await self.posts.get_post(db, post.id)
