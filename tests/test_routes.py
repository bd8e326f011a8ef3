"""
Fellowship Backend — API Endpoint Tests
=========================================

What:  End-to-end flows through create_app() with HTTPX ASGITransport and a
       per-test SQLite database.

What we test:
    ✅ Registration, login, logout and account deletion
    ✅ Friend request flow and the "from"/"to" response shape
    ✅ Follow flow and the camelCase count/status fields
    ✅ Posts with author-only edits
    ✅ Error envelope: code, message, request id, status per ErrorKind
    ✅ 503 with Retry-After when the relationship store fails
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from fellowship.exceptions import StorageUnavailableError
from fellowship.main import create_app
from fellowship.models.user import User
from fellowship.services.friending import FriendingEngine


class TestHealth:

    @pytest.mark.asyncio
    async def test_health_reports_database(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, test_client):
        response = await test_client.get("/users", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    @pytest.mark.asyncio
    async def test_unexpected_error_keeps_request_id(self, session_factory):
        app = create_app(session_factory=session_factory)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            response = await client.get("/boom", headers={"X-Request-ID": "req500"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "internal_server_error"
        assert body["request_id"] == "req500"
        assert "kaboom" not in body["message"]
        assert response.headers["X-Request-ID"] == "req500"


class TestUsersAndSessions:

    @pytest.mark.asyncio
    async def test_register_login_session(self, test_client, signup):
        headers = await signup("alice")

        response = await test_client.get("/session", headers=headers)
        assert response.status_code == 200
        assert response.json()["username"] == "alice"

        response = await test_client.get("/users/alice")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_register_while_logged_in_forbidden(self, test_client, signup):
        headers = await signup("alice")
        response = await test_client.post("/users", json={"username": "bob"}, headers=headers)
        assert response.status_code == 403
        assert response.json()["error"] == "already_authenticated"

    @pytest.mark.asyncio
    async def test_duplicate_username_conflict(self, test_client, signup):
        await signup("alice")
        response = await test_client.post("/users", json={"username": "alice"})
        assert response.status_code == 409
        assert response.json()["error"] == "username_taken"

    @pytest.mark.asyncio
    async def test_login_unknown_user(self, test_client):
        response = await test_client.post("/login", json={"username": "ghost"})
        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "user_not_found"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_missing_token_is_401(self, test_client):
        response = await test_client.get("/friends")
        assert response.status_code == 401
        assert response.json()["error"] == "not_authenticated"

    @pytest.mark.asyncio
    async def test_logout_revokes_token(self, test_client, signup):
        headers = await signup("alice")
        response = await test_client.post("/logout", headers=headers)
        assert response.json()["msg"] == "Logged out!"

        response = await test_client.get("/session", headers=headers)
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_rename(self, test_client, signup):
        headers = await signup("alice")
        response = await test_client.patch(
            "/users/username", json={"username": "alicia"}, headers=headers
        )
        assert response.status_code == 200
        assert response.json()["username"] == "alicia"
        assert (await test_client.get("/users/alice")).status_code == 404

    @pytest.mark.asyncio
    async def test_delete_account_purges_relationships(self, test_client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await test_client.post("/friend/request", json={"to": "bob"}, headers=alice)
        await test_client.put("/friend/accept/alice", headers=bob)
        await test_client.post("/follow", json={"followee": "alice"}, headers=bob)

        response = await test_client.delete("/users", headers=alice)
        assert response.status_code == 200
        assert response.json()["msg"] == "Deleted user!"

        assert (await test_client.get("/session", headers=alice)).status_code == 401
        assert (await test_client.get("/friends", headers=bob)).json() == []
        assert (await test_client.get("/following/bob")).json()["following"] == []

    @pytest.mark.asyncio
    async def test_account_row_is_gone_before_relationships_are_purged(
        self, test_client, signup, session_factory
    ):
        """A send resolving the deleted user during the purge must already 404."""
        alice = await signup("alice")
        bob = await signup("bob")
        racing = []
        purge = FriendingEngine.forget_user

        async def forget_after_racing_send(engine, user):
            async with session_factory() as session:
                racing.append(await session.get(User, user))
            response = await test_client.post("/friend/request", json={"to": "alice"}, headers=bob)
            racing.append(response.status_code)
            await purge(engine, user)

        with patch.object(FriendingEngine, "forget_user", forget_after_racing_send):
            response = await test_client.delete("/users", headers=alice)

        assert response.status_code == 200
        assert racing == [None, 404]
        assert (await test_client.get("/friend/requests", headers=bob)).json()["outgoing"] == []


class TestFriendRoutes:

    @pytest.mark.asyncio
    async def test_request_accept_flow(self, test_client, signup):
        alice = await signup("alice")
        bob = await signup("bob")

        response = await test_client.post("/friend/request", json={"to": "bob"}, headers=alice)
        assert response.status_code == 201
        body = response.json()
        assert body["msg"] == "Sent request!"
        assert body["request"]["from"] == "alice"
        assert body["request"]["to"] == "bob"
        assert body["request"]["status"] == "pending"

        inbox = (await test_client.get("/friend/requests", headers=bob)).json()
        assert [r["from"] for r in inbox["incoming"]] == ["alice"]
        assert inbox["outgoing"] == []

        response = await test_client.put("/friend/accept/alice", headers=bob)
        assert response.json()["msg"] == "Accepted request!"

        assert (await test_client.get("/friends", headers=alice)).json() == ["bob"]
        assert (await test_client.get("/friends", headers=bob)).json() == ["alice"]

    @pytest.mark.asyncio
    async def test_reverse_request_conflicts(self, test_client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await test_client.post("/friend/request", json={"to": "bob"}, headers=alice)

        response = await test_client.post("/friend/request", json={"to": "alice"}, headers=bob)
        assert response.status_code == 409
        assert response.json()["error"] == "already_requested"

    @pytest.mark.asyncio
    async def test_request_to_self_is_400(self, test_client, signup):
        alice = await signup("alice")
        response = await test_client.post("/friend/request", json={"to": "alice"}, headers=alice)
        assert response.status_code == 400
        assert response.json()["error"] == "self_relation"

    @pytest.mark.asyncio
    async def test_reject_then_repeat_reject(self, test_client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await test_client.post("/friend/request", json={"to": "bob"}, headers=alice)

        response = await test_client.put("/friend/reject/alice", headers=bob)
        assert response.json()["msg"] == "Rejected request!"

        response = await test_client.put("/friend/reject/alice", headers=bob)
        assert response.status_code == 404
        assert response.json()["error"] == "request_not_found"

    @pytest.mark.asyncio
    async def test_unfriend(self, test_client, signup):
        alice = await signup("alice")
        bob = await signup("bob")
        await test_client.post("/friend/request", json={"to": "bob"}, headers=alice)
        await test_client.put("/friend/accept/alice", headers=bob)

        response = await test_client.delete("/friends/alice", headers=bob)
        assert response.json()["msg"] == "Unfriended!"

        response = await test_client.delete("/friends/alice", headers=bob)
        assert response.status_code == 404
        assert response.json()["error"] == "friend_not_found"

    @pytest.mark.asyncio
    async def test_store_failure_is_503_with_retry_after(self, test_client, signup):
        alice = await signup("alice")
        await signup("bob")

        with patch.object(
            FriendingEngine,
            "send_request",
            AsyncMock(side_effect=StorageUnavailableError(retry_after=3)),
        ):
            response = await test_client.post("/friend/request", json={"to": "bob"}, headers=alice)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "3"
        assert response.json()["error"] == "storage_unavailable"


class TestFollowRoutes:

    @pytest.mark.asyncio
    async def test_follow_flow(self, test_client, signup):
        alice = await signup("alice")
        await signup("bob")

        response = await test_client.post("/follow", json={"followee": "bob"}, headers=alice)
        assert response.status_code == 201
        assert response.json()["msg"] == "Now following bob!"

        assert (await test_client.get("/followers/bob")).json() == {"followers": ["alice"]}
        assert (await test_client.get("/following/alice")).json() == {"following": ["bob"]}
        assert (await test_client.get("/followers/count/bob")).json() == {"followerCount": 1}

        status = await test_client.get("/follow/status/bob", headers=alice)
        assert status.json() == {"isFollowing": True}

        response = await test_client.delete("/follow/bob", headers=alice)
        assert response.json()["msg"] == "Unfollowed bob!"
        assert (await test_client.get("/followers/count/bob")).json() == {"followerCount": 0}

    @pytest.mark.asyncio
    async def test_follow_errors(self, test_client, signup):
        alice = await signup("alice")
        await signup("bob")

        response = await test_client.post("/follow", json={"followee": "alice"}, headers=alice)
        assert response.json()["error"] == "self_follow"

        await test_client.post("/follow", json={"followee": "bob"}, headers=alice)
        response = await test_client.post("/follow", json={"followee": "bob"}, headers=alice)
        assert response.status_code == 409
        assert response.json()["error"] == "already_following"

        await test_client.delete("/follow/bob", headers=alice)
        response = await test_client.delete("/follow/bob", headers=alice)
        assert response.status_code == 404
        assert response.json()["error"] == "not_following"

    @pytest.mark.asyncio
    async def test_followers_of_unknown_user(self, test_client):
        response = await test_client.get("/followers/ghost")
        assert response.status_code == 404


class TestPostRoutes:

    @pytest.mark.asyncio
    async def test_post_lifecycle(self, test_client, signup):
        alice = await signup("alice")
        bob = await signup("bob")

        response = await test_client.post(
            "/posts",
            json={"content": "hello", "options": {"background_color": "#abcdef"}},
            headers=alice,
        )
        assert response.status_code == 201
        post = response.json()["post"]
        assert post["author"] == "alice"
        assert post["options"] == {"background_color": "#abcdef"}

        listed = (await test_client.get("/posts", params={"author": "alice"})).json()
        assert [p["id"] for p in listed] == [post["id"]]

        response = await test_client.patch(
            f"/posts/{post['id']}", json={"content": "hijacked"}, headers=bob
        )
        assert response.status_code == 403
        assert response.json()["error"] == "post_author_mismatch"

        response = await test_client.patch(
            f"/posts/{post['id']}", json={"content": "edited"}, headers=alice
        )
        assert response.json()["content"] == "edited"

        response = await test_client.delete(f"/posts/{post['id']}", headers=alice)
        assert response.json()["msg"] == "Deleted post successfully!"
        assert (await test_client.get("/posts")).json() == []
