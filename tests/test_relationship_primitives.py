"""
Fellowship Backend — Shared Primitive Tests
=============================================

What:  PairLocks, pair keys and the ErrorKind taxonomy, without a database.
"""

import asyncio
from uuid import uuid4

import pytest

from fellowship.exceptions import (
    AlreadyRequestedError,
    ErrorKind,
    FellowshipError,
    NotFoundError,
    RequestNotFoundError,
    StorageUnavailableError,
    ValidationError,
)
from fellowship.models.relationship import unordered_pair_key
from fellowship.services.relationships import PairLocks, ordered_pair_key


class TestPairKeys:

    def test_unordered_key_ignores_argument_order(self):
        a, b = uuid4(), uuid4()
        assert unordered_pair_key(a, b) == unordered_pair_key(b, a)

    def test_ordered_key_respects_direction(self):
        a, b = uuid4(), uuid4()
        assert ordered_pair_key(a, b) != ordered_pair_key(b, a)


class TestPairLocks:

    @pytest.mark.asyncio
    async def test_entries_released_after_use(self):
        locks = PairLocks()
        async with locks.hold("k"):
            assert locks.is_locked("k")
            assert len(locks) == 1
        assert len(locks) == 0
        assert not locks.is_locked("k")

    @pytest.mark.asyncio
    async def test_same_key_serializes(self):
        locks = PairLocks()
        events = []

        async def worker(name: str):
            async with locks.hold("k"):
                events.append(f"{name}-in")
                await asyncio.sleep(0.01)
                events.append(f"{name}-out")

        await asyncio.gather(worker("a"), worker("b"))

        assert events in (
            ["a-in", "a-out", "b-in", "b-out"],
            ["b-in", "b-out", "a-in", "a-out"],
        )
        assert len(locks) == 0

    @pytest.mark.asyncio
    async def test_different_keys_do_not_block(self):
        locks = PairLocks()
        async with locks.hold("x"):
            await asyncio.wait_for(self._enter(locks, "y"), timeout=1)

    @pytest.mark.asyncio
    async def test_entry_released_when_waiter_is_cancelled(self):
        locks = PairLocks()
        async with locks.hold("k"):
            waiter = asyncio.create_task(self._enter(locks, "k"))
            await asyncio.sleep(0)
            waiter.cancel()
            with pytest.raises(asyncio.CancelledError):
                await waiter
        assert len(locks) == 0

    @staticmethod
    async def _enter(locks: PairLocks, key: str) -> None:
        async with locks.hold(key):
            pass


class TestErrorKinds:

    def test_message_rendered_from_params(self):
        err = AlreadyRequestedError(from_id="alice", to_id="bob")
        assert err.kind is ErrorKind.ALREADY_REQUESTED
        assert err.status_code == 409
        assert "alice" in err.message and "bob" in err.message

    def test_missing_params_fall_back_to_template(self):
        err = RequestNotFoundError()
        assert err.message == ErrorKind.REQUEST_NOT_FOUND.template

    def test_family_membership(self):
        err = RequestNotFoundError(from_id="a", to_id="b")
        assert isinstance(err, NotFoundError)
        assert isinstance(err, FellowshipError)
        assert err.status_code == 404

    def test_validation_error_carries_field(self):
        err = ValidationError(detail="Username must be non-empty!", field="username")
        assert err.message == "Username must be non-empty!"
        assert err.field == "username"
        assert err.status_code == 400

    def test_storage_unavailable_is_503_with_retry_after(self):
        err = StorageUnavailableError(retry_after=9, context={"operation": "send_request"})
        assert err.status_code == 503
        assert err.retry_after == 9
        assert err.context == {"operation": "send_request"}
