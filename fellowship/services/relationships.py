"""
Fellowship Backend — Shared Relationship Engine Primitives
============================================================

What:  The pieces FriendingEngine and FollowingEngine share:
       - PairLocks: in-process asyncio locks keyed by identity pair
       - RelationshipEngine: runs one operation as a guarded unit of work
How:   A mutating operation acquires its pair lock, opens a session, begins a
       transaction, performs check-then-act through repositories, commits and
       releases, all under a deadline.

Failure translation (inside a unit of work):
    FellowshipError          → propagated unchanged (precondition failures)
    IntegrityError           → the operation's conflict error (another process
                               won the race past our in-process lock)
    SQLAlchemyError, OSError → StorageUnavailableError
    deadline exceeded        → StorageUnavailableError

Any of these leaves the store untouched: `session.begin()` rolls the whole
transaction back when the block exits with an exception, cancellation
included.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator, Awaitable, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fellowship.config import settings
from fellowship.exceptions import FellowshipError, StorageUnavailableError
from fellowship.models.relationship import unordered_pair_key

logger = logging.getLogger(__name__)

T = TypeVar("T")


def ordered_pair_key(a: uuid.UUID, b: uuid.UUID) -> str:
    return f"{a}>{b}"


class _LockEntry:
    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.holders = 0


class PairLocks:
    """
    Registry of asyncio locks keyed by a pair key string.

    Entries are reference-counted: a lock exists only while some coroutine
    holds or waits for it, so the registry stays proportional to in-flight
    operations rather than to the number of pairs ever touched.

    Single event loop only. Multiple worker processes each have their own
    registry; database uniqueness covers that case.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, _LockEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def is_locked(self, key: str) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.lock.locked()

    @asynccontextmanager
    async def hold(self, key: str) -> AsyncIterator[None]:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._entries[key] = _LockEntry()
        entry.holders += 1
        try:
            async with entry.lock:
                yield
        finally:
            entry.holders -= 1
            if entry.holders == 0:
                del self._entries[key]


class RelationshipEngine:
    """
    Base class for the two relationship engines.

    Args:
        session_factory: Produces sessions on the relationship store
        locks:           Pair lock registry (one per engine instance)
        op_timeout:      Deadline in seconds for one operation
        retry_after:     Seconds advertised to callers on StorageUnavailableError
    """

    #: Prefix used in log lines ("friending", "following")
    name = "relationships"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        locks: Optional[PairLocks] = None,
        op_timeout: Optional[float] = None,
        retry_after: Optional[int] = None,
    ):
        self._session_factory = session_factory
        self._locks = locks if locks is not None else PairLocks()
        self._op_timeout = op_timeout if op_timeout is not None else settings.relationship_op_timeout
        self._retry_after = retry_after if retry_after is not None else settings.storage_retry_after

    @property
    def locks(self) -> PairLocks:
        return self._locks

    # ── Lock keys ─────────────────────────────────────────────────────────
    @staticmethod
    def unordered_key(a: uuid.UUID, b: uuid.UUID) -> str:
        return unordered_pair_key(a, b)

    @staticmethod
    def ordered_key(a: uuid.UUID, b: uuid.UUID) -> str:
        return ordered_pair_key(a, b)

    # ── Unit of work ──────────────────────────────────────────────────────
    @asynccontextmanager
    async def _unit_of_work(
        self,
        operation: str,
        lock_keys: List[str],
        on_conflict: Optional[Callable[[], FellowshipError]] = None,
    ) -> AsyncIterator[AsyncSession]:
        """
        Hold the given pair locks and a transaction for the enclosed block.

        Keys are acquired in sorted order so two operations sharing keys can
        never deadlock.
        """
        async with self._hold_all(sorted(set(lock_keys))):
            try:
                async with self._session_factory() as session:
                    async with session.begin():
                        yield session
            except FellowshipError:
                raise
            except IntegrityError as e:
                if on_conflict is None:
                    raise self._unavailable(operation, e) from e
                conflict = on_conflict()
                logger.info(
                    "%s.%s lost a uniqueness race: %s", self.name, operation, conflict.message
                )
                raise conflict from e
            except (SQLAlchemyError, OSError) as e:
                raise self._unavailable(operation, e) from e

    @asynccontextmanager
    async def _read_session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Lock-free transaction for side-effect-free queries."""
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    yield session
        except FellowshipError:
            raise
        except (SQLAlchemyError, OSError) as e:
            raise self._unavailable(operation, e) from e

    @asynccontextmanager
    async def _hold_all(self, keys: List[str]) -> AsyncIterator[None]:
        if not keys:
            yield
            return
        async with self._locks.hold(keys[0]):
            async with self._hold_all(keys[1:]):
                yield

    async def _run(self, operation: str, coro: Awaitable[T]) -> T:
        """Await `coro` under the operation deadline."""
        try:
            return await asyncio.wait_for(coro, timeout=self._op_timeout)
        except asyncio.TimeoutError as e:
            raise self._unavailable(operation, e) from e

    def _unavailable(self, operation: str, error: BaseException) -> StorageUnavailableError:
        logger.error(
            "%s.%s failed against the store: %s: %s",
            self.name, operation, type(error).__name__, error,
        )
        return StorageUnavailableError(
            retry_after=self._retry_after,
            context={
                "engine": self.name,
                "operation": operation,
                "error_type": type(error).__name__,
            },
        )
