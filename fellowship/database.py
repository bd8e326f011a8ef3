"""
Fellowship Backend — Database Session Management
==================================================

What:  Async SQLAlchemy engine, session factory, declarative base, the
       per-request session dependency and the startup connectivity probe.
How:   The engine and factory built here are the production defaults;
       create_app() may be handed a different factory (tests do this) and
       stores whichever one it uses on app.state.

Two transaction styles coexist:
    - CRUD concepts (users, posts) share one session per HTTP request through
      get_db_session(): commit on success, rollback on error.
    - The relationship engines open their own short transaction per operation
      (see services/relationships.py) so each transition commits or rolls
      back as a unit regardless of the request around it.
"""

import logging
from typing import AsyncGenerator, Optional

from fastapi import Request
from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from fellowship.config import settings

logger = logging.getLogger(__name__)


def build_engine(database_url: Optional[str] = None) -> AsyncEngine:
    """
    Create an async engine for the given URL (defaults to settings).

    SQLite does not accept queue-pool sizing arguments, so those are only
    passed for server databases.
    """
    url = database_url or settings.database_url
    kwargs = {"echo": settings.log_level == "DEBUG"}
    if not url.startswith("sqlite"):
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_pre_ping=settings.db_pool_pre_ping,
            pool_recycle=3600,
        )
    return create_async_engine(url, **kwargs)


def build_session_factory(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False keeps ORM attributes readable after the
    # engine's transaction has closed
    return async_sessionmaker(bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine()
async_session_factory = build_session_factory(engine)


class Base(DeclarativeBase):
    """Base class for all ORM models; its metadata drives Alembic."""
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides one database session per request.

    Commits when the handler returns, rolls back and re-raises when it fails.
    The factory comes from app.state so tests can swap the database.
    """
    factory = getattr(request.app.state, "session_factory", async_session_factory)
    async with factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
@retry(
    stop=stop_after_attempt(settings.db_connect_attempts),
    wait=wait_exponential_jitter(
        initial=settings.db_connect_min_wait, max=settings.db_connect_max_wait
    ),
    retry=retry_if_exception_type((OperationalError, DBAPIError, OSError)),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
async def wait_for_database(bind: AsyncEngine) -> None:
    """
    Block until the database answers SELECT 1.

    Retries connection failures with exponential backoff and jitter; the last
    failure is re-raised once the attempts are exhausted.
    """
    async with bind.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def create_tables(bind: AsyncEngine) -> None:
    """Create every table known to Base.metadata that does not exist yet."""
    # Model modules register their tables on import
    import fellowship.models  # noqa: F401

    async with bind.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine(bind: Optional[AsyncEngine] = None) -> None:
    """Close every pooled connection (called on shutdown)."""
    await (bind or engine).dispose()
