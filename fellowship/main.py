"""
Fellowship Backend — FastAPI Application Factory
==================================================

What:  Builds the FastAPI application: logging, lifespan, middleware, the
       concept container, exception handlers and routers.
How:   create_app() returns a configured instance; the module-level `app` is
       what uvicorn imports (uvicorn fellowship.main:app).

    Middleware Chain:  Rate Limit → Request ID → Access Log → GZip → CORS
    Routers:           users, posts, friends, follows, health
    Error Handling:    FellowshipError → status from its ErrorKind
                       Exception       → 500 (details logged only)

Lifecycle:
    Startup:  logging → config validation → wait for database (tenacity)
              → optional table creation
    Shutdown: dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from fellowship import __version__
from fellowship.concepts import build_concepts
from fellowship.config import settings
from fellowship.database import (
    async_session_factory,
    create_tables,
    dispose_engine,
    wait_for_database,
)
from fellowship.exceptions import FellowshipError, StorageUnavailableError
from fellowship.middleware.logging import RequestLoggingMiddleware
from fellowship.middleware.rate_limit import RateLimitMiddleware
from fellowship.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIDMiddleware,
    request_id_var,
)
from fellowship.routes import follows, friends, health, posts, users
from fellowship.services.sessioning import SessionIssuer

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """Configure the root logger once: level from settings, stdout handler."""
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("Fellowship backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    bind = app.state.session_factory.kw["bind"]
    try:
        await wait_for_database(bind)
        logger.info("Database reachable")
        if settings.db_auto_create:
            await create_tables(bind)
            logger.info("Database tables ensured")
    except Exception as e:
        # Keep serving: /health reports the outage until the database returns
        logger.error("Database unavailable at startup: %s", str(e))

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("Fellowship backend shutting down...")
    await dispose_engine(bind)
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def register_exception_handlers(app: FastAPI) -> None:
    """
    One handler for every FellowshipError, dispatching on its ErrorKind, plus
    a catch-all that never leaks internals.
    """

    @app.exception_handler(FellowshipError)
    async def handle_fellowship_error(request: Request, exc: FellowshipError):
        rid = request_id_var.get("")
        kind = exc.kind
        headers = {}
        if kind.status_code >= 500:
            logger.error("[%s] %s: %s | Context: %s", rid, kind.code, exc.message, exc.context)
        else:
            logger.info("[%s] %s: %s", rid, kind.code, exc.message)
        if isinstance(exc, StorageUnavailableError):
            headers["Retry-After"] = str(exc.retry_after)

        content = {"error": kind.code, "message": exc.message, "request_id": rid}
        if getattr(exc, "field", None):
            content["details"] = {"field": exc.field}
        return JSONResponse(status_code=kind.status_code, content=content, headers=headers)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        # Runs in ServerErrorMiddleware, outside RequestIDMiddleware, where
        # the ContextVar has already been reset; the scope state survives
        rid = getattr(request.state, "request_id", "")
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": rid,
            },
            headers={REQUEST_ID_HEADER: rid} if rid else None,
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    session_issuer: Optional[SessionIssuer] = None,
) -> FastAPI:
    """
    Assemble the application.

    Args:
        session_factory: Database to run against (defaults to settings.database_url)
        session_issuer:  Token issuer (defaults to one built from settings)
    """
    app = FastAPI(
        title="Fellowship API",
        description="Social backend: users, posts, friend requests and follows.",
        version=__version__,
        lifespan=lifespan,
    )

    factory = session_factory or async_session_factory
    app.state.session_factory = factory
    app.state.concepts = build_concepts(factory, sessions=session_issuer)

    # Last added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(users.router)
    app.include_router(posts.router)
    app.include_router(friends.router)
    app.include_router(follows.router)
    app.include_router(health.router)

    return app


app = create_app()
