"""KeyDeck FastAPI application factory + lifespan lifecycle.

This module implements:
  - create_app() — testable application factory
  - lifespan — @asynccontextmanager startup/shutdown sequence
  - /health router — delegated to keydeck/health.py
  - /        route  — service discovery root
  - app = create_app() — module-level instance for uvicorn

Startup sequence:
  1. load_config()          → app.state.config
  2. create_key_store()     → app.state.store
  3. KeyLifecycleManager()  → app.state.manager
  4. SessionRegistry()      → app.state.sessions
  5. app.state.ready = True

Shutdown sequence (reverse):
  app.state.ready = False → close sessions (cancels notice timers) → close store

Tests skip the lifespan and set the same app.state attributes directly.
"""

from __future__ import annotations

import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.routing import APIRouter

from keydeck import __version__
from keydeck.config import Config, load_config
from keydeck.constants import UNLOCK_ENTRY_PATH
from keydeck.dashboard.api import router as dashboard_router
from keydeck.errors import KeydeckError, SessionLocked
from keydeck.health import router as health_router
from keydeck.keys.manager import KeyLifecycleManager
from keydeck.session.middleware import SessionCookieMiddleware
from keydeck.session.router import router as session_router
from keydeck.session.store import SessionRegistry
from keydeck.store.factory import create_key_store
from keydeck.store.protocol import KeyStore
from keydeck.utils.logger import clear_request_id, configure_logging, get_logger, set_request_id
from keydeck.utils.ulid import generate_ulid

# ─── Logging Setup ────────────────────────────────────────────────────────────
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO" if not DEBUG else "DEBUG")
JSON_LOGS = os.getenv("JSON_LOGS", "true").lower() == "true"

configure_logging(log_level=LOG_LEVEL, json_output=JSON_LOGS)
logger = get_logger(__name__)


# ─── Routers ──────────────────────────────────────────────────────────────────

root_router = APIRouter(tags=["root"])


@root_router.get("/")
async def root() -> dict[str, str]:
    """Root endpoint — service identity / discovery."""
    return {
        "service": "KeyDeck",
        "version": __version__,
        "health": "/health",
        "dashboard": "/dashboard/api/keys",
        "playground": "/playground/api/verify",
    }


# ─── Lifespan ─────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan — startup and shutdown sequence."""
    logger.info("KeyDeck starting up...")

    # load_config() raises SystemExit on an invalid file, before ready is set.
    config: Config = load_config()
    app.state.config = config
    logger.info(
        "config_loaded",
        store_backend=config.store.backend,
        notification_ttl_ms=config.notifications.ttl_ms,
    )

    # Store initialization errors propagate and abort startup.
    store: KeyStore = await create_key_store(config)
    app.state.store = store

    manager = KeyLifecycleManager(store)
    app.state.manager = manager

    sessions = SessionRegistry(
        manager,
        notification_ttl_ms=config.notifications.ttl_ms,
        max_sessions=config.session.max_sessions,
    )
    app.state.sessions = sessions

    app.state.ready = True
    logger.info("KeyDeck ready", store=type(store).__name__)

    yield

    logger.info("KeyDeck shutting down...")
    app.state.ready = False

    sessions.close()
    await store.close()

    logger.info("KeyDeck shutdown complete")


# ─── Application Factory ──────────────────────────────────────────────────────


def create_app() -> FastAPI:
    """Create and configure the KeyDeck FastAPI application.

    Call this function directly in tests to get an isolated app instance:
        app = create_app()
    """
    # Swagger UI and ReDoc only in DEBUG
    _debug = os.getenv("DEBUG", "false").lower() == "true"

    application = FastAPI(
        title="KeyDeck",
        description="API key dashboard with a verify-then-unlock playground",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if _debug else None,
        redoc_url="/redoc" if _debug else None,
        openapi_url="/openapi.json" if _debug else None,
    )

    # /health returns 503 until the lifespan sets this
    application.state.ready = False

    application.add_middleware(
        CORSMiddleware,
        allow_origins=[
            "http://localhost:4343",
            "http://127.0.0.1:4343",
            "http://localhost:3000",   # Dev frontend (if served separately)
            "http://127.0.0.1:3000",
        ],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["*"],
    )

    # Last added runs first: every route sees request.state.session.
    application.add_middleware(SessionCookieMiddleware)

    @application.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or generate_ulid()
        set_request_id(request_id)
        try:
            response = await call_next(request)
        finally:
            clear_request_id()
        response.headers["X-Request-ID"] = request_id
        return response

    application.include_router(root_router)
    application.include_router(health_router)
    # /dashboard/api/keys, /dashboard/api/notifications
    application.include_router(dashboard_router, prefix="/dashboard/api")
    # /playground/api/verify, /protected/api/identity
    application.include_router(session_router)

    # ── Exception handlers ────────────────────────────────────────────────────

    @application.exception_handler(KeydeckError)
    async def keydeck_error_handler(request: Request, exc: KeydeckError) -> JSONResponse:
        logger.info(
            "request_failed",
            code=exc.code,
            status_code=exc.status_code,
            path=str(request.url.path),
        )
        content: dict = {"error": {"code": exc.code, "message": exc.message}}
        if isinstance(exc, SessionLocked):
            content["redirect"] = UNLOCK_ENTRY_PATH
        return JSONResponse(status_code=exc.status_code, content=content)

    @application.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        logger.warning(
            "HTTP exception",
            status_code=exc.status_code,
            detail=exc.detail,
            path=str(request.url.path),
        )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @application.exception_handler(Exception)
    async def unhandled_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        logger.error(
            "Unhandled exception",
            error=str(exc),
            error_type=type(exc).__name__,
            path=str(request.url.path),
        )
        return JSONResponse(
            status_code=500, content={"error": "Internal server error"}
        )

    return application


# ─── Module-Level App (for uvicorn) ───────────────────────────────────────────

app = create_app()
