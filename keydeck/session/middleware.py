"""Session cookie middleware for KeyDeck.

Resolves an existing session cookie to a SessionContext before any route runs
and exposes it as ``request.state.session`` (None when the cookie is missing
or unknown). Sessions are only started by the ``get_session`` dependency, so
routes that never ask for one (``/``, ``/health``) do not fill the LRU
registry and cannot evict live sessions.

When a route started a session, the new id is set on whatever response the
route produces, including error responses, so a notice enqueued by a failed
first request is not lost.

The cookie has no max-age: it is a browser-session cookie, so the unlock
token it leads to ends when the browser session ends.
"""

from __future__ import annotations

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from keydeck.session.store import SessionContext, SessionRegistry
from keydeck.utils.logger import get_logger

logger = get_logger(__name__)

_DEFAULT_COOKIE_NAME = "keydeck_session"


class SessionCookieMiddleware(BaseHTTPMiddleware):
    """Resolve the session cookie and issue one for sessions started downstream."""

    async def dispatch(self, request: Request, call_next) -> Response:  # type: ignore[override]
        registry: SessionRegistry | None = getattr(request.app.state, "sessions", None)
        if registry is None:
            # Lifespan not run (startup failed or bare test app)
            return await call_next(request)

        config = getattr(request.app.state, "config", None)
        cookie_name = config.session.cookie_name if config else _DEFAULT_COOKIE_NAME
        secure = config.session.secure_cookie if config else False

        incoming = request.cookies.get(cookie_name)
        request.state.sessions = registry
        request.state.session = registry.get(incoming)

        response = await call_next(request)

        context: SessionContext | None = getattr(request.state, "session", None)
        if context is not None and context.id != incoming:
            logger.debug("session_cookie_issued", session_id=context.id, replaced=incoming is not None)
            response.set_cookie(
                cookie_name,
                context.id,
                httponly=True,
                samesite="lax",
                secure=secure,
            )
        return response


def get_session(request: Request) -> SessionContext:
    """FastAPI dependency: this request's SessionContext, started on first use.

    A missing or unknown cookie starts a new session with a server-chosen id;
    SessionCookieMiddleware sets the cookie on the way out.
    """
    registry: SessionRegistry | None = getattr(request.state, "sessions", None)
    if registry is None:
        raise RuntimeError("SessionCookieMiddleware is not installed or the app is not started")
    context = getattr(request.state, "session", None)
    if context is None:
        context = registry.get_or_create(None)
        request.state.session = context
    return context
