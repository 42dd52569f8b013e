"""Health endpoint for KeyDeck.

  GET /health — 503 before ``app.state.ready`` and while the key store fails
                its health check, 200 otherwise.

Response body (200):
    {"status": "ok", "store": "LocalSQLiteKeyStore", "sessions": 3}

Response body (503):
    {"error": {"status": "starting" | "degraded", ...}}
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from keydeck.session.store import SessionRegistry
from keydeck.store.protocol import KeyStore

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict[str, Any]:
    if not getattr(request.app.state, "ready", False):
        raise HTTPException(
            status_code=503,
            detail={"status": "starting", "message": "KeyDeck is starting up..."},
        )

    store: KeyStore = request.app.state.store
    sessions: SessionRegistry = request.app.state.sessions
    store_name = type(store).__name__

    if not await store.health_check():
        raise HTTPException(
            status_code=503,
            detail={"status": "degraded", "store": store_name, "store_healthy": False},
        )

    return {"status": "ok", "store": store_name, "sessions": len(sessions)}
