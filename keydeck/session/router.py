"""Playground unlock and protected-view endpoints.

Routes:
    POST /playground/api/verify   — verify a key and unlock this session
    GET  /protected/api/identity  — masked identity of the unlocking key

A failed verify returns 401 (VerificationFailed). Reading the identity of a
locked session returns 401 (SessionLocked) with ``redirect: "/playground"``;
both bodies are produced by the exception handlers in main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from keydeck.constants import PROTECTED_PATH
from keydeck.errors import VerificationFailed
from keydeck.keys.manager import KeyLifecycleManager
from keydeck.session.gate import SessionGate
from keydeck.session.middleware import get_session
from keydeck.session.store import SessionContext

router = APIRouter(tags=["session"])


class VerifyKeyRequest(BaseModel):
    """Request body for POST /playground/api/verify."""

    api_key: str


def _gate(request: Request, session: SessionContext) -> SessionGate:
    manager: KeyLifecycleManager = request.app.state.manager
    return SessionGate(manager, session.storage)


@router.post("/playground/api/verify")
async def verify_key(
    body: VerifyKeyRequest,
    request: Request,
    session: SessionContext = Depends(get_session),
) -> dict:
    """Unlock the protected view for this session if ``api_key`` exists."""
    gate = _gate(request, session)
    if not await gate.attempt_unlock(body.api_key):
        session.notifications.error("Error!", "Invalid API Key")
        raise VerificationFailed()

    session.notifications.success("Success!", "Valid API Key")
    return {"valid": True, "redirect": PROTECTED_PATH}


@router.get("/protected/api/identity")
async def current_identity(
    request: Request,
    session: SessionContext = Depends(get_session),
) -> dict:
    return {"api_key": _gate(request, session).current_masked_identity()}
