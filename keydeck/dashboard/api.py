"""Dashboard API endpoints for key management.

Routes (prefixed with /dashboard/api in main.py):
    GET    /keys                     — refresh and list keys (masked unless revealed)
    POST   /keys                     — create a key
    PUT    /keys/{key_id}            — change name / usage limit
    DELETE /keys/{key_id}            — delete a key permanently
    POST   /keys/{key_id}/visibility — toggle reveal for one key
    POST   /keys/{key_id}/copy       — raw value for the clipboard
    GET    /notifications            — current notices, insertion order
    DELETE /notifications/{id}       — dismiss a notice early

All state is per browser session (keydeck.session.middleware). KeydeckError
subclasses raised here are mapped to JSON error bodies by main.py.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from keydeck.constants import DEFAULT_KEY_USAGE
from keydeck.session.middleware import get_session
from keydeck.session.store import SessionContext

router = APIRouter(tags=["dashboard"])


# ─── Request Models ───────────────────────────────────────────────────────────


class CreateKeyRequest(BaseModel):
    """Request body for POST /dashboard/api/keys."""

    name: str
    usage: int = Field(default=DEFAULT_KEY_USAGE)
    """Monthly request limit."""


class UpdateKeyRequest(BaseModel):
    """Request body for PUT /dashboard/api/keys/{key_id}.

    The key value cannot be changed.
    """

    name: str
    usage: int


# ─── Keys ─────────────────────────────────────────────────────────────────────


@router.get("/keys")
async def list_keys(session: SessionContext = Depends(get_session)) -> dict:
    """List keys, newest first.

    Hidden keys carry the 16-bullet placeholder in ``value``; revealed keys
    carry the raw value. ``revealed`` reports which.
    """
    await session.dashboard.refresh()
    return {"keys": session.dashboard.rendered_keys()}


@router.post("/keys", status_code=201)
async def create_key(
    body: CreateKeyRequest,
    session: SessionContext = Depends(get_session),
) -> dict:
    """Create a key. Returns the new entry in its (masked) list form."""
    record = await session.dashboard.create(body.name, body.usage)
    return {"key": session.dashboard.render(record)}


@router.put("/keys/{key_id}")
async def update_key(
    key_id: str,
    body: UpdateKeyRequest,
    session: SessionContext = Depends(get_session),
) -> dict:
    """Returns the updated entry, or ``{"key": null}`` when it is not in this view."""
    record = await session.dashboard.update(key_id, body.name, body.usage)
    return {"key": session.dashboard.render(record) if record is not None else None}


@router.delete("/keys/{key_id}")
async def delete_key(
    key_id: str,
    session: SessionContext = Depends(get_session),
) -> dict:
    await session.dashboard.delete(key_id)
    return {"deleted_id": key_id}


@router.post("/keys/{key_id}/visibility")
async def toggle_visibility(
    key_id: str,
    session: SessionContext = Depends(get_session),
) -> dict:
    """Flip reveal state for one key in this session's view."""
    session.dashboard.toggle_visibility(key_id)
    return {"key": session.dashboard.render(session.dashboard.get(key_id))}


@router.post("/keys/{key_id}/copy")
async def copy_key(
    key_id: str,
    session: SessionContext = Depends(get_session),
) -> dict:
    """Return the raw value; the browser writes it to the clipboard."""
    value = session.dashboard.copy(key_id)
    return {"id": key_id, "value": value}


# ─── Notifications ────────────────────────────────────────────────────────────


@router.get("/notifications")
async def list_notifications(session: SessionContext = Depends(get_session)) -> dict:
    return {"notifications": [n.to_dict() for n in session.notifications.items()]}


@router.delete("/notifications/{notice_id}")
async def dismiss_notification(
    notice_id: str,
    session: SessionContext = Depends(get_session),
) -> dict:
    """Dismiss a notice. Unknown ids succeed (already expired or dismissed)."""
    session.notifications.dismiss(notice_id)
    return {"dismissed_id": notice_id}
