"""Transient notices shown after dashboard and playground actions.

Each notice expires NOTIFICATION_TTL_MS (3000 ms) after it is enqueued.
Expiry is an asyncio TimerHandle per notice, tracked by id:
  - dismiss(id) removes the notice and cancels its timer
  - close() cancels every pending timer; nothing fires after it returns

Notices are kept in insertion order with no length cap.
"""

from __future__ import annotations

import asyncio
import secrets
from dataclasses import dataclass
from typing import Literal, Optional

from keydeck.constants import NOTICE_ERROR, NOTICE_SUCCESS, NOTIFICATION_TTL_MS
from keydeck.utils.logger import get_logger

logger = get_logger(__name__)

NoticeKind = Literal["success", "error"]

_VALID_KINDS: frozenset[str] = frozenset({NOTICE_SUCCESS, NOTICE_ERROR})

# 4 random bytes → 8 hex chars
_ID_BYTES: int = 4


@dataclass(frozen=True)
class Notification:
    """One user-visible notice."""

    id: str
    kind: NoticeKind
    title: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "kind": self.kind, "title": self.title, "message": self.message}


class NotificationQueue:
    """FIFO of auto-expiring notices.

    Must be used from within a running event loop (enqueue schedules a timer
    on it).

    Usage:
        queue = NotificationQueue()
        notice_id = queue.enqueue("success", "Success!", "New API key has been created.")
        queue.dismiss(notice_id)   # early; the pending timer is cancelled
        queue.close()              # on teardown
    """

    def __init__(self, ttl_ms: int = NOTIFICATION_TTL_MS) -> None:
        self.ttl_ms = ttl_ms
        self._items: dict[str, Notification] = {}
        self._timers: dict[str, asyncio.TimerHandle] = {}
        self._closed = False

    def enqueue(self, kind: NoticeKind, title: str, message: str) -> str:
        """Append a notice and schedule its removal. Returns the notice id.

        Raises:
            ValueError:   kind is not "success" or "error".
            RuntimeError: the queue was closed.
        """
        if kind not in _VALID_KINDS:
            raise ValueError(f"Unknown notification kind: {kind!r}")
        if self._closed:
            raise RuntimeError("NotificationQueue is closed")

        notice_id = self._new_id()
        self._items[notice_id] = Notification(id=notice_id, kind=kind, title=title, message=message)

        loop = asyncio.get_running_loop()
        self._timers[notice_id] = loop.call_later(self.ttl_ms / 1000.0, self._expire, notice_id)

        logger.debug("notification_enqueued", notice_id=notice_id, kind=kind, title=title)
        return notice_id

    def success(self, title: str, message: str) -> str:
        return self.enqueue(NOTICE_SUCCESS, title, message)

    def error(self, title: str, message: str) -> str:
        return self.enqueue(NOTICE_ERROR, title, message)

    def dismiss(self, notice_id: str) -> None:
        """Remove a notice now. Unknown or already-removed ids are ignored."""
        timer = self._timers.pop(notice_id, None)
        if timer is not None:
            timer.cancel()
        self._items.pop(notice_id, None)

    def get(self, notice_id: str) -> Optional[Notification]:
        return self._items.get(notice_id)

    def items(self) -> list[Notification]:
        """Current notices in insertion order."""
        return list(self._items.values())

    def close(self) -> None:
        """Cancel all timers and drop all notices. Idempotent."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._items.clear()
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._items)

    def _expire(self, notice_id: str) -> None:
        self._timers.pop(notice_id, None)
        self._items.pop(notice_id, None)

    def _new_id(self) -> str:
        while True:
            notice_id = secrets.token_hex(_ID_BYTES)
            if notice_id not in self._items:
                return notice_id
