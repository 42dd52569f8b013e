"""Per-browser-session state.

SessionStorage is the injected key-value capability the session gate writes
its unlock token into (get / set / clear string slots). SessionRegistry maps
opaque session ids to a SessionContext holding that storage plus the
session's dashboard view state and notification queue.

The registry is an LRU bounded at ``max_sessions``. Evicting a session, or
closing the registry on shutdown, closes its notification queue so no timer
fires afterwards. Nothing here is persisted: a restart locks every session.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Optional

from keydeck.constants import NOTIFICATION_TTL_MS
from keydeck.dashboard.state import DashboardState
from keydeck.keys.manager import KeyLifecycleManager
from keydeck.keys.masking import VisibilitySet
from keydeck.notifications import NotificationQueue
from keydeck.utils.logger import get_logger
from keydeck.utils.ulid import generate_ulid

logger = get_logger(__name__)

_DEFAULT_MAX_SESSIONS: int = 1000


class SessionStorage:
    """String slots scoped to one logical session. Absent slot → None."""

    def __init__(self) -> None:
        self._slots: dict[str, str] = {}

    def get(self, name: str) -> Optional[str]:
        return self._slots.get(name)

    def set(self, name: str, value: str) -> None:
        self._slots[name] = value

    def clear(self, name: Optional[str] = None) -> None:
        """Remove one slot, or every slot when ``name`` is None."""
        if name is None:
            self._slots.clear()
        else:
            self._slots.pop(name, None)

    def __contains__(self, name: object) -> bool:
        return name in self._slots


@dataclass
class SessionContext:
    """Everything KeyDeck holds for one browser session."""

    id: str
    storage: SessionStorage
    notifications: NotificationQueue
    dashboard: DashboardState

    def close(self) -> None:
        self.storage.clear()
        self.notifications.close()


class SessionRegistry:
    """LRU map of session id → SessionContext.

    Cache entry order is recency of use; get_or_create() marks an entry as
    most recently used and evicts the least recently used entry when full.
    """

    def __init__(
        self,
        manager: KeyLifecycleManager,
        notification_ttl_ms: int = NOTIFICATION_TTL_MS,
        max_sessions: int = _DEFAULT_MAX_SESSIONS,
    ) -> None:
        self._manager = manager
        self._ttl_ms = notification_ttl_ms
        self._max_sessions = max_sessions
        self._sessions: OrderedDict[str, SessionContext] = OrderedDict()

    def get(self, session_id: Optional[str]) -> Optional[SessionContext]:
        if not session_id:
            return None
        context = self._sessions.get(session_id)
        if context is not None:
            self._sessions.move_to_end(session_id)
        return context

    def get_or_create(self, session_id: Optional[str]) -> SessionContext:
        """Return the live context for ``session_id``, or start a new session.

        Unknown ids (expired, evicted, or issued before a restart) get a fresh
        session with a new id — a client-chosen id is never adopted.
        """
        context = self.get(session_id)
        if context is not None:
            return context
        return self._create()

    def end(self, session_id: str) -> None:
        """End a session: clears its unlock token and cancels its notices."""
        context = self._sessions.pop(session_id, None)
        if context is not None:
            context.close()
            logger.debug("session_ended", session_id=session_id)

    def close(self) -> None:
        """End every session. Called from the app lifespan on shutdown."""
        for context in self._sessions.values():
            context.close()
        count = len(self._sessions)
        self._sessions.clear()
        logger.info("session_registry_closed", sessions=count)

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, session_id: object) -> bool:
        return session_id in self._sessions

    def _create(self) -> SessionContext:
        if len(self._sessions) >= self._max_sessions:
            evicted_id, evicted = self._sessions.popitem(last=False)
            evicted.close()
            logger.info("session_evicted", session_id=evicted_id)

        notifications = NotificationQueue(ttl_ms=self._ttl_ms)
        context = SessionContext(
            id=generate_ulid(),
            storage=SessionStorage(),
            notifications=notifications,
            dashboard=DashboardState(
                manager=self._manager,
                visibility=VisibilitySet(),
                notifications=notifications,
            ),
        )
        self._sessions[context.id] = context
        logger.debug("session_started", session_id=context.id)
        return context
