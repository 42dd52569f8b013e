"""SessionGate — verify a presented key once, then unlock the protected view.

Flow:
  1. attempt_unlock(candidate) → KeyLifecycleManager.verify_key(candidate)
  2. on success the raw candidate is written to the session slot "apiKey"
  3. current_masked_identity() reads that slot for the protected view

The token is cached, not re-verified: a key deleted after it unlocked a
session keeps that session unlocked until the session ends. There is no
logout; lock() exists for session teardown.
"""

from __future__ import annotations

from keydeck.constants import SESSION_KEY_NAME
from keydeck.errors import SessionLocked
from keydeck.keys.manager import KeyLifecycleManager
from keydeck.keys.masking import mask_identity
from keydeck.session.store import SessionStorage
from keydeck.utils.logger import get_logger

logger = get_logger(__name__)


class SessionGate:
    """Playground unlock check bound to one session's storage."""

    def __init__(self, manager: KeyLifecycleManager, storage: SessionStorage) -> None:
        self._manager = manager
        self._storage = storage

    async def attempt_unlock(self, candidate: str) -> bool:
        """Verify ``candidate`` and, if valid, store it as the unlock token.

        Blank input is rejected without a store call. A failed attempt writes
        nothing and leaves an existing token in place.
        """
        if not candidate or not candidate.strip():
            return False

        if not await self._manager.verify_key(candidate):
            logger.info("session_unlock_rejected", key=mask_identity(candidate))
            return False

        self._storage.set(SESSION_KEY_NAME, candidate)
        logger.info("session_unlocked", key=mask_identity(candidate))
        return True

    def is_unlocked(self) -> bool:
        return self._storage.get(SESSION_KEY_NAME) is not None

    def current_masked_identity(self) -> str:
        """Return ``tvly-XXXX****`` for the unlock token.

        Raises:
            SessionLocked: no token in this session — redirect to the playground.
        """
        token = self._storage.get(SESSION_KEY_NAME)
        if token is None:
            raise SessionLocked()
        return mask_identity(token)

    def lock(self) -> None:
        self._storage.clear(SESSION_KEY_NAME)
