"""Key visibility state and display-time masking.

Two masking forms exist:
  - render_value(): dashboard list — full value when revealed, otherwise a
    fixed 16-bullet placeholder that does not leak the value's length.
  - mask_identity(): playground/protected view — keeps ``tvly-`` and the
    first 4 random characters so the user can tell which key unlocked the
    session, then a ``****`` marker.
"""

from __future__ import annotations

import re

from keydeck.constants import (
    IDENTITY_MASK_MARKER,
    IDENTITY_VISIBLE_CHARS,
    KEY_PREFIX,
    MASKED_VALUE,
)
from keydeck.store.models import ApiKeyRecord

# Matches the prefix shown by mask_identity(): "tvly-" + 4 chars that are not "-".
_IDENTITY_RE = re.compile(
    rf"^({re.escape(KEY_PREFIX)}[^-]{{{IDENTITY_VISIBLE_CHARS}}})"
)


class VisibilitySet:
    """Ids of keys whose value is currently revealed in one dashboard view.

    Default for every id is hidden. Not persisted: a new session starts with
    every key masked.
    """

    def __init__(self) -> None:
        self._revealed: set[str] = set()

    def toggle(self, key_id: str) -> bool:
        """Flip the id's membership. Returns True if it is now revealed."""
        if key_id in self._revealed:
            self._revealed.discard(key_id)
            return False
        self._revealed.add(key_id)
        return True

    def is_revealed(self, key_id: str) -> bool:
        return key_id in self._revealed

    def discard(self, key_id: str) -> None:
        """Forget an id, e.g. after its key was deleted."""
        self._revealed.discard(key_id)

    def __len__(self) -> int:
        return len(self._revealed)


def render_value(record: ApiKeyRecord, revealed: bool) -> str:
    """Return the value to display for ``record``."""
    if revealed:
        return record.value
    return MASKED_VALUE


def mask_identity(token: str) -> str:
    """Mask a session token as ``tvly-XXXX****``.

    A token without the ``tvly-`` + 4 character shape is fully hidden
    (``****``) rather than echoed back.
    """
    match = _IDENTITY_RE.match(token)
    if match is None:
        return IDENTITY_MASK_MARKER
    return f"{match.group(1)}{IDENTITY_MASK_MARKER}"
