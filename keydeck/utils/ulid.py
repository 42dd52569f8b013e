"""ULID generation for KeyDeck.

ULIDs are used wherever KeyDeck itself assigns an opaque identifier:
  - ApiKeyRecord.id in the SQLite and in-memory key stores
  - session ids carried in the session cookie
  - per-request ids attached to log entries

Uses the `python-ulid` library — 26 chars, Crockford Base32, lexicographically
sortable by creation time.
"""

from __future__ import annotations

from ulid import ULID


def generate_ulid() -> str:
    """Return a new ULID as a 26-character uppercase string."""
    return str(ULID())
