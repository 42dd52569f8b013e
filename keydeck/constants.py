"""Shared constants for KeyDeck.

Key format, masking widths, notification lifetime and the fixed notice texts
shown after dashboard and playground actions. No magic values in other
modules — import from here.
"""

# ─── Key Format ───────────────────────────────────────────────────────────────

# Every generated key is KEY_PREFIX followed by KEY_RANDOM_LENGTH characters
# drawn from KEY_ALPHABET, e.g. "tvly-Ab3...".
KEY_PREFIX: str = "tvly-"
KEY_RANDOM_LENGTH: int = 32
KEY_ALPHABET: str = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789"

# Monthly request limit pre-filled in the create form.
DEFAULT_KEY_USAGE: int = 1000

# ─── Masking ──────────────────────────────────────────────────────────────────

# Hidden keys render as a fixed-width placeholder, independent of key length.
MASK_CHAR: str = "•"  # bullet
MASK_WIDTH: int = 16
MASKED_VALUE: str = MASK_CHAR * MASK_WIDTH

# Session identity shows "tvly-" + IDENTITY_VISIBLE_CHARS suffix chars, then the marker.
IDENTITY_VISIBLE_CHARS: int = 4
IDENTITY_MASK_MARKER: str = "****"

# ─── Notifications ────────────────────────────────────────────────────────────

# Every notice is removed this long after it was enqueued.
NOTIFICATION_TTL_MS: int = 3000

NOTICE_SUCCESS = "success"
NOTICE_ERROR = "error"

# ─── Session ──────────────────────────────────────────────────────────────────

# Session slot holding the raw key value of an unlocked playground session.
SESSION_KEY_NAME: str = "apiKey"

# Where the protected view sends a locked session.
UNLOCK_ENTRY_PATH: str = "/playground"
PROTECTED_PATH: str = "/protected"
