"""API key value generation.

Key format: ``tvly-`` + 32 characters from ``[A-Za-z0-9]`` (37 chars total),
each drawn independently and uniformly.

Characters come from ``secrets.choice`` (CSPRNG). The key is only ever shown
and compared, never used for cryptography, but a predictable value would let
anyone who saw one key guess the next.
"""

from __future__ import annotations

import re
import secrets

from keydeck.constants import KEY_ALPHABET, KEY_PREFIX, KEY_RANDOM_LENGTH

_KEY_FORMAT_RE = re.compile(
    rf"^{re.escape(KEY_PREFIX)}[A-Za-z0-9]{{{KEY_RANDOM_LENGTH}}}$"
)


def generate_api_key() -> str:
    """Return a new ``tvly-`` prefixed key value. No side effects."""
    suffix = "".join(secrets.choice(KEY_ALPHABET) for _ in range(KEY_RANDOM_LENGTH))
    return f"{KEY_PREFIX}{suffix}"


def is_api_key_format(value: str) -> bool:
    """True if ``value`` has exactly the generated key shape."""
    return bool(_KEY_FORMAT_RE.match(value))
