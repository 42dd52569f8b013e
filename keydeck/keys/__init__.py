"""KeyDeck API key package.

Public API:
  - generate_api_key()     — new "tvly-" + 32 alphanumeric value
  - KeyLifecycleManager    — create / list / update / delete / verify against a KeyStore
  - VisibilitySet          — per-view revealed-key state
  - render_value()         — full value or 16-bullet placeholder
  - mask_identity()        — "tvly-XXXX****" form for the protected view
"""

from __future__ import annotations

from keydeck.keys.generator import generate_api_key, is_api_key_format
from keydeck.keys.manager import KeyLifecycleManager
from keydeck.keys.masking import VisibilitySet, mask_identity, render_value

__all__ = [
    "KeyLifecycleManager",
    "VisibilitySet",
    "generate_api_key",
    "is_api_key_format",
    "mask_identity",
    "render_value",
]
