"""KeyDeck session package.

  - SessionStorage   — get/set/clear string slots for one session
  - SessionRegistry  — LRU of live sessions keyed by cookie id
  - SessionGate      — verify-then-unlock flow for the protected view
"""

from keydeck.session.gate import SessionGate
from keydeck.session.store import SessionContext, SessionRegistry, SessionStorage

__all__ = [
    "SessionContext",
    "SessionGate",
    "SessionRegistry",
    "SessionStorage",
]
