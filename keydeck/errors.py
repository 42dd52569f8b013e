"""KeyDeck exception taxonomy.

Every failure a caller is expected to handle derives from KeydeckError and
carries a stable ``code`` (used in HTTP error bodies) plus a human-readable
``message``. Store backends translate driver errors (aiosqlite, postgrest,
timeouts) into these types so the lifecycle manager never sees a
backend-specific exception.

HTTP mapping (keydeck/main.py):
    ValidationError      400
    VerificationFailed   401
    SessionLocked        401  (body also carries redirect: "/playground")
    NotFound             404
    ConstraintViolation  409
    StoreUnavailable     503
"""

from __future__ import annotations


class KeydeckError(Exception):
    """Base class for all handled KeyDeck failures."""

    code: str = "keydeck_error"
    status_code: int = 500

    def __init__(self, message: str = "Operation failed") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(KeydeckError):
    """Rejected input, raised before any store call is made."""

    code = "validation_error"
    status_code = 400

    def __init__(self, message: str = "Invalid input") -> None:
        super().__init__(message)


class StoreUnavailable(KeydeckError):
    """The backing key store could not be reached or failed the request."""

    code = "store_unavailable"
    status_code = 503

    def __init__(self, message: str = "Key store unavailable") -> None:
        super().__init__(message)


class ConstraintViolation(KeydeckError):
    """The store rejected a write, e.g. a duplicate key value."""

    code = "constraint_violation"
    status_code = 409

    def __init__(self, message: str = "Key store constraint violated") -> None:
        super().__init__(message)


class NotFound(KeydeckError):
    """No record matched the given id or value."""

    code = "not_found"
    status_code = 404

    def __init__(self, message: str = "API key not found") -> None:
        super().__init__(message)


class VerificationFailed(KeydeckError):
    """A presented key did not verify.

    Deliberately carries no detail: a missing record and a failed lookup are
    indistinguishable to the caller.
    """

    code = "verification_failed"
    status_code = 401

    def __init__(self, message: str = "Invalid API Key") -> None:
        super().__init__(message)


class SessionLocked(KeydeckError):
    """The current session holds no unlock token."""

    code = "session_locked"
    status_code = 401

    def __init__(self, message: str = "No unlocked session") -> None:
        super().__init__(message)
