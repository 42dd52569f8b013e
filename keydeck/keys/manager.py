"""KeyLifecycleManager — create / list / update / delete / verify API keys.

The manager owns input validation and value generation; persistence,
ordering and uniqueness belong to the injected KeyStore. It does not touch
view state or notifications: dashboard/state.py layers those on top.

Failure semantics:
  - ValidationError is raised before any store call.
  - StoreUnavailable / NotFound / ConstraintViolation from the store propagate
    unchanged. No retry, except value regeneration on a uniqueness conflict.
  - verify_key() never raises: every failure collapses to False.
"""

from __future__ import annotations

from keydeck.constants import DEFAULT_KEY_USAGE
from keydeck.errors import ConstraintViolation, KeydeckError, ValidationError
from keydeck.keys.generator import generate_api_key
from keydeck.keys.masking import mask_identity
from keydeck.store.models import ApiKeyRecord
from keydeck.store.protocol import KeyStore
from keydeck.utils.logger import get_logger

logger = get_logger(__name__)

# A fresh value is generated per attempt when the store reports a duplicate.
_MAX_GENERATION_ATTEMPTS: int = 3


def _validate_usage(usage: object) -> int:
    # bool is an int subclass; True is not a request limit
    if isinstance(usage, bool) or not isinstance(usage, int) or usage < 0:
        raise ValidationError("Usage limit must be a non-negative integer")
    return usage


class KeyLifecycleManager:
    """Orchestrates key lifecycle operations against a KeyStore.

    Usage:
        manager = KeyLifecycleManager(store)
        record = await manager.create_key("production", usage=1000)
        assert await manager.verify_key(record.value)
    """

    def __init__(self, store: KeyStore) -> None:
        self._store = store

    @property
    def store(self) -> KeyStore:
        return self._store

    async def list_keys(self) -> list[ApiKeyRecord]:
        """Return all keys, newest first (ordering comes from the store)."""
        return await self._store.list_keys()

    async def create_key(self, name: str, usage: int = DEFAULT_KEY_USAGE) -> ApiKeyRecord:
        """Generate a value and persist a new key.

        Raises:
            ValidationError:     empty/whitespace name or invalid usage (no store call).
            ConstraintViolation: value collided on every attempt.
            StoreUnavailable:    the store failed.
        """
        if not name or not name.strip():
            raise ValidationError("Key name is required")
        usage = _validate_usage(usage)

        attempt = 1
        while True:
            try:
                record = await self._store.insert(name=name, value=generate_api_key(), usage=usage)
                break
            except ConstraintViolation:
                if attempt >= _MAX_GENERATION_ATTEMPTS:
                    raise
                logger.warning("api_key_value_collision", attempt=attempt)
                attempt += 1

        logger.info("api_key_created", key_id=record.id, usage=usage)
        return record

    async def update_key(self, key_id: str, name: str, usage: int) -> None:
        """Change a key's name and usage limit. The value is never regenerated.

        The name is stored as given — an empty name is accepted here, unlike
        create_key().

        Raises:
            ValidationError:  invalid usage.
            NotFound:         no key with this id.
            StoreUnavailable: the store failed.
        """
        usage = _validate_usage(usage)
        await self._store.update(key_id, name=name, usage=usage)
        logger.info("api_key_updated", key_id=key_id, usage=usage)

    async def delete_key(self, key_id: str) -> None:
        """Permanently delete a key. No tombstone, no undo."""
        await self._store.delete(key_id)
        logger.info("api_key_deleted", key_id=key_id)

    async def verify_key(self, candidate: str) -> bool:
        """True iff a stored key has exactly this value (case-sensitive, untrimmed).

        A missing key and a failed lookup both return False, whatever the
        store raised; the cause is only visible in the logs.
        """
        try:
            record = await self._store.find_by_value(candidate)
        except KeydeckError as exc:
            logger.warning(
                "api_key_verification_failed",
                key=mask_identity(candidate),
                reason=exc.code,
            )
            return False
        except Exception as exc:
            logger.error(
                "api_key_verification_error",
                key=mask_identity(candidate),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            return False
        logger.info("api_key_verified", key_id=record.id)
        return True
