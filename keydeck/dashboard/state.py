"""DashboardState — the key list view of one session.

Owns the in-memory key list, the visibility set and a reference to the
session's notification queue. Only the action methods below mutate the list,
and only after the awaited store call succeeded; a failed action leaves the
list as it was, enqueues one error notice and re-raises for the HTTP layer.

Notice texts:
    create   success "Success!"          "New API key has been created."
    update   success "Success!"          "API key has been updated."
    delete   error   "API Key Deleted"   "The API key has been permanently deleted."
    copy     success "Congratulations!"  "API key copied to clipboard."
    failure  error   "Error!"            "Failed to ... API key(s)" / "Key name is required"
"""

from __future__ import annotations

from typing import Any, Optional

from keydeck.constants import DEFAULT_KEY_USAGE
from keydeck.errors import KeydeckError, NotFound, ValidationError
from keydeck.keys.manager import KeyLifecycleManager
from keydeck.keys.masking import VisibilitySet, render_value
from keydeck.notifications import NotificationQueue
from keydeck.store.models import ApiKeyRecord
from keydeck.utils.logger import get_logger

logger = get_logger(__name__)

_ERROR_TITLE = "Error!"


class DashboardState:
    """Key list, reveal toggles and notices for one dashboard view."""

    def __init__(
        self,
        manager: KeyLifecycleManager,
        visibility: VisibilitySet,
        notifications: NotificationQueue,
    ) -> None:
        self._manager = manager
        self.visibility = visibility
        self.notifications = notifications
        self._keys: list[ApiKeyRecord] = []

    @property
    def keys(self) -> list[ApiKeyRecord]:
        """Read-only snapshot of the current list."""
        return list(self._keys)

    # ── Actions ───────────────────────────────────────────────────────────────

    async def refresh(self) -> list[ApiKeyRecord]:
        """Replace the list with the store's current contents."""
        try:
            keys = await self._manager.list_keys()
        except KeydeckError:
            self.notifications.error(_ERROR_TITLE, "Failed to fetch API keys")
            raise
        self._keys = keys
        return self.keys

    async def create(self, name: str, usage: int = DEFAULT_KEY_USAGE) -> ApiKeyRecord:
        """Create a key and put it at the top of the list."""
        try:
            record = await self._manager.create_key(name, usage)
        except ValidationError as exc:
            self.notifications.error(_ERROR_TITLE, exc.message)
            raise
        except KeydeckError:
            self.notifications.error(_ERROR_TITLE, "Failed to create API key")
            raise

        self._keys.insert(0, record)
        self.notifications.success("Success!", "New API key has been created.")
        return record

    async def update(self, key_id: str, name: str, usage: int) -> Optional[ApiKeyRecord]:
        """Rename a key / change its usage limit and patch the list entry.

        Returns None when the key was not in this view and could not be
        reloaded; the update itself still succeeded.
        """
        try:
            await self._manager.update_key(key_id, name, usage)
        except ValidationError as exc:
            self.notifications.error(_ERROR_TITLE, exc.message)
            raise
        except KeydeckError:
            self.notifications.error(_ERROR_TITLE, "Failed to update API key")
            raise

        self.notifications.success("Success!", "API key has been updated.")

        for index, record in enumerate(self._keys):
            if record.id == key_id:
                updated = record.with_changes(name=name, usage=usage)
                self._keys[index] = updated
                return updated
        return await self._reload_entry(key_id)

    async def delete(self, key_id: str) -> None:
        """Delete a key and drop it from the list."""
        try:
            await self._manager.delete_key(key_id)
        except KeydeckError:
            self.notifications.error(_ERROR_TITLE, "Failed to delete API key")
            raise

        self._keys = [record for record in self._keys if record.id != key_id]
        self.visibility.discard(key_id)
        # Error styling marks the destructive action; the delete succeeded.
        self.notifications.error("API Key Deleted", "The API key has been permanently deleted.")

    def toggle_visibility(self, key_id: str) -> bool:
        """Flip reveal state for a listed key. Returns the new state."""
        self.get(key_id)
        return self.visibility.toggle(key_id)

    def copy(self, key_id: str) -> str:
        """Return the raw value for the client to place on the clipboard."""
        try:
            record = self.get(key_id)
        except NotFound:
            self.notifications.error("Oh no!", "Failed to copy API key.")
            raise
        self.notifications.success("Congratulations!", "API key copied to clipboard.")
        return record.value

    # ── Rendering ─────────────────────────────────────────────────────────────

    def render(self, record: ApiKeyRecord) -> dict[str, Any]:
        revealed = self.visibility.is_revealed(record.id)
        data = record.to_dict()
        data["value"] = render_value(record, revealed)
        data["revealed"] = revealed
        return data

    def rendered_keys(self) -> list[dict[str, Any]]:
        return [self.render(record) for record in self._keys]

    async def _reload_entry(self, key_id: str) -> Optional[ApiKeyRecord]:
        """Pull a key updated outside this view into the list, best-effort.

        The update already succeeded, so a failed reload only leaves the view
        stale. None when the reload fails or the key is gone again.
        """
        try:
            self._keys = await self._manager.list_keys()
        except KeydeckError as exc:
            logger.warning("dashboard_reload_failed", key_id=key_id, reason=exc.code)
            return None
        for record in self._keys:
            if record.id == key_id:
                return record
        return None

    def get(self, key_id: str) -> ApiKeyRecord:
        """Return the listed record with this id. Raises NotFound."""
        for record in self._keys:
            if record.id == key_id:
                return record
        raise NotFound(f"API key '{key_id}' not found")
