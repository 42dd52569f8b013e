"""ApiKeyRecord dataclass — the persisted key entity.

Field reference:
    id          store-assigned, immutable
    name        human-readable label, mutable
    value       "tvly-" + 32 [A-Za-z0-9] chars, immutable after creation
    usage       non-negative monthly request limit, mutable
    created_at  store-assigned UTC timestamp, immutable

IMPORTANT: value is the raw secret. Never pass it to a logger; log ``id`` or
the masked identity from keydeck.keys.masking instead.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class ApiKeyRecord:
    """One row of the api_keys table."""

    id: str
    name: str
    value: str
    usage: int
    created_at: datetime

    def with_changes(self, name: str, usage: int) -> "ApiKeyRecord":
        """Return a copy with the mutable fields replaced."""
        return replace(self, name=name, usage=usage)

    def to_dict(self) -> dict[str, Any]:
        """Serialise for JSON responses (datetime → ISO 8601)."""
        return {
            "id": self.id,
            "name": self.name,
            "value": self.value,
            "usage": self.usage,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_row(cls, row: Any) -> "ApiKeyRecord":
        """Build a record from a dict-like row (aiosqlite.Row or PostgREST dict).

        created_at may arrive as an ISO 8601 string or a datetime. PostgREST
        renders timestamptz with a trailing offset, which fromisoformat accepts.
        """
        created_raw = row["created_at"]
        if isinstance(created_raw, datetime):
            created_at = created_raw
        else:
            created_at = datetime.fromisoformat(str(created_raw).replace("Z", "+00:00"))

        return cls(
            id=str(row["id"]),
            name=row["name"],
            value=row["value"],
            usage=int(row["usage"]),
            created_at=created_at,
        )
