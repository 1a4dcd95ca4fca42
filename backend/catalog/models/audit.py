from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ._json import safe_json_loads


@dataclass
class AuditLogEntry:
    """Append-only record of an admin action. Never updated or deleted."""
    id: int
    admin_id: int | None
    action: str
    entity: str
    entity_id: str | None
    details: Any
    created_at: str
    admin_email: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "AuditLogEntry":
        return cls(
            id=int(row["id"]),
            admin_id=row.get("admin_id"),
            action=row["action"],
            entity=row["entity"],
            entity_id=row.get("entity_id"),
            details=safe_json_loads(row.get("details_json"), None),
            created_at=row["created_at"],
            admin_email=row.get("admin_email"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "admin_id": self.admin_id,
            "admin_email": self.admin_email,
            "action": self.action,
            "entity": self.entity,
            "entity_id": self.entity_id,
            "details": self.details,
            "created_at": self.created_at,
        }
