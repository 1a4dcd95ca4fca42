# Overview: Append-only audit log of admin actions.

from __future__ import annotations

import logging
from typing import Any

from ..models import AuditLogEntry
from ..models._json import json_dumps
from ..persistence import Store
from ..time_utils import now_iso

"""
Audit Log Invariants

- Append-only: entries are never updated or deleted by normal operation.
- Fire-and-forget: a failed audit write is logged and swallowed; it never
  fails the operation that triggered it.
- admin_id is cleared (SET NULL) if the admin is later deleted.
"""

logger = logging.getLogger("catalog.audit")


def log_audit(
    store: Store,
    *,
    admin_id: int | None,
    action: str,
    entity: str,
    entity_id: Any = None,
    details: Any = None,
) -> None:
    try:
        store.prepare(
            """
            INSERT INTO audit_log (admin_id, action, entity, entity_id, details_json, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """
        ).run(
            admin_id or None,
            action,
            entity,
            str(entity_id) if entity_id is not None else None,
            json_dumps(details) if details is not None else None,
            now_iso(),
        )
    except Exception as e:  # noqa: BLE001
        logger.warning("audit_log insert failed: %s", e)
        logger.info("[audit-fallback] %s | %s | %s | %s", action, entity, entity_id, details)


def list_audit_entries(store: Store, *, limit: int = 200) -> list[AuditLogEntry]:
    return store.prepare(
        """
        SELECT a.*, ad.email AS admin_email
        FROM audit_log a
        LEFT JOIN admins ad ON a.admin_id = ad.id
        ORDER BY a.created_at DESC, a.id DESC
        LIMIT ?
        """,
        into=AuditLogEntry.from_row,
    ).all(limit)
