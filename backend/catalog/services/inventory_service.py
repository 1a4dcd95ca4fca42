# Overview: Stock adjustments and the append-only inventory ledger.

# backend/catalog/services/inventory_service.py
"""
Inventory Service

Invariants:
- delta must be a non-zero integer; invalid input is rejected before any write.
- variants.stock_qty never goes below zero: new_qty = max(0, qty + delta).
- The ledger records the requested delta, not the clamped change. When a
  decrement is clamped, sum(delta_qty) no longer reproduces stock_qty.
- The stock update and its ledger row are written in one transaction.
"""
from __future__ import annotations

from ..models import InventoryAdjustment
from ..persistence import Store
from ..time_utils import now_iso
from ..validation import NotFoundError, ValidationError, coerce_int
from .audit_service import log_audit


def _parse_delta(delta) -> int:
    if delta is None or isinstance(delta, bool):
        raise ValidationError("delta must be a non-zero integer")
    try:
        value = coerce_int(delta, "delta")
    except ValidationError:
        raise ValidationError("delta must be a non-zero integer")
    if value == 0:
        raise ValidationError("delta must be a non-zero integer")
    return value


def adjust_stock(
    store: Store,
    *,
    variant_id: int,
    delta,
    reason: str | None = None,
    performed_by: int | None = None,
) -> int:
    """
    Apply a signed stock delta to a variant and return the new quantity.

    Raises:
        ValidationError: delta is zero or not an integer
        NotFoundError: variant does not exist
    """
    delta_qty = _parse_delta(delta)
    reason = (reason or "").strip() or None

    with store.transaction():
        row = store.prepare("SELECT id, stock_qty FROM variants WHERE id = ?").get(variant_id)
        if row is None:
            raise NotFoundError("Variant not found")

        new_qty = max(0, int(row["stock_qty"] or 0) + delta_qty)
        now = now_iso()
        store.prepare("UPDATE variants SET stock_qty = ?, updated_at = ? WHERE id = ?").run(
            new_qty, now, variant_id
        )
        store.prepare(
            """
            INSERT INTO inventory_adjustments (variant_id, delta_qty, reason, performed_by, created_at)
            VALUES (?, ?, ?, ?, ?)
            """
        ).run(variant_id, delta_qty, reason, performed_by, now)

    log_audit(store, admin_id=performed_by, action="adjust_stock", entity="variant",
              entity_id=variant_id, details={"delta": delta_qty, "reason": reason, "stock_qty": new_qty})
    return new_qty


def list_adjustments(store: Store, *, limit: int = 200) -> list[InventoryAdjustment]:
    return store.prepare(
        """
        SELECT ia.*, v.sku, p.title AS product_title
        FROM inventory_adjustments ia
        JOIN variants v ON ia.variant_id = v.id
        JOIN products p ON v.product_id = p.id
        ORDER BY ia.created_at DESC, ia.id DESC
        LIMIT ?
        """,
        into=InventoryAdjustment.from_row,
    ).all(limit)
