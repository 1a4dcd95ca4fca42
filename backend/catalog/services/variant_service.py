# Overview: Service-layer operations for product variants.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..models import Variant
from ..models._json import json_dumps
from ..persistence import Store
from ..schema import variants
from ..time_utils import now_iso
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    conflict_from_integrity,
    validate_payload,
)
from .audit_service import log_audit

VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "sku", "attributes", "price", "stock_qty", "is_active"},
    required_on_create={"product_id"},
    json_fields={"attributes": dict},
)

# Variants embedded in a product payload: the parent id comes from the product.
NESTED_VARIANT_POLICY = ModelValidationPolicy(
    writable_fields={"sku", "attributes", "price", "stock_qty", "is_active"},
    json_fields={"attributes": dict},
)

ADMIN_VARIANT_SELECT = """
    SELECT v.*, p.title AS product_title, p.low_stock_threshold, p.category_id, c.name AS category_name
    FROM variants v
    JOIN products p ON v.product_id = p.id
    LEFT JOIN categories c ON p.category_id = c.id
"""


def enforce_rules_variant(patch: dict) -> None:
    """Business rules that are not captured by column metadata alone."""
    if "sku" in patch and not patch["sku"]:
        # Blank SKU means "no SKU"; uniqueness only applies to present SKUs
        patch["sku"] = None
    if patch.get("stock_qty") is not None and patch["stock_qty"] < 0:
        raise ValidationError("stock_qty must be >= 0")
    if "stock_qty" in patch and patch["stock_qty"] is None:
        patch["stock_qty"] = 0
    if patch.get("price") is not None and patch["price"] < 0:
        raise ValidationError("price must be >= 0")


def validate_nested_variants(items: list) -> list[dict]:
    cleaned: list[dict] = []
    for index, item in enumerate(items, start=1):
        if not isinstance(item, dict):
            raise ValidationError(f"variants[{index}] must be an object")
        data = {k: v for k, v in item.items() if k not in ("id", "product_id")}
        try:
            patch = validate_payload(table=variants, payload=data, policy=NESTED_VARIANT_POLICY, partial=False)
            enforce_rules_variant(patch)
        except ValidationError as e:
            raise ValidationError(f"variants[{index}]: {e}") from e
        cleaned.append(patch)
    return cleaned


def insert_variant_row(store: Store, product_id: int, patch: dict, *, now: str | None = None) -> int:
    now = now or now_iso()
    info = store.prepare(
        """
        INSERT INTO variants (product_id, sku, attributes_json, price, stock_qty, is_active, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """
    ).run(
        product_id,
        patch.get("sku") or None,
        json_dumps(patch.get("attributes") or {}),
        patch.get("price"),
        patch.get("stock_qty") or 0,
        0 if patch.get("is_active") is False else 1,
        now,
        now,
    )
    return info.last_insert_id


def get_variant(store: Store, variant_id: int) -> Variant:
    variant = store.prepare("SELECT * FROM variants WHERE id = ?", into=Variant.from_row).get(variant_id)
    if variant is None:
        raise NotFoundError("Variant not found")
    return variant


def list_variants_for_product(store: Store, product_id: int, *, active_only: bool = False) -> list[Variant]:
    sql = "SELECT * FROM variants WHERE product_id = ?"
    if active_only:
        sql += " AND is_active = 1"
    return store.prepare(sql + " ORDER BY id", into=Variant.from_row).all(product_id)


def list_variants_admin(store: Store) -> list[Variant]:
    return store.prepare(ADMIN_VARIANT_SELECT + " ORDER BY p.title, v.id", into=Variant.from_row).all()


def create_variant(store: Store, *, payload: dict, actor_id: int | None = None) -> int:
    patch = validate_payload(table=variants, payload=payload, policy=VARIANT_POLICY, partial=False)
    enforce_rules_variant(patch)

    product_id = patch["product_id"]
    if store.prepare("SELECT id FROM products WHERE id = ?").get(product_id) is None:
        raise NotFoundError("Product not found")

    try:
        variant_id = insert_variant_row(store, product_id, patch)
    except IntegrityError as e:
        raise conflict_from_integrity(e) from e

    log_audit(store, admin_id=actor_id, action="create", entity="variant",
              entity_id=variant_id, details={"product_id": product_id})
    return variant_id


def update_variant(store: Store, *, variant_id: int, payload: dict, actor_id: int | None = None) -> Variant:
    get_variant(store, variant_id)
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    data = {k: v for k, v in payload.items() if k != "product_id"}
    patch = validate_payload(table=variants, payload=data, policy=NESTED_VARIANT_POLICY, partial=True)
    enforce_rules_variant(patch)

    columns: dict = {}
    for key, value in patch.items():
        if key == "attributes":
            columns["attributes_json"] = json_dumps(value or {})
        elif key == "is_active":
            columns["is_active"] = 1 if value else 0
        else:
            columns[key] = value

    if columns:
        assignments = ", ".join(f"{k} = :{k}" for k in columns)
        try:
            store.prepare(
                f"UPDATE variants SET {assignments}, updated_at = :updated_at WHERE id = :id"
            ).run({**columns, "updated_at": now_iso(), "id": variant_id})
        except IntegrityError as e:
            raise conflict_from_integrity(e) from e

    updated = get_variant(store, variant_id)
    log_audit(store, admin_id=actor_id, action="update", entity="variant",
              entity_id=variant_id, details={"sku": updated.sku, "fields": sorted(patch.keys())})
    return updated


def delete_variant(store: Store, *, variant_id: int, actor_id: int | None = None) -> None:
    """Delete a variant; its inventory adjustments cascade."""
    existing = get_variant(store, variant_id)
    store.prepare("DELETE FROM variants WHERE id = ?").run(variant_id)
    log_audit(store, admin_id=actor_id, action="delete", entity="variant",
              entity_id=variant_id, details={"sku": existing.sku})
