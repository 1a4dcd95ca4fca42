# Overview: Service-layer operations for products; encapsulates business logic and database work.

# backend/catalog/services/product_service.py
"""
Product Service

Invariants:
- A product is created with an image; product and its initial variants are
  written in one transaction.
- Updates are partial. Keys absent from the payload keep their stored value;
  present-but-empty values are written (e.g. category_id "" clears it).
- A "variants" list on update replaces all variants of the product in the
  same transaction as the product update.
- Deleting a product removes its image file (best-effort) and the row; the
  database cascades to variants and their inventory adjustments.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..models import PRODUCT_STATUSES, Category, Product
from ..models._json import json_dumps
from ..persistence import Store
from ..schema import products
from ..time_utils import now_iso
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    conflict_from_integrity,
    validate_payload,
)
from .audit_service import log_audit
from .category_service import get_category_by_slug
from .upload_service import UploadStorage
from .variant_service import insert_variant_row, list_variants_for_product, validate_nested_variants

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "title", "short_desc", "description", "category_id", "status",
        "low_stock_threshold", "pricing", "variants",
    },
    required_on_create={"title", "description"},
    json_fields={"pricing": list, "variants": list},
)

PRODUCT_SELECT = """
    SELECT p.*, c.name AS category_name, c.slug AS category_slug,
      (SELECT MIN(price) FROM variants v WHERE v.product_id = p.id AND v.price IS NOT NULL) AS price_min
    FROM products p
    LEFT JOIN categories c ON p.category_id = c.id
"""

ADMIN_PRODUCT_SELECT = """
    SELECT p.*, c.name AS category_name, c.slug AS category_slug,
      (SELECT MIN(price) FROM variants v WHERE v.product_id = p.id AND v.price IS NOT NULL) AS price_min,
      (SELECT COUNT(*) FROM variants v WHERE v.product_id = p.id) AS variant_count,
      (SELECT COALESCE(SUM(stock_qty), 0) FROM variants v WHERE v.product_id = p.id) AS stock_total
    FROM products p
    LEFT JOIN categories c ON p.category_id = c.id
"""


def enforce_rules_product(store: Store, patch: dict) -> None:
    """Business rules that are not captured by column metadata alone."""
    if "status" in patch:
        if patch["status"] in (None, ""):
            patch["status"] = "draft"
        if patch["status"] not in PRODUCT_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")

    if patch.get("category_id") is not None:
        exists = store.prepare("SELECT id FROM categories WHERE id = ?").get(patch["category_id"])
        if exists is None:
            raise ValidationError("Category not found.")

    if patch.get("low_stock_threshold") is not None and patch["low_stock_threshold"] < 0:
        raise ValidationError("low_stock_threshold must be >= 0")

    if patch.get("variants") is not None:
        patch["variants"] = validate_nested_variants(patch["variants"])


def get_product(store: Store, product_id: int, *, published_only: bool = False) -> Product:
    """
    Load a product with its variants.

    published_only=True is the public view: draft products are not found and
    inactive variants are hidden.
    """
    sql = PRODUCT_SELECT + " WHERE p.id = ?"
    if published_only:
        sql += " AND p.status = 'published'"
    product = store.prepare(sql, into=Product.from_row).get(product_id)
    if product is None:
        raise NotFoundError("Product not found")
    product.variants = list_variants_for_product(store, product.id, active_only=published_only)
    return product


def list_published_products(store: Store) -> list[Product]:
    return store.prepare(
        PRODUCT_SELECT + " WHERE p.status = 'published' ORDER BY p.created_at DESC, p.id DESC",
        into=Product.from_row,
    ).all()


def list_products_by_category_slug(store: Store, slug: str) -> tuple[Category, list[Product]]:
    category = get_category_by_slug(store, slug, active_only=True)
    rows = store.prepare(
        PRODUCT_SELECT
        + " WHERE p.status = 'published' AND p.category_id = ? ORDER BY p.created_at DESC, p.id DESC",
        into=Product.from_row,
    ).all(category.id)
    return category, rows


def list_products_admin(store: Store) -> list[Product]:
    return store.prepare(
        ADMIN_PRODUCT_SELECT + " ORDER BY p.created_at DESC, p.id DESC",
        into=Product.from_row,
    ).all()


def create_product(
    store: Store,
    *,
    payload: dict,
    image_path: str | None,
    actor_id: int | None = None,
) -> int:
    """
    Create a product (and its initial variants) and return its id.

    Raises:
        ValidationError: missing title/description/image, bad field values
        ConflictError: duplicate variant SKU (nothing is written)
    """
    if not image_path:
        raise ValidationError("Product image is required")

    patch = validate_payload(table=products, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(store, patch)
    now = now_iso()
    pricing = patch.get("pricing")

    try:
        with store.transaction():
            info = store.prepare(
                """
                INSERT INTO products (title, short_desc, description, image, category_id, status,
                    low_stock_threshold, pricing_json, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """
            ).run(
                patch["title"],
                patch.get("short_desc") or "",
                patch["description"],
                image_path,
                patch.get("category_id"),
                patch.get("status") or "draft",
                patch.get("low_stock_threshold"),
                json_dumps(pricing) if pricing is not None else None,
                now,
                now,
            )
            product_id = info.last_insert_id
            for variant in patch.get("variants") or []:
                insert_variant_row(store, product_id, variant, now=now)
    except IntegrityError as e:
        raise conflict_from_integrity(e) from e

    log_audit(store, admin_id=actor_id, action="create", entity="product",
              entity_id=product_id, details={"title": patch["title"]})
    return product_id


def update_product(
    store: Store,
    *,
    product_id: int,
    payload: dict,
    image_path: str | None = None,
    uploads: UploadStorage | None = None,
    actor_id: int | None = None,
) -> Product:
    existing = get_product(store, product_id)
    patch = validate_payload(table=products, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(store, patch)

    variant_list = patch.pop("variants", None)
    columns: dict = {}
    for key, value in patch.items():
        if key == "pricing":
            columns["pricing_json"] = json_dumps(value) if value is not None else None
        elif key in ("short_desc", "description") and value is None:
            columns[key] = ""
        else:
            columns[key] = value
    if image_path:
        columns["image"] = image_path

    now = now_iso()
    try:
        with store.transaction():
            assignments = "".join(f"{k} = :{k}, " for k in columns)
            store.prepare(
                f"UPDATE products SET {assignments}updated_at = :updated_at WHERE id = :id"
            ).run({**columns, "updated_at": now, "id": product_id})

            if variant_list is not None:
                store.prepare("DELETE FROM variants WHERE product_id = ?").run(product_id)
                for variant in variant_list:
                    insert_variant_row(store, product_id, variant, now=now)
    except IntegrityError as e:
        raise conflict_from_integrity(e) from e

    if image_path and existing.image and existing.image != image_path and uploads is not None:
        uploads.remove(existing.image)

    updated = get_product(store, product_id)
    log_audit(store, admin_id=actor_id, action="update", entity="product",
              entity_id=product_id, details={"title": updated.title})
    return updated


def set_product_status(store: Store, *, product_id: int, status: str, actor_id: int | None = None) -> str:
    if status not in PRODUCT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(PRODUCT_STATUSES)}")
    get_product(store, product_id)
    store.prepare("UPDATE products SET status = ?, updated_at = ? WHERE id = ?").run(
        status, now_iso(), product_id
    )
    log_audit(store, admin_id=actor_id, action="publish", entity="product",
              entity_id=product_id, details={"status": status})
    return status


def delete_product(
    store: Store,
    *,
    product_id: int,
    uploads: UploadStorage | None = None,
    actor_id: int | None = None,
) -> None:
    """Remove the image (best-effort), then the row; variants and adjustments cascade."""
    product = get_product(store, product_id)
    if product.image and uploads is not None:
        uploads.remove(product.image)
    store.prepare("DELETE FROM products WHERE id = ?").run(product_id)
    log_audit(store, admin_id=actor_id, action="delete", entity="product",
              entity_id=product_id, details={"title": product.title})
