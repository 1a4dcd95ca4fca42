# Overview: Service-layer operations for categories; slug rules and set-null deletion.

# backend/catalog/services/category_service.py
"""
Category Service

- Slugs are always normalized with slugify(), whether derived from the name
  or supplied explicitly. Uniqueness is enforced by the storage constraint and
  surfaces as ConflictError.
- Updates are partial: keys absent from the patch keep their stored value.
- Deleting a category never deletes products: their category_id is cleared
  first, then the category row is removed, in one transaction.
"""
from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..models import Category
from ..persistence import Store
from ..schema import categories
from ..time_utils import now_iso
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    ValidationError,
    conflict_from_integrity,
    slugify,
    validate_payload,
)
from .audit_service import log_audit

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "slug", "description", "banner_title", "banner_subtitle",
        "banner_cta_text", "banner_cta_url", "sort_order", "is_active",
    },
    required_on_create={"name"},
)

CATEGORY_TEXT_FIELDS = (
    "description", "banner_title", "banner_subtitle", "banner_cta_text", "banner_cta_url",
)


def _resolve_slug(raw_slug, fallback: str) -> str:
    slug = slugify(raw_slug) if raw_slug else slugify(fallback)
    if not slug:
        raise ValidationError("Category slug cannot be empty.")
    return slug


def get_category(store: Store, category_id: int) -> Category:
    category = store.prepare(
        "SELECT * FROM categories WHERE id = ?", into=Category.from_row
    ).get(category_id)
    if category is None:
        raise NotFoundError("Category not found.")
    return category


def get_category_by_slug(store: Store, slug: str, *, active_only: bool = True) -> Category:
    sql = "SELECT * FROM categories WHERE slug = ?"
    if active_only:
        sql += " AND is_active = 1"
    category = store.prepare(sql, into=Category.from_row).get(slug)
    if category is None:
        raise NotFoundError("Category not found")
    return category


def list_categories(store: Store, *, active_only: bool = False) -> list[Category]:
    where = "WHERE is_active = 1" if active_only else ""
    return store.prepare(
        f"SELECT * FROM categories {where} ORDER BY sort_order, name",
        into=Category.from_row,
    ).all()


def create_category(store: Store, *, payload: dict, actor_id: int | None = None) -> int:
    """
    Create a category and return its id.

    Raises:
        ValidationError: name missing, or slug empty after normalization
        ConflictError: name or slug already used
    """
    patch = validate_payload(table=categories, payload=payload, policy=CATEGORY_POLICY, partial=False)
    name = patch["name"]
    slug = _resolve_slug(patch.get("slug"), name)
    now = now_iso()

    try:
        info = store.prepare(
            """
            INSERT INTO categories (name, slug, description, banner_title, banner_subtitle,
                banner_cta_text, banner_cta_url, sort_order, is_active, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """
        ).run(
            name,
            slug,
            *(patch.get(f) or "" for f in CATEGORY_TEXT_FIELDS),
            patch.get("sort_order") or 0,
            1 if patch.get("is_active", True) else 0,
            now,
            now,
        )
    except IntegrityError as e:
        raise conflict_from_integrity(e) from e

    category_id = info.last_insert_id
    log_audit(store, admin_id=actor_id, action="create", entity="category",
              entity_id=category_id, details={"name": name, "slug": slug})
    return category_id


def update_category(store: Store, *, category_id: int, payload: dict, actor_id: int | None = None) -> Category:
    current = get_category(store, category_id)
    patch = validate_payload(table=categories, payload=payload, policy=CATEGORY_POLICY, partial=True)

    if "slug" in patch:
        patch["slug"] = _resolve_slug(patch["slug"], patch.get("name") or current.name)
    if "sort_order" in patch and patch["sort_order"] is None:
        patch["sort_order"] = 0

    if patch:
        assignments = ", ".join(f"{k} = :{k}" for k in patch)
        params = {k: (int(v) if isinstance(v, bool) else v) for k, v in patch.items()}
        params.update({"updated_at": now_iso(), "id": category_id})
        try:
            store.prepare(
                f"UPDATE categories SET {assignments}, updated_at = :updated_at WHERE id = :id"
            ).run(params)
        except IntegrityError as e:
            raise conflict_from_integrity(e) from e

    updated = get_category(store, category_id)
    log_audit(store, admin_id=actor_id, action="update", entity="category",
              entity_id=category_id, details={"name": updated.name, "slug": updated.slug})
    return updated


def delete_category(store: Store, *, category_id: int, actor_id: int | None = None) -> None:
    """Clear products' category reference, then delete the category."""
    category = get_category(store, category_id)

    with store.transaction():
        store.prepare("UPDATE products SET category_id = NULL WHERE category_id = ?").run(category_id)
        store.prepare("DELETE FROM categories WHERE id = ?").run(category_id)

    log_audit(store, admin_id=actor_id, action="delete", entity="category",
              entity_id=category_id, details={"name": category.name})
