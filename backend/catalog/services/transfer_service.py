# Overview: Catalog export (JSON/CSV) and import with foreign-key remapping.

# backend/catalog/services/transfer_service.py
"""
Import / Export Service

Export:
- JSON: full rows of categories, products, variants and inventory adjustments.
- CSV: one entity type per file, fixed column sets.

Import (each call is ONE transaction; any failure rolls back everything):
- JSON: categories are matched by slug (reused) or inserted; products get
  their category_id remapped through the category id map (NULL if unmapped);
  variants get product_id remapped, and are dropped if their product was not
  imported.
- CSV / XLSX: products only, category resolved by category_slug.
"""
from __future__ import annotations

import csv
import io
import json
from typing import Any, Iterable

from openpyxl import load_workbook
from sqlalchemy.exc import IntegrityError

from ..models import PRODUCT_STATUSES
from ..models._json import json_dumps
from ..persistence import Store
from ..time_utils import now_iso
from ..validation import ValidationError, conflict_from_integrity, slugify
from .audit_service import log_audit

CSV_COLUMNS = {
    "products": [
        "id", "title", "short_desc", "description", "image", "category_id",
        "status", "low_stock_threshold", "pricing_json",
    ],
    "variants": [
        "id", "product_id", "sku", "attributes_json", "price", "stock_qty", "is_active",
    ],
    "inventory": [
        "id", "variant_id", "delta_qty", "reason", "performed_by", "created_at",
    ],
    "categories": [
        "id", "name", "slug", "description", "banner_title", "banner_subtitle",
        "banner_cta_text", "banner_cta_url", "sort_order", "is_active",
    ],
}

EXPORT_TABLES = {
    "products": "products",
    "variants": "variants",
    "inventory": "inventory_adjustments",
    "categories": "categories",
}

XLSX_EXTENSIONS = {"xlsx", "xlsm", "xltx", "xltm"}


# ----------------------------------------------------------------------
# Export
# ----------------------------------------------------------------------

def export_json(store: Store) -> dict:
    return {
        "categories": store.prepare("SELECT * FROM categories ORDER BY id").all(),
        "products": store.prepare("SELECT * FROM products ORDER BY id").all(),
        "variants": store.prepare("SELECT * FROM variants ORDER BY id").all(),
        "inventory": store.prepare("SELECT * FROM inventory_adjustments ORDER BY id").all(),
    }


def normalize_export_type(kind: str | None) -> str:
    """products / variants / inventory; anything else exports categories."""
    kind = (kind or "").strip().lower()
    return kind if kind in ("products", "variants", "inventory") else "categories"


def export_csv(store: Store, kind: str | None) -> str:
    kind = normalize_export_type(kind)
    columns = CSV_COLUMNS[kind]
    rows = store.prepare(f"SELECT * FROM {EXPORT_TABLES[kind]} ORDER BY id").all()

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=columns, extrasaction="ignore", lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({c: ("" if row.get(c) is None else row.get(c)) for c in columns})
    return buffer.getvalue()


# ----------------------------------------------------------------------
# Import helpers
# ----------------------------------------------------------------------

def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _optional_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool) or _text(value) == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _optional_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool) or _text(value) == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _flag(value: Any) -> int:
    """Imported is_active: only an explicit 0/false disables."""
    if value is None:
        return 1
    if isinstance(value, str):
        return 0 if value.strip().lower() in ("0", "false") else 1
    return 0 if value in (0, False) else 1


def _status(value: Any) -> str:
    status = _text(value).lower()
    return status if status in PRODUCT_STATUSES else "draft"


def _json_text(value: Any, fallback: Any) -> str | None:
    """Keep a serialized JSON column as text; encode decoded values."""
    if value is None or value == "":
        return json_dumps(fallback) if fallback is not None else None
    if isinstance(value, str):
        return value
    return json_dumps(value)


def _insert_product(store: Store, row: dict, category_id: int | None, now: str) -> int:
    pricing = row.get("pricing_json")
    if pricing in (None, "") and row.get("pricing") not in (None, ""):
        pricing = row.get("pricing")
    info = store.prepare(
        """
        INSERT INTO products (title, short_desc, description, image, category_id, status,
            low_stock_threshold, pricing_json, created_at, updated_at)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
    ).run(
        _text(row.get("title")),
        _text(row.get("short_desc")),
        _text(row.get("description")),
        _text(row.get("image")),
        category_id,
        _status(row.get("status")),
        _optional_int(row.get("low_stock_threshold")),
        _json_text(pricing, None),
        now,
        now,
    )
    return info.last_insert_id


# ----------------------------------------------------------------------
# JSON import
# ----------------------------------------------------------------------

def parse_json_import(raw: str | bytes) -> dict:
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        raise ValidationError("Invalid import file.")
    if not isinstance(data, dict):
        raise ValidationError("Invalid import file.")
    # An export response body wraps the payload in "data"
    if isinstance(data.get("data"), dict):
        data = data["data"]
    return data


def import_json(store: Store, data: dict, *, actor_id: int | None = None) -> dict:
    """
    Import a JSON export into the live database.

    Returns a summary of created / reused / skipped counts.

    Raises:
        ValidationError: payload is not an object of lists
        ConflictError: a category name or variant SKU collides; nothing is written
    """
    if not isinstance(data, dict):
        raise ValidationError("Invalid import file.")

    def _list(key: str) -> list:
        value = data.get(key)
        return [item for item in value if isinstance(item, dict)] if isinstance(value, list) else []

    categories, products, variants = _list("categories"), _list("products"), _list("variants")
    summary = {
        "categories_created": 0, "categories_reused": 0, "categories_skipped": 0,
        "products_created": 0, "products_skipped": 0,
        "variants_created": 0, "variants_skipped": 0,
    }
    category_ids: dict[str, int] = {}
    product_ids: dict[str, int] = {}
    now = now_iso()

    try:
        with store.transaction():
            for cat in categories:
                name = _text(cat.get("name"))
                slug = slugify(cat.get("slug"))
                if not name or not slug:
                    summary["categories_skipped"] += 1
                    continue
                existing = store.prepare("SELECT id FROM categories WHERE slug = ?").get(slug)
                if existing is not None:
                    category_ids[_text(cat.get("id"))] = existing["id"]
                    summary["categories_reused"] += 1
                    continue
                info = store.prepare(
                    """
                    INSERT INTO categories (name, slug, description, banner_title, banner_subtitle,
                        banner_cta_text, banner_cta_url, sort_order, is_active, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """
                ).run(
                    name,
                    slug,
                    _text(cat.get("description")),
                    _text(cat.get("banner_title")),
                    _text(cat.get("banner_subtitle")),
                    _text(cat.get("banner_cta_text")),
                    _text(cat.get("banner_cta_url")),
                    _optional_int(cat.get("sort_order")) or 0,
                    _flag(cat.get("is_active")),
                    now,
                    now,
                )
                category_ids[_text(cat.get("id"))] = info.last_insert_id
                summary["categories_created"] += 1

            for prod in products:
                if not _text(prod.get("title")):
                    summary["products_skipped"] += 1
                    continue
                old_category = _text(prod.get("category_id"))
                category_id = category_ids.get(old_category) if old_category else None
                product_ids[_text(prod.get("id"))] = _insert_product(store, prod, category_id, now)
                summary["products_created"] += 1

            for variant in variants:
                product_id = product_ids.get(_text(variant.get("product_id")))
                if not product_id:
                    summary["variants_skipped"] += 1
                    continue
                stock = variant.get("stock_qty", variant.get("stockQty"))
                store.prepare(
                    """
                    INSERT INTO variants (product_id, sku, attributes_json, price, stock_qty, is_active,
                        created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """
                ).run(
                    product_id,
                    _text(variant.get("sku")) or None,
                    _json_text(variant.get("attributes_json") or variant.get("attributes"), {}),
                    _optional_float(variant.get("price")),
                    max(0, _optional_int(stock) or 0),
                    _flag(variant.get("is_active")),
                    now,
                    now,
                )
                summary["variants_created"] += 1
    except IntegrityError as e:
        raise conflict_from_integrity(e) from e

    log_audit(store, admin_id=actor_id, action="import", entity="database",
              details={"format": "json", **summary})
    return summary


# ----------------------------------------------------------------------
# Tabular (CSV / XLSX) product import
# ----------------------------------------------------------------------

def parse_csv_rows(raw: str | bytes) -> list[dict]:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError("CSV file must be UTF-8 encoded")
    try:
        reader = csv.DictReader(io.StringIO(raw, newline=""), strict=True)
        if not reader.fieldnames:
            raise ValidationError("CSV file has no header row")
        return [row for row in reader]
    except csv.Error as e:
        raise ValidationError(f"Invalid CSV: {e}")


def parse_xlsx_rows(raw: bytes) -> list[dict]:
    try:
        wb = load_workbook(io.BytesIO(raw), data_only=True)
    except Exception:
        raise ValidationError("Invalid spreadsheet file")
    try:
        data = list(wb.active.values)
    finally:
        wb.close()
    if not data:
        return []
    headers = [str(h).strip() if h is not None else "" for h in data[0]]
    return [
        {headers[i]: row[i] for i in range(min(len(headers), len(row))) if headers[i]}
        for row in data[1:]
    ]


def import_products_rows(
    store: Store,
    rows: Iterable[dict],
    *,
    actor_id: int | None = None,
    source_format: str = "csv",
) -> dict:
    """
    Insert products from tabular rows; rows without a title are skipped.

    category_slug (if present) is resolved against existing categories;
    unknown slugs leave the product uncategorized.
    """
    slug_to_id = {
        row["slug"]: row["id"] for row in store.prepare("SELECT id, slug FROM categories").all()
    }
    summary = {"products_created": 0, "products_skipped": 0}
    now = now_iso()

    try:
        with store.transaction():
            for row in rows:
                if not _text(row.get("title")):
                    summary["products_skipped"] += 1
                    continue
                slug = _text(row.get("category_slug"))
                _insert_product(store, row, slug_to_id.get(slug) if slug else None, now)
                summary["products_created"] += 1
    except IntegrityError as e:
        raise conflict_from_integrity(e) from e

    log_audit(store, admin_id=actor_id, action="import", entity="product",
              details={"format": source_format, **summary})
    return summary


def import_products_file(
    store: Store,
    raw: bytes,
    *,
    filename: str = "",
    actor_id: int | None = None,
) -> dict:
    """Dispatch on file extension: spreadsheets via openpyxl, everything else as CSV."""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext in XLSX_EXTENSIONS:
        return import_products_rows(store, parse_xlsx_rows(raw), actor_id=actor_id, source_format="xlsx")
    return import_products_rows(store, parse_csv_rows(raw), actor_id=actor_id, source_format="csv")
