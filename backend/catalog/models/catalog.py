from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ._json import safe_json_loads


PRODUCT_STATUSES = ("draft", "published")


@dataclass
class Category:
    """
    Product grouping with a unique, URL-safe slug.

    Weakly referenced by Product: deleting a category clears
    products.category_id instead of deleting products.
    """
    id: int
    name: str
    slug: str
    description: str | None = None
    banner_title: str | None = None
    banner_subtitle: str | None = None
    banner_cta_text: str | None = None
    banner_cta_url: str | None = None
    sort_order: int = 0
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Category":
        return cls(
            id=int(row["id"]),
            name=row["name"],
            slug=row["slug"],
            description=row.get("description"),
            banner_title=row.get("banner_title"),
            banner_subtitle=row.get("banner_subtitle"),
            banner_cta_text=row.get("banner_cta_text"),
            banner_cta_url=row.get("banner_cta_url"),
            sort_order=int(row.get("sort_order") or 0),
            is_active=bool(row.get("is_active", 1)),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "slug": self.slug,
            "description": self.description,
            "banner_title": self.banner_title,
            "banner_subtitle": self.banner_subtitle,
            "banner_cta_text": self.banner_cta_text,
            "banner_cta_url": self.banner_cta_url,
            "sort_order": self.sort_order,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass
class Variant:
    """
    Sellable variant of a product (size/color/...).

    Owned by its product (cascade delete). stock_qty never drops below zero
    through adjust_stock().
    """
    id: int
    product_id: int
    sku: str | None
    attributes: dict = field(default_factory=dict)
    price: float | None = None
    stock_qty: int = 0
    is_active: bool = True
    created_at: str | None = None
    updated_at: str | None = None
    # Joined columns (admin listing only)
    product_title: str | None = None
    low_stock_threshold: int | None = None
    category_id: int | None = None
    category_name: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Variant":
        return cls(
            id=int(row["id"]),
            product_id=int(row["product_id"]),
            sku=row.get("sku"),
            attributes=safe_json_loads(row.get("attributes_json"), {}),
            price=row.get("price"),
            stock_qty=int(row.get("stock_qty") or 0),
            is_active=bool(row.get("is_active", 1)),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            product_title=row.get("product_title"),
            low_stock_threshold=row.get("low_stock_threshold"),
            category_id=row.get("category_id"),
            category_name=row.get("category_name"),
        )

    @property
    def is_low_stock(self) -> bool:
        if self.low_stock_threshold is None:
            return False
        return self.stock_qty <= self.low_stock_threshold

    def to_dict(self, *, include_product: bool = False) -> dict:
        data = {
            "id": self.id,
            "product_id": self.product_id,
            "sku": self.sku or "",
            "attributes": self.attributes,
            "price": self.price,
            "stock_qty": self.stock_qty,
            "is_active": self.is_active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if include_product:
            data.update({
                "product_title": self.product_title,
                "low_stock_threshold": self.low_stock_threshold,
                "category_id": self.category_id,
                "category_name": self.category_name,
                "is_low_stock": self.is_low_stock,
            })
        return data


@dataclass
class Product:
    """
    Catalog product.

    - category_id is a weak reference (SET NULL on category delete)
    - pricing is an opaque list of MOQ/price tiers, stored as JSON
    - owns its variants (CASCADE) and its uploaded image file
    """
    id: int
    title: str
    short_desc: str | None = None
    description: str | None = None
    image: str | None = None
    category_id: int | None = None
    status: str = "draft"
    low_stock_threshold: int | None = None
    pricing: list = field(default_factory=list)
    created_at: str | None = None
    updated_at: str | None = None
    # Joined / aggregate columns
    category_name: str | None = None
    category_slug: str | None = None
    price_min: float | None = None
    variant_count: int | None = None
    stock_total: int | None = None
    variants: list[Variant] | None = None

    @classmethod
    def from_row(cls, row: dict) -> "Product":
        return cls(
            id=int(row["id"]),
            title=row["title"],
            short_desc=row.get("short_desc"),
            description=row.get("description"),
            image=row.get("image"),
            category_id=row.get("category_id"),
            status=row.get("status") or "draft",
            low_stock_threshold=row.get("low_stock_threshold"),
            pricing=safe_json_loads(row.get("pricing_json"), []),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            category_name=row.get("category_name"),
            category_slug=row.get("category_slug"),
            price_min=row.get("price_min"),
            variant_count=row.get("variant_count"),
            stock_total=row.get("stock_total"),
        )

    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "short_desc": self.short_desc or "",
            "description": self.description or "",
            "image": self.image or "",
            "category_id": self.category_id,
            "category": (
                {"id": self.category_id, "name": self.category_name, "slug": self.category_slug}
                if self.category_id else None
            ),
            "status": self.status,
            "low_stock_threshold": self.low_stock_threshold,
            "pricing": self.pricing,
            "price_min": self.price_min,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }
        if self.variant_count is not None:
            data["variant_count"] = self.variant_count
        if self.stock_total is not None:
            data["stock_total"] = self.stock_total
        if self.variants is not None:
            data["variants"] = [v.to_dict() for v in self.variants]
        return data


@dataclass
class InventoryAdjustment:
    """
    Append-only stock movement.

    delta_qty is the requested delta, not the clamped change applied to
    variants.stock_qty.
    """
    id: int
    variant_id: int
    delta_qty: int
    reason: str | None
    performed_by: int | None
    created_at: str
    sku: str | None = None
    product_title: str | None = None

    @classmethod
    def from_row(cls, row: dict) -> "InventoryAdjustment":
        return cls(
            id=int(row["id"]),
            variant_id=int(row["variant_id"]),
            delta_qty=int(row["delta_qty"]),
            reason=row.get("reason"),
            performed_by=row.get("performed_by"),
            created_at=row["created_at"],
            sku=row.get("sku"),
            product_title=row.get("product_title"),
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "variant_id": self.variant_id,
            "delta_qty": self.delta_qty,
            "reason": self.reason,
            "performed_by": self.performed_by,
            "created_at": self.created_at,
            "sku": self.sku,
            "product_title": self.product_title,
        }
