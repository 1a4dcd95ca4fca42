# Overview: Table metadata, idempotent schema creation, and reference seed data.

# backend/catalog/schema.py
"""
Catalog schema

Safe to run on every process start:
- Tables and indexes are emitted as CREATE ... IF NOT EXISTS (no versioned steps,
  no destructive alterations).
- Seed categories are inserted only when the categories table is empty.

Relationships:
- products.category_id -> categories.id            ON DELETE SET NULL
- variants.product_id  -> products.id              ON DELETE CASCADE
- inventory_adjustments.variant_id -> variants.id  ON DELETE CASCADE
- inventory_adjustments.performed_by -> admins.id  ON DELETE SET NULL
- audit_log.admin_id -> admins.id                  ON DELETE SET NULL
"""
from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.dialects import sqlite
from sqlalchemy.schema import CreateIndex, CreateTable

from .persistence import Store
from .time_utils import now_iso


metadata = sa.MetaData()


admins = sa.Table(
    "admins",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True),
    sa.Column("email", sa.Text(), nullable=False, unique=True),
    sa.Column("password_hash", sa.Text(), nullable=False),
    sa.Column("name", sa.Text(), nullable=True),
    sa.Column("role", sa.Text(), server_default="admin"),
    sa.Column("created_at", sa.Text(), nullable=False),
    sqlite_autoincrement=True,
)

categories = sa.Table(
    "categories",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True),
    sa.Column("name", sa.Text(), nullable=False, unique=True),
    sa.Column("slug", sa.Text(), nullable=False, unique=True),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("banner_title", sa.Text(), nullable=True),
    sa.Column("banner_subtitle", sa.Text(), nullable=True),
    sa.Column("banner_cta_text", sa.Text(), nullable=True),
    sa.Column("banner_cta_url", sa.Text(), nullable=True),
    sa.Column("sort_order", sa.Integer(), server_default="0"),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Column("updated_at", sa.Text(), nullable=False),
    sqlite_autoincrement=True,
)

products = sa.Table(
    "products",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True),
    sa.Column("title", sa.Text(), nullable=False),
    sa.Column("short_desc", sa.Text(), nullable=True),
    sa.Column("description", sa.Text(), nullable=True),
    sa.Column("image", sa.Text(), nullable=True),
    sa.Column(
        "category_id",
        sa.Integer(),
        sa.ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
    ),
    sa.Column("status", sa.Text(), server_default="draft"),
    sa.Column("low_stock_threshold", sa.Integer(), nullable=True),
    sa.Column("pricing_json", sa.Text(), nullable=True),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Column("updated_at", sa.Text(), nullable=False),
    sa.Index("idx_products_category", "category_id"),
    sa.Index("idx_products_status", "status"),
    sqlite_autoincrement=True,
)

variants = sa.Table(
    "variants",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True),
    sa.Column(
        "product_id",
        sa.Integer(),
        sa.ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column("sku", sa.Text(), nullable=True, unique=True),
    sa.Column("attributes_json", sa.Text(), nullable=True),
    sa.Column("price", sa.Float(), nullable=True),
    sa.Column("stock_qty", sa.Integer(), server_default="0"),
    sa.Column("is_active", sa.Boolean(), nullable=False, server_default="1"),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Column("updated_at", sa.Text(), nullable=False),
    sa.Index("idx_variants_product", "product_id"),
    sqlite_autoincrement=True,
)

inventory_adjustments = sa.Table(
    "inventory_adjustments",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True),
    sa.Column(
        "variant_id",
        sa.Integer(),
        sa.ForeignKey("variants.id", ondelete="CASCADE"),
        nullable=False,
    ),
    sa.Column("delta_qty", sa.Integer(), nullable=False),
    sa.Column("reason", sa.Text(), nullable=True),
    sa.Column(
        "performed_by",
        sa.Integer(),
        sa.ForeignKey("admins.id", ondelete="SET NULL"),
        nullable=True,
    ),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Index("idx_inventory_variant", "variant_id"),
    sqlite_autoincrement=True,
)

audit_log = sa.Table(
    "audit_log",
    metadata,
    sa.Column("id", sa.Integer(), primary_key=True),
    sa.Column(
        "admin_id",
        sa.Integer(),
        sa.ForeignKey("admins.id", ondelete="SET NULL"),
        nullable=True,
    ),
    sa.Column("action", sa.Text(), nullable=False),
    sa.Column("entity", sa.Text(), nullable=False),
    sa.Column("entity_id", sa.Text(), nullable=True),
    sa.Column("details_json", sa.Text(), nullable=True),
    sa.Column("created_at", sa.Text(), nullable=False),
    sa.Index("idx_audit_admin", "admin_id"),
    sqlite_autoincrement=True,
)


SEED_CATEGORIES = [
    ("Lamination", "lamination"),
    ("Binding", "binding"),
    ("Files & Folders", "files-folders"),
    ("ID Card & Lanyards", "id-cards-lanyards"),
    ("ID Cards", "id-card"),
    ("Photo Media & Inks", "photo-media-inks"),
    ("Printing Supplies", "printing-supplies"),
    ("School Stationery", "school-stationery"),
    ("Sublimation", "sublimation"),
    ("Note Counting", "note-counting"),
    ("Corporate Gifting", "corporate-gifting"),
]


def schema_ddl() -> str:
    """Compile CREATE TABLE / CREATE INDEX ... IF NOT EXISTS for every table."""
    dialect = sqlite.dialect()
    statements: list[str] = []
    for table in metadata.sorted_tables:
        statements.append(str(CreateTable(table, if_not_exists=True).compile(dialect=dialect)).strip())
        for index in sorted(table.indexes, key=lambda i: i.name):
            statements.append(str(CreateIndex(index, if_not_exists=True).compile(dialect=dialect)).strip())
    return ";\n".join(statements) + ";"


def migrate(store: Store) -> None:
    """Ensure all tables and indexes exist (idempotent)."""
    with store.transaction():
        store.execute(schema_ddl())


def seed_categories(store: Store) -> int:
    """
    Insert reference categories if the table is empty.

    Returns the number of rows inserted (0 when seeding was skipped).
    """
    row = store.prepare("SELECT COUNT(*) AS count FROM categories").get()
    if row and row["count"] > 0:
        return 0

    now = now_iso()
    insert = store.prepare(
        """
        INSERT INTO categories (name, slug, created_at, updated_at, is_active, sort_order)
        VALUES (:name, :slug, :created_at, :updated_at, 1, :sort_order)
        """
    )
    with store.transaction():
        for index, (name, slug) in enumerate(SEED_CATEGORIES, start=1):
            insert.run({
                "name": name,
                "slug": slug,
                "created_at": now,
                "updated_at": now,
                "sort_order": index,
            })
    return len(SEED_CATEGORIES)


def init_schema(store: Store, *, seed: bool = True) -> None:
    """Foreign keys on, tables ensured, reference data seeded."""
    store.pragma("foreign_keys = ON")
    migrate(store)
    if seed:
        seed_categories(store)
