"""
Import / export tests.

Verifies:
- JSON export -> import into an empty database reproduces the catalog
  with foreign keys remapped
- Categories are reused by slug; unmapped variants are dropped
- Any uniqueness failure rolls back the entire import
- CSV export column sets; CSV/XLSX product import
"""

import csv
import io
import json

import pytest
from openpyxl import Workbook

from catalog.persistence import Store
from catalog.schema import init_schema
from catalog.services import inventory_service, product_service, transfer_service
from catalog.validation import ConflictError, ValidationError

from conftest import make_category, make_product


@pytest.fixture
def other_store(tmp_path):
    s = Store(str(tmp_path / "other" / "catalog.db")).open()
    init_schema(s, seed=False)
    yield s
    s.close()


def populate(store):
    binding = make_category(store, name="Binding")
    make_category(store, name="Lamination")
    first = make_product(store, title="Binder", category_id=binding, status="published",
                         pricing=[{"moq": 10, "price": 5}],
                         variants=[{"sku": "B-1", "stock_qty": 4, "attributes": {"size": "A4"}}])
    make_product(store, title="Loose", variants=[{"sku": "L-1", "price": 2.5}])
    variant_id = product_service.get_product(store, first).variants[0].id
    inventory_service.adjust_stock(store, variant_id=variant_id, delta=3)


class TestJsonRoundTrip:

    def test_export_shape(self, store):
        populate(store)
        data = transfer_service.export_json(store)
        assert set(data) == {"categories", "products", "variants", "inventory"}
        assert len(data["categories"]) == 2
        assert len(data["products"]) == 2
        assert len(data["variants"]) == 2
        assert len(data["inventory"]) == 1

    def test_import_into_empty_database(self, store, other_store):
        populate(store)
        # Make ids diverge between the two databases
        make_category(other_store, name="Pre-existing")
        other_store.prepare("DELETE FROM categories").run()

        exported = json.loads(json.dumps(transfer_service.export_json(store)))
        summary = transfer_service.import_json(other_store, exported)

        assert summary["categories_created"] == 2
        assert summary["products_created"] == 2
        assert summary["variants_created"] == 2

        binder = other_store.prepare(
            "SELECT p.*, c.slug FROM products p JOIN categories c ON p.category_id = c.id WHERE p.title = ?"
        ).get("Binder")
        assert binder["slug"] == "binding"
        assert json.loads(binder["pricing_json"]) == [{"moq": 10, "price": 5}]

        variant = other_store.prepare("SELECT * FROM variants WHERE sku = ?").get("B-1")
        assert variant["product_id"] == binder["id"]
        assert variant["stock_qty"] == 7
        assert json.loads(variant["attributes_json"]) == {"size": "A4"}

        loose = other_store.prepare("SELECT category_id FROM products WHERE title = 'Loose'").get()
        assert loose["category_id"] is None

    def test_existing_slug_is_reused(self, store):
        existing = make_category(store, name="Binding")
        data = {
            "categories": [{"id": 77, "name": "Binding Renamed", "slug": "binding"}],
            "products": [{"id": 5, "title": "Imported", "category_id": 77}],
        }
        summary = transfer_service.import_json(store, data)
        assert summary["categories_reused"] == 1
        assert summary["categories_created"] == 0
        row = store.prepare("SELECT category_id FROM products WHERE title = 'Imported'").get()
        assert row["category_id"] == existing

    def test_skips_and_drops(self, store):
        data = {
            "categories": [{"id": 1, "name": "", "slug": "x"}],
            "products": [{"id": 1, "title": ""}, {"id": 2, "title": "Kept", "category_id": 1}],
            "variants": [{"product_id": 1, "sku": "ORPHAN"}, {"product_id": 2, "sku": "OK"}],
        }
        summary = transfer_service.import_json(store, data)
        assert summary["categories_skipped"] == 1
        assert summary["products_skipped"] == 1
        assert summary["variants_skipped"] == 1
        assert [r["sku"] for r in store.prepare("SELECT sku FROM variants").all()] == ["OK"]

    def test_conflict_rolls_back_everything(self, store):
        make_product(store, variants=[{"sku": "TAKEN"}])
        data = {
            "categories": [{"id": 1, "name": "New Cat", "slug": "new-cat"}],
            "products": [{"id": 1, "title": "New", "category_id": 1}],
            "variants": [{"product_id": 1, "sku": "TAKEN"}],
        }
        with pytest.raises(ConflictError):
            transfer_service.import_json(store, data)
        assert store.prepare("SELECT COUNT(*) AS n FROM categories").get()["n"] == 0
        assert store.prepare("SELECT COUNT(*) AS n FROM products").get()["n"] == 1

    def test_malformed_json(self):
        with pytest.raises(ValidationError):
            transfer_service.parse_json_import(b"{not json")
        with pytest.raises(ValidationError):
            transfer_service.parse_json_import(b"[1, 2]")

    def test_accepts_wrapped_export_body(self):
        assert transfer_service.parse_json_import('{"data": {"products": []}}') == {"products": []}


class TestCsv:

    def test_export_columns(self, store):
        populate(store)
        for kind, expected in transfer_service.CSV_COLUMNS.items():
            body = transfer_service.export_csv(store, kind)
            header = next(csv.reader(io.StringIO(body)))
            assert header == expected

    def test_unknown_type_exports_categories(self, store):
        make_category(store, name="Binding")
        body = transfer_service.export_csv(store, "whatever")
        rows = list(csv.DictReader(io.StringIO(body)))
        assert rows[0]["slug"] == "binding"

    def test_import_products(self, store):
        make_category(store, name="Binding")
        body = (
            "title,short_desc,description,category_slug,status,low_stock_threshold\n"
            "Comb Binder,short,long,binding,published,3\n"
            ",no title,,,,\n"
            "Orphan,,,missing-slug,,\n"
        )
        summary = transfer_service.import_products_file(store, body.encode("utf-8"), filename="products.csv")
        assert summary == {"products_created": 2, "products_skipped": 1}

        rows = store.prepare("SELECT title, category_id, status, low_stock_threshold FROM products ORDER BY id").all()
        assert rows[0]["status"] == "published"
        assert rows[0]["category_id"] is not None
        assert rows[0]["low_stock_threshold"] == 3
        assert rows[1] == {"title": "Orphan", "category_id": None, "status": "draft", "low_stock_threshold": None}

    def test_import_xlsx(self, store):
        wb = Workbook()
        ws = wb.active
        ws.append(["title", "description", "status"])
        ws.append(["Sheet Product", "from xlsx", "published"])
        buffer = io.BytesIO()
        wb.save(buffer)

        summary = transfer_service.import_products_file(store, buffer.getvalue(), filename="products.xlsx")
        assert summary["products_created"] == 1
        row = store.prepare("SELECT title, status FROM products").get()
        assert row == {"title": "Sheet Product", "status": "published"}

    def test_import_without_header(self, store):
        with pytest.raises(ValidationError):
            transfer_service.import_products_file(store, b"", filename="empty.csv")
