"""
HTTP API tests.

Verifies:
- Admin endpoints return 401 without a session
- Login / logout / me / env-check
- Public endpoints only expose published products and active categories
- Product multipart create with image upload, publish, stock adjustment
- Error bodies use {"error": ...} with 400 / 404 / 409
- Export / import, backups, uploads, health
"""

import io
import json
import os

import pytest

from catalog.services import auth_service

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD, image_upload


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/admin/me"),
            ("POST", "/api/admin/logout"),
            ("GET", "/api/admin/categories"),
            ("POST", "/api/admin/categories"),
            ("GET", "/api/admin/products"),
            ("POST", "/api/admin/products"),
            ("POST", "/api/admin/products/1/publish"),
            ("GET", "/api/admin/variants"),
            ("POST", "/api/admin/variants/1/adjust-stock"),
            ("GET", "/api/admin/inventory-adjustments"),
            ("GET", "/api/admin/audit"),
            ("GET", "/api/admin/admins"),
            ("GET", "/api/admin/db/status"),
            ("POST", "/api/admin/db/backup"),
            ("GET", "/api/admin/db/download"),
            ("GET", "/api/admin/export"),
            ("POST", "/api/admin/import"),
        ],
    )
    def test_requires_admin(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json() == {"error": "Unauthorized"}


# =============================================================================
# SESSION
# =============================================================================


class TestSession:

    def test_login_requires_fields(self, client):
        resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL})
        assert resp.status_code == 400

    def test_invalid_credentials(self, client):
        resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": "nope-nope"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid credentials"

    def test_login_me_logout(self, client):
        resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        assert resp.status_code == 200
        assert resp.get_json()["admin"]["email"] == ADMIN_EMAIL

        me = client.get("/api/admin/me")
        assert me.status_code == 200
        assert "password_hash" not in me.get_json()["admin"]

        assert client.post("/api/admin/logout").status_code == 200
        assert client.get("/api/admin/me").status_code == 401

    def test_session_for_deleted_admin_is_rejected(self, admin_client, app_store):
        app_store.prepare("DELETE FROM admins").run()
        assert admin_client.get("/api/admin/me").status_code == 401

    def test_env_check_hides_secrets(self, client):
        data = client.get("/api/admin/env-check").get_json()
        assert data["admin_email"] == ADMIN_EMAIL
        assert data["has_admin_password"] is True
        assert data["admin_count"] == 1
        assert ADMIN_PASSWORD not in json.dumps(data)

    def test_login_save_failure_is_not_a_bootstrap_failure(self, client, app_store, monkeypatch):
        stale_hash = auth_service.hash_password("rotated-password")
        app_store.prepare("UPDATE admins SET password_hash = ?").run(stale_hash)

        def broken_snapshot(target_path):
            raise OSError("disk full")

        monkeypatch.setattr(app_store, "snapshot", broken_snapshot)
        resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
        assert resp.status_code == 500
        assert resp.get_json() == {"error": "Failed to save changes"}


# =============================================================================
# NON-OBJECT JSON BODIES (400)
# =============================================================================


class TestNonObjectJsonBody:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("POST", "/api/admin/login"),
            ("POST", "/api/admin/categories"),
            ("PUT", "/api/admin/categories/1"),
            ("POST", "/api/admin/products"),
            ("PUT", "/api/admin/products/{product_id}"),
            ("POST", "/api/admin/products/{product_id}/publish"),
            ("POST", "/api/admin/variants"),
            ("PUT", "/api/admin/variants/{variant_id}"),
            ("POST", "/api/admin/variants/{variant_id}/adjust-stock"),
            ("POST", "/api/admin/admins"),
        ],
    )
    @pytest.mark.parametrize("body", [[1, 2], "text", 5])
    def test_rejected_as_invalid_payload(self, admin_client, method, path, body):
        product = create_product(admin_client, variants=json.dumps([{"sku": "NO-1", "stock_qty": 3}])).get_json()
        ids = {"product_id": product["product"]["id"], "variant_id": product["product"]["variants"][0]["id"]}

        resp = getattr(admin_client, method.lower())(path.format(**ids), json=body)
        assert resp.status_code == 400, f"{method} {path} returned {resp.status_code}"
        assert resp.get_json() == {"error": "Invalid JSON payload"}

        stock = admin_client.get("/api/admin/variants").get_json()["variants"][0]["stock_qty"]
        assert stock == 3


# =============================================================================
# PUBLIC CATALOG
# =============================================================================


def create_product(admin_client, **fields):
    data = {"title": "Spiral Binder", "description": "A4 binder", "image": image_upload()}
    data.update(fields)
    return admin_client.post("/api/admin/products", data=data, content_type="multipart/form-data")


class TestPublicCatalog:

    def test_seeded_categories_listed(self, client):
        categories = client.get("/api/categories").get_json()["categories"]
        assert len(categories) == 11
        assert categories[0]["slug"] == "lamination"

    def test_only_published_products_visible(self, admin_client):
        draft = create_product(admin_client, title="Draft").get_json()["product"]
        published = create_product(admin_client, title="Live", status="published").get_json()["product"]

        titles = [p["title"] for p in admin_client.get("/api/products").get_json()["products"]]
        assert titles == ["Live"]
        assert admin_client.get(f"/api/products/{draft['id']}").status_code == 404
        assert admin_client.get(f"/api/products/{published['id']}").status_code == 200

    def test_category_products(self, admin_client):
        categories = admin_client.get("/api/categories").get_json()["categories"]
        binding = next(c for c in categories if c["slug"] == "binding")
        create_product(admin_client, title="Comb", status="published", category_id=str(binding["id"]))

        body = admin_client.get("/api/categories/binding/products").get_json()
        assert body["category"]["name"] == "Binding"
        assert [p["title"] for p in body["products"]] == ["Comb"]

    def test_unknown_category_slug(self, client):
        resp = client.get("/api/categories/does-not-exist/products")
        assert resp.status_code == 404
        assert "error" in resp.get_json()


# =============================================================================
# ADMIN CATALOG
# =============================================================================


class TestAdminProducts:

    def test_multipart_create_stores_image(self, admin_client, app_uploads):
        resp = create_product(
            admin_client,
            pricing=json.dumps([{"moq": 10, "price": 4.5}]),
            variants=json.dumps([{"sku": "SB-1", "stock_qty": 10, "price": 120}]),
        )
        assert resp.status_code == 201, resp.get_json()
        product = resp.get_json()["product"]
        assert product["image"].startswith("/uploads/product-")
        assert product["pricing"] == [{"moq": 10, "price": 4.5}]
        assert product["variants"][0]["sku"] == "SB-1"
        assert os.path.exists(app_uploads.resolve_path(product["image"]))

        served = admin_client.get(product["image"])
        assert served.status_code == 200

    def test_create_without_image(self, admin_client):
        resp = admin_client.post(
            "/api/admin/products",
            data={"title": "No image", "description": "x"},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400
        assert "image" in resp.get_json()["error"]

    def test_non_image_upload_rejected(self, admin_client):
        resp = create_product(admin_client, image=(io.BytesIO(b"hello"), "notes.txt", "text/plain"))
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Only image files are allowed"

    def test_duplicate_sku_conflict_removes_new_image(self, admin_client, app_uploads):
        create_product(admin_client, variants=json.dumps([{"sku": "DUP"}]))
        before = set(os.listdir(app_uploads.uploads_dir))
        resp = create_product(admin_client, variants=json.dumps([{"sku": "DUP"}]))
        assert resp.status_code == 409
        assert set(os.listdir(app_uploads.uploads_dir)) == before

    def test_update_publish_delete(self, admin_client, app_uploads):
        product = create_product(admin_client).get_json()["product"]
        pid = product["id"]

        resp = admin_client.put(f"/api/admin/products/{pid}", json={"short_desc": "Updated"})
        assert resp.status_code == 200
        assert resp.get_json()["product"]["short_desc"] == "Updated"
        assert resp.get_json()["product"]["title"] == "Spiral Binder"

        resp = admin_client.post(f"/api/admin/products/{pid}/publish", json={"status": "published"})
        assert resp.get_json() == {"ok": True, "status": "published"}

        image_file = app_uploads.resolve_path(product["image"])
        assert admin_client.delete(f"/api/admin/products/{pid}").status_code == 200
        assert not os.path.exists(image_file)
        assert admin_client.get(f"/api/admin/products/{pid}").status_code == 404

    def test_unknown_field_rejected(self, admin_client):
        product = create_product(admin_client).get_json()["product"]
        resp = admin_client.put(f"/api/admin/products/{product['id']}", json={"image_url": "x"})
        assert resp.status_code == 400

    def test_admin_list_has_counts(self, admin_client):
        create_product(admin_client, variants=json.dumps([{"sku": "A", "stock_qty": 2}, {"sku": "B", "stock_qty": 3}]))
        product = admin_client.get("/api/admin/products").get_json()["products"][0]
        assert product["variant_count"] == 2
        assert product["stock_total"] == 5


class TestAdminCategories:

    def test_create_conflict_and_delete(self, admin_client):
        resp = admin_client.post("/api/admin/categories", json={"name": "Office Paper"})
        assert resp.status_code == 201
        category = resp.get_json()["category"]
        assert category["slug"] == "office-paper"

        dup = admin_client.post("/api/admin/categories", json={"name": "Paper", "slug": "Office Paper"})
        assert dup.status_code == 409

        assert admin_client.delete(f"/api/admin/categories/{category['id']}").status_code == 200
        assert admin_client.delete(f"/api/admin/categories/{category['id']}").status_code == 404


class TestStock:

    def _variant_id(self, admin_client, stock=10):
        create_product(admin_client, variants=json.dumps([{"sku": "SB-1", "stock_qty": stock}]))
        return admin_client.get("/api/admin/variants").get_json()["variants"][0]["id"]

    def test_adjust_stock_clamps(self, admin_client):
        variant_id = self._variant_id(admin_client)
        resp = admin_client.post(f"/api/admin/variants/{variant_id}/adjust-stock",
                                 json={"delta": -15, "reason": "damage"})
        assert resp.get_json() == {"stock_qty": 0}

        ledger = admin_client.get("/api/admin/inventory-adjustments").get_json()["adjustments"]
        assert ledger[0]["delta_qty"] == -15
        assert ledger[0]["sku"] == "SB-1"

    @pytest.mark.parametrize("delta", [0, "abc", None, 1.5])
    def test_invalid_delta(self, admin_client, delta):
        variant_id = self._variant_id(admin_client)
        resp = admin_client.post(f"/api/admin/variants/{variant_id}/adjust-stock", json={"delta": delta})
        assert resp.status_code == 400

    def test_missing_variant(self, admin_client):
        resp = admin_client.post("/api/admin/variants/999/adjust-stock", json={"delta": 1})
        assert resp.status_code == 404


class TestAdmins:

    def test_cannot_delete_self(self, admin_client):
        me = admin_client.get("/api/admin/me").get_json()["admin"]
        resp = admin_client.delete(f"/api/admin/admins/{me['id']}")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "You cannot delete your own account."

    def test_create_and_delete_other(self, admin_client):
        resp = admin_client.post("/api/admin/admins", json={"email": "second@example.com", "password": "longenough"})
        assert resp.status_code == 201
        other = resp.get_json()["admin"]

        dup = admin_client.post("/api/admin/admins", json={"email": "second@example.com", "password": "longenough"})
        assert dup.status_code == 409

        assert admin_client.delete(f"/api/admin/admins/{other['id']}").status_code == 200
        emails = [a["email"] for a in admin_client.get("/api/admin/admins").get_json()["admins"]]
        assert emails == [ADMIN_EMAIL]

    def test_audit_log_lists_actions(self, admin_client):
        admin_client.post("/api/admin/categories", json={"name": "Audited"})
        entries = admin_client.get("/api/admin/audit").get_json()["entries"]
        actions = [(e["action"], e["entity"]) for e in entries]
        assert ("create", "category") in actions
        assert ("login", "admin") in actions
        assert entries[0]["admin_email"] == ADMIN_EMAIL


# =============================================================================
# TRANSFER / DATABASE / SYSTEM
# =============================================================================


class TestTransfer:

    def test_export_csv(self, admin_client):
        resp = admin_client.get("/api/admin/export?format=csv&type=products")
        assert resp.status_code == 200
        assert resp.mimetype == "text/csv"
        assert "export-products.csv" in resp.headers["Content-Disposition"]
        assert resp.get_data(as_text=True).splitlines()[0].startswith("id,title,")

    def test_export_json(self, admin_client):
        data = admin_client.get("/api/admin/export").get_json()["data"]
        assert len(data["categories"]) == 11

    def test_import_requires_file(self, admin_client):
        resp = admin_client.post("/api/admin/import", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400

    def test_import_json(self, admin_client):
        payload = {"products": [{"id": 1, "title": "Imported"}], "variants": [{"product_id": 1, "sku": "IMP-1"}]}
        resp = admin_client.post(
            "/api/admin/import?format=json",
            data={"file": (io.BytesIO(json.dumps(payload).encode()), "export.json")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        assert resp.get_json()["summary"]["variants_created"] == 1

    def test_import_malformed_json(self, admin_client):
        resp = admin_client.post(
            "/api/admin/import?format=json",
            data={"file": (io.BytesIO(b"{oops"), "export.json")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_csv_import_products_only(self, admin_client):
        resp = admin_client.post(
            "/api/admin/import?format=csv&type=variants",
            data={"file": (io.BytesIO(b"sku\nA\n"), "variants.csv")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 400

    def test_csv_import(self, admin_client):
        resp = admin_client.post(
            "/api/admin/import?format=csv&type=products",
            data={"file": (io.BytesIO(b"title,category_slug\nCSV Product,binding\n"), "products.csv")},
            content_type="multipart/form-data",
        )
        assert resp.status_code == 200
        titles = [p["title"] for p in admin_client.get("/api/admin/products").get_json()["products"]]
        assert titles == ["CSV Product"]


class TestDatabase:

    def test_backup_status_download(self, admin_client):
        resp = admin_client.post("/api/admin/db/backup")
        assert resp.status_code == 201
        name = resp.get_json()["backup"]["name"]

        status = admin_client.get("/api/admin/db/status").get_json()
        assert status["database"]["exists"] is True
        assert [b["name"] for b in status["backups"]] == [name]

        download = admin_client.get(f"/api/admin/db/download?name={name}")
        assert download.status_code == 200
        assert name in download.headers["Content-Disposition"]

        live = admin_client.get("/api/admin/db/download")
        assert live.status_code == 200
        assert "live-catalog.db" in live.headers["Content-Disposition"]

    def test_download_rejects_bad_names(self, admin_client):
        assert admin_client.get("/api/admin/db/download?name=secrets.txt").status_code == 400
        assert admin_client.get("/api/admin/db/download?name=missing.db").status_code == 404


def test_health(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "healthy"


def test_missing_upload_is_404(client):
    assert client.get("/uploads/nothing-here.png").status_code == 404


def test_cors_header_for_allowed_origin(client):
    resp = client.get("/health", headers={"Origin": "http://localhost:5173"})
    assert resp.headers["Access-Control-Allow-Origin"] == "http://localhost:5173"
