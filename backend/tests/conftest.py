"""
Pytest fixtures for catalog backend tests.

Every test gets its own database file, uploads and backup directories under
tmp_path, so tests never share state.
"""

import io
import os

import pytest

from catalog import create_app
from catalog.extensions import STORE_KEY, UPLOADS_KEY
from catalog.persistence import Store
from catalog.schema import init_schema
from catalog.services import auth_service
from catalog.services.upload_service import UploadStorage


ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "Password123!"

# Smallest valid PNG header is enough: uploads are checked by extension + mimetype
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Cost factor 4 keeps hashing fast in tests."""
    monkeypatch.setattr(auth_service, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope='function')
def db_path(tmp_path):
    return str(tmp_path / "data" / "catalog.db")


@pytest.fixture(scope='function')
def store(db_path):
    """Open Store with schema, no seed categories."""
    s = Store(db_path).open()
    init_schema(s, seed=False)
    yield s
    s.close()


@pytest.fixture(scope='function')
def uploads(tmp_path):
    storage = UploadStorage(str(tmp_path / "uploads"))
    storage.ensure_dirs()
    return storage


@pytest.fixture(scope='function')
def app(tmp_path):
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret',
        'DATABASE_PATH': str(tmp_path / "app" / "catalog.db"),
        'UPLOADS_DIR': str(tmp_path / "app" / "uploads"),
        'BACKUP_DIR': str(tmp_path / "app" / "backups"),
        'ADMIN_SEED_PATH': str(tmp_path / "app" / "admin_seed.json"),
        'LEGACY_UPLOADS_DIR': None,
        'ADMIN_EMAIL': ADMIN_EMAIL,
        'ADMIN_PASSWORD': ADMIN_PASSWORD,
        'ADMIN_NAME': 'Admin',
        'SESSION_COOKIE_SECURE': False,
    })
    yield app
    app.extensions[STORE_KEY].close()


@pytest.fixture(scope='function')
def app_store(app):
    return app.extensions[STORE_KEY]


@pytest.fixture(scope='function')
def app_uploads(app):
    return app.extensions[UPLOADS_KEY]


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def admin_client(client):
    """Test client with an authenticated admin session."""
    resp = client.post("/api/admin/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD})
    assert resp.status_code == 200, resp.get_json()
    return client


def image_upload(name: str = "photo.png", mimetype: str = "image/png", data: bytes = PNG_BYTES):
    """Multipart file tuple for the Flask test client."""
    return (io.BytesIO(data), name, mimetype)


def make_category(store, name="Binding", slug=None, **extra):
    from catalog.services import category_service

    payload = {"name": name, **extra}
    if slug is not None:
        payload["slug"] = slug
    return category_service.create_category(store, payload=payload)


def make_product(store, title="Spiral Binder", variants=None, image_path="/uploads/test.png", **extra):
    from catalog.services import product_service

    payload = {"title": title, "description": f"{title} description", **extra}
    if variants is not None:
        payload["variants"] = variants
    return product_service.create_product(store, payload=payload, image_path=image_path)


def file_row_count(path: str, table: str) -> int:
    """Count rows as stored in the database FILE (not the in-memory image)."""
    import sqlite3

    if not os.path.exists(path):
        return 0
    conn = sqlite3.connect(path)
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()
