# backend/catalog/__init__.py
from __future__ import annotations

import atexit
import logging
import os

from flask import Flask, jsonify, request

from .config import Config
from .extensions import STORE_KEY, UPLOADS_KEY
from .persistence import PersistenceError, Store
from .schema import init_schema
from .services.auth_service import ensure_bootstrap_admin
from .services.upload_service import UploadStorage
from .validation import AuthorizationError, ValidationError


def _resolve_paths(app: Flask) -> None:
    """Fill unset storage paths with locations under the instance folder."""
    cfg = app.config
    cfg["DATABASE_PATH"] = cfg.get("DATABASE_PATH") or os.path.join(app.instance_path, "data", "catalog.db")
    db_dir = os.path.dirname(os.path.abspath(cfg["DATABASE_PATH"]))
    cfg["UPLOADS_DIR"] = cfg.get("UPLOADS_DIR") or os.path.join(app.instance_path, "uploads")
    cfg["BACKUP_DIR"] = cfg.get("BACKUP_DIR") or os.path.join(db_dir, "backups")
    cfg["ADMIN_SEED_PATH"] = cfg.get("ADMIN_SEED_PATH") or os.path.join(db_dir, "admin_seed.json")


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if test_config:
        app.config.update(test_config)
    _resolve_paths(app)

    logging.getLogger("catalog").setLevel(app.config.get("LOG_LEVEL") or "INFO")

    # Storage: one Store per app, opened here and closed at exit
    store = Store(app.config["DATABASE_PATH"]).open()
    init_schema(store)
    ensure_bootstrap_admin(store, app.config)
    app.extensions[STORE_KEY] = store
    atexit.register(store.close)

    uploads = UploadStorage(
        app.config["UPLOADS_DIR"],
        legacy_dir=app.config.get("LEGACY_UPLOADS_DIR"),
        max_bytes=app.config["IMAGE_MAX_BYTES"],
    )
    uploads.ensure_dirs()
    uploads.migrate_legacy()
    app.extensions[UPLOADS_KEY] = uploads

    # Register blueprints
    from .routes.system import system_bp
    from .routes.public import public_bp
    from .routes.auth import auth_bp
    from .routes.categories import categories_bp
    from .routes.products import products_bp
    from .routes.variants import variants_bp
    from .routes.inventory import inventory_bp
    from .routes.admins import admins_bp
    from .routes.audit import audit_bp
    from .routes.database import database_bp
    from .routes.transfer import transfer_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(public_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(variants_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(admins_bp)
    app.register_blueprint(audit_bp)
    app.register_blueprint(database_bp)
    app.register_blueprint(transfer_bp)

    @app.errorhandler(ValidationError)
    def handle_invalid_input(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(AuthorizationError)
    def handle_unauthorized(e):
        return jsonify({"error": str(e) or "Unauthorized"}), 401

    @app.errorhandler(PersistenceError)
    def handle_persistence_error(e):
        app.logger.exception("Database write failed")
        return jsonify({"error": "Failed to save changes"}), 500

    @app.errorhandler(413)
    def handle_too_large(e):
        return jsonify({"error": "Upload too large"}), 413

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
