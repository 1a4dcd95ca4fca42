# Overview: Admin session routes (login, logout, current admin, env check).

# backend/catalog/routes/auth.py
"""
Admin authentication routes

- Session cookie carries admin_id only (signed with SECRET_KEY)
- Login re-applies the bootstrap admin when the configured credentials are
  used but the stored hash is stale
- env-check reports configuration presence, never values of secrets
"""

from flask import Blueprint, request, jsonify, current_app, g, session

from ..extensions import get_store
from ..persistence import PersistenceError
from . import json_object
from ..decorators import require_admin
from ..services import auth_service
from ..services.audit_service import log_audit


auth_bp = Blueprint("auth", __name__, url_prefix="/api/admin")


@auth_bp.post("/login")
def login_route():
    data = json_object() if request.is_json else request.form.to_dict()
    email = (data.get("email") or "").strip()
    password = data.get("password") or ""

    if not email or not password:
        return jsonify({"error": "Email and password are required."}), 400

    try:
        admin = auth_service.login(get_store(), current_app.config, email=email, password=password)
    except PersistenceError:
        raise
    except RuntimeError:
        current_app.logger.exception("Admin bootstrap failed during login")
        return jsonify({"error": "Admin bootstrap failed."}), 500

    if admin is None:
        return jsonify({"error": "Invalid credentials"}), 401

    session.clear()
    session["admin_id"] = admin.id
    return jsonify({"admin": admin.to_dict()})


@auth_bp.post("/logout")
@require_admin
def logout_route():
    admin_id = g.current_admin.id
    session.clear()
    log_audit(get_store(), admin_id=admin_id, action="logout", entity="admin", entity_id=admin_id)
    return jsonify({"ok": True})


@auth_bp.get("/me")
@require_admin
def me_route():
    return jsonify({"admin": g.current_admin.to_dict()})


@auth_bp.get("/env-check")
def env_check_route():
    cfg = current_app.config
    return jsonify({
        "has_session_secret": cfg.get("SECRET_KEY") not in (None, "", "dev-secret-key-change-me"),
        "admin_email": (cfg.get("ADMIN_EMAIL") or "").strip() or None,
        "has_admin_password": bool(cfg.get("ADMIN_PASSWORD")),
        "admin_count": auth_service.count_admins(get_store()),
    })
