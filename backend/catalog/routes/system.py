# backend/catalog/routes/system.py
"""
System health and uploaded file serving.
"""

import os
import time
from flask import Blueprint, abort, current_app, send_from_directory

from ..extensions import get_store, get_uploads

system_bp = Blueprint("system", __name__)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        row = get_store().prepare("SELECT COUNT(*) AS count FROM products").get()
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {"products": row["count"] if row else 0},
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    status_code = 200 if database["status"] == "healthy" else 503
    return {"status": database["status"], "database": database}, status_code


@system_bp.get("/uploads/<path:filename>")
def uploaded_file(filename: str):
    """Serve product images, falling back to the legacy uploads directory."""
    path = get_uploads().resolve_path(f"/uploads/{filename}")
    if not path or not os.path.isfile(path):
        abort(404)
    return send_from_directory(os.path.dirname(path), os.path.basename(path))
