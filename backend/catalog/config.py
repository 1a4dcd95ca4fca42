# backend/catalog/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Config:
    # Session signing key; SESSION_SECRET is the deploy-facing name
    SECRET_KEY = os.environ.get("SESSION_SECRET") or os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # Paths left as None resolve under the instance folder in create_app()
    DATABASE_PATH = os.environ.get("DATABASE_PATH")
    UPLOADS_DIR = os.environ.get("UPLOADS_DIR")
    LEGACY_UPLOADS_DIR = os.environ.get("LEGACY_UPLOADS_DIR")
    BACKUP_DIR = os.environ.get("BACKUP_DIR")
    ADMIN_SEED_PATH = os.environ.get("ADMIN_SEED_PATH")

    # Bootstrap admin (upserted on every start when both are set)
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "")
    ADMIN_NAME = os.environ.get("ADMIN_NAME", "Administrator")

    # Request body cap (import files); product images have their own limit
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024
    IMAGE_MAX_BYTES = 5 * 1024 * 1024

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _env_flag("SESSION_COOKIE_SECURE", os.environ.get("FLASK_ENV") == "production")

    CORS_ALLOWED_ORIGINS = [
        origin.strip()
        for origin in os.environ.get(
            "CORS_ALLOWED_ORIGINS",
            "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
        ).split(",")
        if origin.strip()
    ]

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
