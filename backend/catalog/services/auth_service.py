# Overview: Service-layer operations for admin accounts; hashing, login and bootstrap.

"""
Admin Authentication Service

- Passwords hashed with bcrypt (cost factor 12)
- Minimum 8 characters for accounts created through the API or CLI
- Email is unique; duplicates surface as ConflictError
- An admin cannot delete their own account (checked before any write)
- Bootstrap admin: ADMIN_EMAIL / ADMIN_PASSWORD from the environment, or an
  admin_seed.json file next to the database as a fallback. Upsert by email,
  so it is safe to run on every start.
"""
from __future__ import annotations

import json
import logging
import os

import bcrypt
from sqlalchemy.exc import IntegrityError

from ..models import Admin
from ..persistence import Store
from ..time_utils import now_iso
from ..validation import NotFoundError, ValidationError, conflict_from_integrity
from .audit_service import log_audit

logger = logging.getLogger("catalog.auth")

BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 8
DEFAULT_ADMIN_NAME = "Administrator"


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def get_admin(store: Store, admin_id: int) -> Admin:
    admin = store.prepare("SELECT * FROM admins WHERE id = ?", into=Admin.from_row).get(admin_id)
    if admin is None:
        raise NotFoundError("Admin not found")
    return admin


def find_admin_by_email(store: Store, email: str) -> Admin | None:
    return store.prepare("SELECT * FROM admins WHERE email = ?", into=Admin.from_row).get(email)


def list_admins(store: Store) -> list[Admin]:
    return store.prepare(
        "SELECT * FROM admins ORDER BY created_at DESC, id DESC", into=Admin.from_row
    ).all()


def count_admins(store: Store) -> int:
    row = store.prepare("SELECT COUNT(*) AS count FROM admins").get()
    return int(row["count"]) if row else 0


def authenticate(store: Store, email: str, password: str) -> Admin | None:
    """
    Return the admin if email/password match, else None.

    Unknown email and wrong password are indistinguishable to the caller.
    """
    email = (email or "").strip()
    if not email or not password:
        return None
    admin = find_admin_by_email(store, email)
    if admin is None or not verify_password(password, admin.password_hash):
        return None
    return admin


def create_admin(
    store: Store,
    *,
    email: str,
    password: str,
    name: str | None = None,
    actor_id: int | None = None,
) -> int:
    """
    Create an admin and return its id.

    Raises:
        ValidationError: email/password missing, password too short
        ConflictError: email already used
    """
    email = (email or "").strip()
    if not email or not password:
        raise ValidationError("Email and password are required.")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    try:
        info = store.prepare(
            """
            INSERT INTO admins (email, password_hash, name, role, created_at)
            VALUES (?, ?, ?, 'admin', ?)
            """
        ).run(email, hash_password(password), (name or "").strip(), now_iso())
    except IntegrityError as e:
        raise conflict_from_integrity(e) from e

    admin_id = info.last_insert_id
    log_audit(store, admin_id=actor_id, action="create", entity="admin",
              entity_id=admin_id, details={"email": email})
    return admin_id


def delete_admin(store: Store, *, admin_id: int, acting_admin_id: int | None) -> None:
    """
    Delete an admin account.

    Raises:
        ValidationError: the acting admin targets their own account
        NotFoundError: no such admin
    """
    if acting_admin_id is not None and int(admin_id) == int(acting_admin_id):
        raise ValidationError("You cannot delete your own account.")
    admin = get_admin(store, admin_id)
    store.prepare("DELETE FROM admins WHERE id = ?").run(admin.id)
    log_audit(store, admin_id=acting_admin_id, action="delete", entity="admin",
              entity_id=admin.id, details={"email": admin.email})


def bootstrap_admin_upsert(store: Store, *, email: str, password: str, name: str | None = None) -> tuple[int, bool]:
    """
    Create the admin, or reset its hash/name/role if the email exists.

    Returns (admin_id, created).
    """
    email = (email or "").strip()
    if not email or not password:
        raise ValidationError("Email and password are required.")
    name = name or DEFAULT_ADMIN_NAME
    password_hash = hash_password(password)

    with store.transaction():
        existing = store.prepare("SELECT id FROM admins WHERE email = ?").get(email)
        if existing is not None:
            store.prepare(
                "UPDATE admins SET password_hash = ?, name = ?, role = 'admin' WHERE id = ?"
            ).run(password_hash, name, existing["id"])
            return int(existing["id"]), False

        info = store.prepare(
            """
            INSERT INTO admins (email, password_hash, name, role, created_at)
            VALUES (?, ?, ?, 'admin', ?)
            """
        ).run(email, password_hash, name, now_iso())
        return info.last_insert_id, True


def load_admin_seed(seed_path: str | None) -> dict | None:
    """Read {"email", "password", "name"} from a seed file; None if absent or unreadable."""
    if not seed_path or not os.path.exists(seed_path):
        return None
    try:
        with open(seed_path, "r", encoding="utf-8") as fh:
            seed = json.load(fh)
    except (OSError, ValueError) as e:
        logger.warning("Failed to parse %s: %s", seed_path, e)
        return None
    if not isinstance(seed, dict):
        logger.warning("Ignoring %s: expected a JSON object", seed_path)
        return None
    return seed


def ensure_bootstrap_admin(store: Store, config) -> int | None:
    """
    Upsert the bootstrap admin from config, falling back to the seed file.

    Returns the admin id, or None when no credentials are configured.
    """
    email = (config.get("ADMIN_EMAIL") or "").strip()
    password = config.get("ADMIN_PASSWORD") or ""
    name = config.get("ADMIN_NAME") or DEFAULT_ADMIN_NAME
    source = "env"

    if not email or not password:
        seed = load_admin_seed(config.get("ADMIN_SEED_PATH"))
        if seed:
            email = str(seed.get("email") or "").strip()
            password = str(seed.get("password") or "")
            name = seed.get("name") or DEFAULT_ADMIN_NAME
            source = "file"

    if not email or not password:
        logger.warning(
            "ADMIN_EMAIL or ADMIN_PASSWORD not set (and no admin_seed.json). "
            "Admin login will not be available until set."
        )
        return None

    admin_id, created = bootstrap_admin_upsert(store, email=email, password=password, name=name)
    logger.info("Bootstrap admin %s (%s): %s", "created" if created else "updated", source, email)
    return admin_id


def login(store: Store, config, *, email: str, password: str) -> Admin | None:
    """
    Authenticate for the admin login route.

    If the stored hash does not match but the credentials equal the
    configured ADMIN_EMAIL / ADMIN_PASSWORD, the bootstrap admin is re-applied
    and the login succeeds (recovers from a rotated env password).
    """
    email = (email or "").strip()
    admin = authenticate(store, email, password)
    if admin is None:
        env_email = (config.get("ADMIN_EMAIL") or "").strip()
        env_password = config.get("ADMIN_PASSWORD") or ""
        if not (env_email and env_password and email == env_email and password == env_password):
            return None
        ensure_bootstrap_admin(store, config)
        admin = find_admin_by_email(store, env_email)
        if admin is None:
            raise RuntimeError("Admin bootstrap failed.")

    log_audit(store, admin_id=admin.id, action="login", entity="admin",
              entity_id=admin.id, details={"email": admin.email})
    return admin
