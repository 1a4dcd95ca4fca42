# Overview: Database file status, timestamped backups and download path resolution.

from __future__ import annotations

import os
from datetime import datetime, timezone

from ..persistence import Store
from ..time_utils import timestamp_for_filename, to_utc_z
from ..validation import NotFoundError, ValidationError
from .audit_service import log_audit


def format_file_size(size: int | None) -> str:
    if not size or size < 1024:
        return f"{size or 0} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.2f} MB"


def _file_info(path: str) -> dict:
    stat = os.stat(path)
    return {
        "name": os.path.basename(path),
        "size_bytes": stat.st_size,
        "size_label": format_file_size(stat.st_size),
        "updated_at": to_utc_z(datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)),
    }


def list_backups(backup_dir: str) -> list[dict]:
    """*.db files in backup_dir, newest first."""
    if not os.path.isdir(backup_dir):
        return []
    backups = [
        _file_info(os.path.join(backup_dir, name))
        for name in os.listdir(backup_dir)
        if name.endswith(".db") and os.path.isfile(os.path.join(backup_dir, name))
    ]
    backups.sort(key=lambda b: (b["updated_at"], b["name"]), reverse=True)
    return backups


def db_status(store: Store, backup_dir: str) -> dict:
    path = store.path
    exists = bool(path) and os.path.exists(path)
    if exists:
        info = _file_info(path)
        database = {
            "path": path,
            "exists": True,
            "size_bytes": info["size_bytes"],
            "size_label": info["size_label"],
            "updated_at": info["updated_at"],
        }
    else:
        database = {"path": path, "exists": False, "size_bytes": 0, "size_label": "0 B", "updated_at": None}
    return {"database": database, "backups": list_backups(backup_dir)}


def create_backup(store: Store, backup_dir: str, *, actor_id: int | None = None) -> dict:
    """
    Write a full copy of the live database to backup-YYYYMMDD-HHMMSS.db.

    Raises:
        ValidationError: the store has no database file
    """
    if not store.path or not os.path.exists(store.path):
        raise ValidationError("Database file not found.")

    os.makedirs(backup_dir, exist_ok=True)
    stem = f"backup-{timestamp_for_filename()}"
    filename = f"{stem}.db"
    suffix = 1
    while os.path.exists(os.path.join(backup_dir, filename)):
        filename = f"{stem}-{suffix}.db"
        suffix += 1

    destination = os.path.join(backup_dir, filename)
    store.snapshot(destination)
    backup = _file_info(destination)
    log_audit(store, admin_id=actor_id, action="backup", entity="database",
              entity_id=filename, details={"size_bytes": backup["size_bytes"]})
    return backup


def resolve_download(store: Store, backup_dir: str, name: str | None = None) -> tuple[str, str]:
    """
    Return (file_path, download_name) for a backup, or the live database if
    name is empty.

    Raises:
        ValidationError: name does not end in .db
        NotFoundError: the file does not exist
    """
    requested = os.path.basename(name or "")
    if requested:
        if not requested.endswith(".db"):
            raise ValidationError("Invalid backup file name.")
        file_path = os.path.join(backup_dir, requested)
        download_name = requested
    else:
        file_path = store.path or ""
        download_name = f"live-{os.path.basename(file_path)}"

    if not file_path or not os.path.isfile(file_path):
        raise NotFoundError("File not found.")
    return file_path, download_name
