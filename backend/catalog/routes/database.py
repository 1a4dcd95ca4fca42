# Overview: Database file status, backups and downloads.

from flask import Blueprint, current_app, request, send_file, g

from ..decorators import require_admin
from ..extensions import get_store
from ..services import backup_service
from ..validation import NotFoundError, ValidationError

database_bp = Blueprint("admin_database", __name__, url_prefix="/api/admin/db")


@database_bp.get("/status")
@require_admin
def db_status_route():
    try:
        return backup_service.db_status(get_store(), current_app.config["BACKUP_DIR"])
    except OSError:
        current_app.logger.exception("DB status error")
        return {"error": "Unable to read database status."}, 500


@database_bp.post("/backup")
@require_admin
def create_backup_route():
    try:
        backup = backup_service.create_backup(
            get_store(), current_app.config["BACKUP_DIR"], actor_id=g.current_admin.id
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except OSError:
        current_app.logger.exception("DB backup error")
        return {"error": "Failed to create database backup."}, 500
    return {"backup": backup}, 201


@database_bp.get("/download")
@require_admin
def download_route():
    try:
        path, download_name = backup_service.resolve_download(
            get_store(), current_app.config["BACKUP_DIR"], request.args.get("name")
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return send_file(path, as_attachment=True, download_name=download_name)
