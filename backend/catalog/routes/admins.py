# Overview: Admin account management routes.

from flask import Blueprint, g

from . import json_object
from ..decorators import require_admin
from ..extensions import get_store
from ..services import auth_service
from ..validation import ConflictError, NotFoundError, ValidationError

admins_bp = Blueprint("admin_admins", __name__, url_prefix="/api/admin/admins")


@admins_bp.get("")
@require_admin
def list_admins_route():
    admins = auth_service.list_admins(get_store())
    return {"admins": [a.to_dict() for a in admins]}


@admins_bp.post("")
@require_admin
def create_admin_route():
    data = json_object()
    store = get_store()

    try:
        admin_id = auth_service.create_admin(
            store,
            email=data.get("email") or "",
            password=data.get("password") or "",
            name=data.get("name"),
            actor_id=g.current_admin.id,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"admin": auth_service.get_admin(store, admin_id).to_dict()}, 201


@admins_bp.delete("/<int:admin_id>")
@require_admin
def delete_admin_route(admin_id: int):
    try:
        auth_service.delete_admin(get_store(), admin_id=admin_id, acting_admin_id=g.current_admin.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}
