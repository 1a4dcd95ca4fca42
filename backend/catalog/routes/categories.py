# Overview: Admin category routes; slug normalization and set-null delete live in the service.

from flask import Blueprint, g

from . import json_object
from ..decorators import require_admin
from ..extensions import get_store
from ..services import category_service
from ..validation import ConflictError, NotFoundError, ValidationError

categories_bp = Blueprint("admin_categories", __name__, url_prefix="/api/admin/categories")


@categories_bp.get("")
@require_admin
def list_categories_route():
    categories = category_service.list_categories(get_store())
    return {"categories": [c.to_dict() for c in categories]}


@categories_bp.post("")
@require_admin
def create_category_route():
    payload = json_object()
    store = get_store()

    try:
        category_id = category_service.create_category(store, payload=payload, actor_id=g.current_admin.id)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"category": category_service.get_category(store, category_id).to_dict()}, 201


@categories_bp.put("/<int:category_id>")
@require_admin
def update_category_route(category_id: int):
    payload = json_object()

    try:
        category = category_service.update_category(
            get_store(), category_id=category_id, payload=payload, actor_id=g.current_admin.id
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"category": category.to_dict()}


@categories_bp.delete("/<int:category_id>")
@require_admin
def delete_category_route(category_id: int):
    try:
        category_service.delete_category(get_store(), category_id=category_id, actor_id=g.current_admin.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}
