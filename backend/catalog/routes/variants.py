# Overview: Admin variant routes, including stock adjustment.

from flask import Blueprint, g

from . import json_object
from ..decorators import require_admin
from ..extensions import get_store
from ..services import inventory_service, variant_service
from ..validation import ConflictError, NotFoundError, ValidationError

variants_bp = Blueprint("admin_variants", __name__, url_prefix="/api/admin/variants")


@variants_bp.get("")
@require_admin
def list_variants_route():
    variants = variant_service.list_variants_admin(get_store())
    return {"variants": [v.to_dict(include_product=True) for v in variants]}


@variants_bp.post("")
@require_admin
def create_variant_route():
    payload = json_object()
    store = get_store()

    try:
        variant_id = variant_service.create_variant(store, payload=payload, actor_id=g.current_admin.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"variant": variant_service.get_variant(store, variant_id).to_dict()}, 201


@variants_bp.put("/<int:variant_id>")
@require_admin
def update_variant_route(variant_id: int):
    payload = json_object()

    try:
        variant = variant_service.update_variant(
            get_store(), variant_id=variant_id, payload=payload, actor_id=g.current_admin.id
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    return {"variant": variant.to_dict()}


@variants_bp.delete("/<int:variant_id>")
@require_admin
def delete_variant_route(variant_id: int):
    try:
        variant_service.delete_variant(get_store(), variant_id=variant_id, actor_id=g.current_admin.id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}


@variants_bp.post("/<int:variant_id>/adjust-stock")
@require_admin
def adjust_stock_route(variant_id: int):
    """
    Apply a signed stock delta.

    Body: {"delta": int (non-zero), "reason": str (optional)}
    The stored quantity never goes below zero.
    """
    data = json_object()

    try:
        new_qty = inventory_service.adjust_stock(
            get_store(),
            variant_id=variant_id,
            delta=data.get("delta"),
            reason=data.get("reason"),
            performed_by=g.current_admin.id,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except NotFoundError as e:
        return {"error": str(e)}, 404

    return {"stock_qty": new_qty}
