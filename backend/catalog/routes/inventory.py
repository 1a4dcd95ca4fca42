# Overview: Admin inventory ledger listing.

from flask import Blueprint, request

from ..decorators import require_admin
from ..extensions import get_store
from ..services import inventory_service

inventory_bp = Blueprint("admin_inventory", __name__, url_prefix="/api/admin/inventory-adjustments")


@inventory_bp.get("")
@require_admin
def list_adjustments_route():
    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 1000))
    adjustments = inventory_service.list_adjustments(get_store(), limit=limit)
    return {"adjustments": [a.to_dict() for a in adjustments]}
