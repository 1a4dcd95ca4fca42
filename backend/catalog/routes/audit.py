# Overview: Admin audit log listing.

from flask import Blueprint, request

from ..decorators import require_admin
from ..extensions import get_store
from ..services import audit_service

audit_bp = Blueprint("admin_audit", __name__, url_prefix="/api/admin/audit")


@audit_bp.get("")
@require_admin
def list_audit_route():
    limit = request.args.get("limit", default=200, type=int)
    limit = max(1, min(limit, 1000))
    entries = audit_service.list_audit_entries(get_store(), limit=limit)
    return {"entries": [e.to_dict() for e in entries]}
