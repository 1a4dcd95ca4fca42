# Overview: Catalog export and import routes.

# backend/catalog/routes/transfer.py
"""
Export / Import

GET  /api/admin/export?format=json|csv&type=products|variants|inventory|categories
POST /api/admin/import?format=json|csv  (multipart "file"; .xlsx accepted for products)
"""
from flask import Blueprint, Response, current_app, request, g

from ..decorators import require_admin
from ..extensions import get_store
from ..services import transfer_service
from ..persistence import PersistenceError
from ..validation import ConflictError, ValidationError

transfer_bp = Blueprint("admin_transfer", __name__, url_prefix="/api/admin")


@transfer_bp.get("/export")
@require_admin
def export_route():
    fmt = (request.args.get("format") or "json").lower()
    store = get_store()

    if fmt == "csv":
        kind = transfer_service.normalize_export_type(request.args.get("type"))
        body = transfer_service.export_csv(store, kind)
        return Response(
            body,
            mimetype="text/csv",
            headers={"Content-Disposition": f"attachment; filename=export-{kind}.csv"},
        )

    return {"data": transfer_service.export_json(store)}


@transfer_bp.post("/import")
@require_admin
def import_route():
    fmt = (request.args.get("format") or "json").lower()
    kind = (request.args.get("type") or "products").lower()

    file = request.files.get("file")
    if file is None:
        return {"error": "Import file is required."}, 400

    raw = file.read()
    filename = file.filename or ""
    store = get_store()

    try:
        if fmt == "json" and not filename.lower().endswith((".csv", ".xlsx")):
            data = transfer_service.parse_json_import(raw)
            summary = transfer_service.import_json(store, data, actor_id=g.current_admin.id)
        else:
            if kind != "products":
                return {"error": "CSV import supports products only."}, 400
            summary = transfer_service.import_products_file(
                store, raw, filename=filename, actor_id=g.current_admin.id
            )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    except PersistenceError:
        raise
    except Exception:
        current_app.logger.exception("Import error")
        return {"error": "Invalid import file."}, 400

    return {"ok": True, "summary": summary}
