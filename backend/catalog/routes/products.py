# Overview: Admin product routes; multipart (with image) or JSON payloads.

# backend/catalog/routes/products.py
"""
Admin product routes

Create/update accept multipart/form-data (fields + optional "image" file)
or a JSON body. Multipart field values are strings; "pricing" and
"variants" arrive as JSON text and are decoded by the validation layer.

A new image is stored before the database write; if the write fails the
new file is removed again.
"""
from flask import Blueprint, request, g

from . import json_object
from ..decorators import require_admin
from ..extensions import get_store, get_uploads
from ..services import product_service
from ..validation import ConflictError, NotFoundError, ValidationError

products_bp = Blueprint("admin_products", __name__, url_prefix="/api/admin/products")


def _payload_from_request() -> dict:
    if request.is_json:
        return json_object()
    return request.form.to_dict()


def _save_uploaded_image() -> str | None:
    file = request.files.get("image")
    if file is None or not file.filename:
        return None
    return get_uploads().save_image(file)


@products_bp.get("")
@require_admin
def list_products_route():
    products = product_service.list_products_admin(get_store())
    return {"products": [p.to_dict() for p in products]}


@products_bp.get("/<int:product_id>")
@require_admin
def get_product_route(product_id: int):
    try:
        product = product_service.get_product(get_store(), product_id)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"product": product.to_dict()}


@products_bp.post("")
@require_admin
def create_product_route():
    payload = _payload_from_request()
    # JSON clients may reference an already uploaded image path
    image_ref = payload.pop("image", None)
    if not request.is_json:
        image_ref = None
    uploads = get_uploads()
    store = get_store()

    image_path = None
    try:
        image_path = _save_uploaded_image()
        product_id = product_service.create_product(
            store, payload=payload, image_path=image_path or image_ref, actor_id=g.current_admin.id
        )
    except ValidationError as e:
        if image_path:
            uploads.remove(image_path)
        return {"error": str(e)}, 400
    except ConflictError as e:
        if image_path:
            uploads.remove(image_path)
        return {"error": str(e)}, 409

    return {"product": product_service.get_product(store, product_id).to_dict()}, 201


@products_bp.put("/<int:product_id>")
@require_admin
def update_product_route(product_id: int):
    payload = _payload_from_request()
    payload.pop("image", None)
    uploads = get_uploads()

    image_path = None
    try:
        image_path = _save_uploaded_image()
        product = product_service.update_product(
            get_store(),
            product_id=product_id,
            payload=payload,
            image_path=image_path,
            uploads=uploads,
            actor_id=g.current_admin.id,
        )
    except NotFoundError as e:
        if image_path:
            uploads.remove(image_path)
        return {"error": str(e)}, 404
    except ValidationError as e:
        if image_path:
            uploads.remove(image_path)
        return {"error": str(e)}, 400
    except ConflictError as e:
        if image_path:
            uploads.remove(image_path)
        return {"error": str(e)}, 409

    return {"product": product.to_dict()}


@products_bp.post("/<int:product_id>/publish")
@require_admin
def publish_product_route(product_id: int):
    data = json_object()
    status = data.get("status") or "published"

    try:
        status = product_service.set_product_status(
            get_store(), product_id=product_id, status=status, actor_id=g.current_admin.id
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400

    return {"ok": True, "status": status}


@products_bp.delete("/<int:product_id>")
@require_admin
def delete_product_route(product_id: int):
    try:
        product_service.delete_product(
            get_store(), product_id=product_id, uploads=get_uploads(), actor_id=g.current_admin.id
        )
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"ok": True}
