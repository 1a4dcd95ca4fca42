# Overview: Public (unauthenticated) catalog API; published products and active categories only.

from flask import Blueprint

from ..extensions import get_store
from ..services import category_service, product_service
from ..validation import NotFoundError

public_bp = Blueprint("public", __name__, url_prefix="/api")


@public_bp.get("/categories")
def list_categories_route():
    categories = category_service.list_categories(get_store(), active_only=True)
    return {"categories": [c.to_dict() for c in categories]}


@public_bp.get("/categories/<slug>/products")
def category_products_route(slug: str):
    try:
        category, products = product_service.list_products_by_category_slug(get_store(), slug)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {
        "category": category.to_dict(),
        "products": [p.to_dict() for p in products],
    }


@public_bp.get("/products")
def list_products_route():
    products = product_service.list_published_products(get_store())
    return {"products": [p.to_dict() for p in products]}


@public_bp.get("/products/<int:product_id>")
def get_product_route(product_id: int):
    try:
        product = product_service.get_product(get_store(), product_id, published_only=True)
    except NotFoundError as e:
        return {"error": str(e)}, 404
    return {"product": product.to_dict()}
