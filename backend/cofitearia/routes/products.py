# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/cofitearia/routes/products.py
"""
Product catalog routes.

- Read operations require VIEW_INVENTORY permission
- Write operations require MANAGE_PRODUCTS permission
"""
from flask import Blueprint, jsonify, request

from ..decorators import error_response, require_auth, require_permission
from ..errors import CofiteariaError
from ..services import catalog_service

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _flag(name: str) -> bool:
    return request.args.get(name, "").lower() in ("1", "true", "yes")


@products_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_products():
    """
    List or search products.

    Query params:
    - q: str (optional) - substring match on name, description and barcode
    - category: str (optional)
    - include_inactive: bool (optional)
    """
    term = request.args.get("q")
    include_inactive = _flag("include_inactive")

    if term:
        products = catalog_service.search_products(term, include_inactive=include_inactive)
    else:
        products = catalog_service.list_products(
            active_only=not include_inactive,
            category=request.args.get("category") or None,
        )
    return jsonify({"items": [p.to_dict() for p in products]}), 200


@products_bp.get("/categories")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_categories():
    return jsonify({"categories": catalog_service.list_categories()}), 200


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_product_route(product_id: int):
    try:
        product = catalog_service.get_product(product_id, include_inactive=_flag("include_inactive"))
    except CofiteariaError as e:
        return error_response(e)
    body = product.to_dict()
    body["full_description"] = product.full_description
    return jsonify(body), 200


@products_bp.get("/barcode/<string:barcode>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_by_barcode_route(barcode: str):
    try:
        product = catalog_service.get_product_by_barcode(barcode)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.create_product(payload)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(product.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        product = catalog_service.update_product(product_id, payload)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(product.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission("MANAGE_PRODUCTS")
def delete_product_route(product_id: int):
    """Soft delete (deactivate) a product."""
    try:
        product = catalog_service.delete_product(product_id)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(product.to_dict()), 200
