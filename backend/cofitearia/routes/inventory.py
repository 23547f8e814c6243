# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

# backend/cofitearia/routes/inventory.py
"""
Inventory routes.

- Reads require VIEW_INVENTORY
- add/remove stock require UPDATE_STOCK
- create/update/adjust/deactivate require MANAGE_INVENTORY
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import error_response, require_auth, require_permission
from ..errors import CofiteariaError, ValidationError
from ..services import inventory_service
from ..time_utils import parse_iso_date

inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _items(items) -> dict:
    return {"items": [i.to_dict() for i in items]}


def _as_of():
    raw = request.args.get("today")
    try:
        return parse_iso_date(raw)
    except ValueError:
        raise ValidationError("today must be a YYYY-MM-DD date")


@inventory_bp.get("")
@require_auth
@require_permission("VIEW_INVENTORY")
def list_items_route():
    return jsonify(_items(inventory_service.list_inventory_items())), 200


@inventory_bp.get("/low-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def low_stock_route():
    return jsonify(_items(inventory_service.list_low_stock())), 200


@inventory_bp.get("/critical-stock")
@require_auth
@require_permission("VIEW_INVENTORY")
def critical_stock_route():
    return jsonify(_items(inventory_service.list_critical_stock())), 200


@inventory_bp.get("/expired")
@require_auth
@require_permission("VIEW_INVENTORY")
def expired_route():
    try:
        items = inventory_service.list_expired(today=_as_of())
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(_items(items)), 200


@inventory_bp.get("/expiring")
@require_auth
@require_permission("VIEW_INVENTORY")
def expiring_route():
    """
    Query params:
    - days: int (optional, default 7)
    - today: YYYY-MM-DD (optional)
    """
    try:
        items = inventory_service.list_expiring_soon(
            days=request.args.get("days", inventory_service.DEFAULT_EXPIRING_DAYS),
            today=_as_of(),
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(_items(items)), 200


@inventory_bp.get("/<int:item_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_item_route(item_id: int):
    try:
        item = inventory_service.get_inventory_item(item_id)
    except CofiteariaError as e:
        return error_response(e)
    body = item.to_dict()
    body["summary"] = item.stock_summary()
    return jsonify(body), 200


@inventory_bp.get("/product/<int:product_id>")
@require_auth
@require_permission("VIEW_INVENTORY")
def get_item_for_product_route(product_id: int):
    try:
        item = inventory_service.get_inventory_item_for_product(product_id)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(item.to_dict()), 200


@inventory_bp.get("/<int:item_id>/movements")
@require_auth
@require_permission("VIEW_INVENTORY")
def movements_route(item_id: int):
    try:
        movements = inventory_service.list_stock_movements(
            item_id, limit=request.args.get("limit", 200)
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify({"items": [m.to_dict() for m in movements]}), 200


@inventory_bp.get("/<int:item_id>/reorder")
@require_auth
@require_permission("VIEW_INVENTORY")
def reorder_route(item_id: int):
    try:
        qty = inventory_service.reorder_quantity(item_id)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify({"inventory_item_id": item_id, "reorder_quantity": qty}), 200


@inventory_bp.post("")
@require_auth
@require_permission("MANAGE_INVENTORY")
def create_item_route():
    """
    Body: {"product_id": int, ...item fields}
    """
    payload = dict(request.get_json(silent=True) or {})
    product_id = payload.pop("product_id", None)
    if not isinstance(product_id, int) or isinstance(product_id, bool):
        return jsonify({"error": "product_id is required"}), 400

    try:
        item = inventory_service.create_inventory_item(product_id, payload)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(item.to_dict()), 201


@inventory_bp.put("/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def update_item_route(item_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        item = inventory_service.update_inventory_item(item_id, payload)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(item.to_dict()), 200


@inventory_bp.delete("/<int:item_id>")
@require_auth
@require_permission("MANAGE_INVENTORY")
def deactivate_item_route(item_id: int):
    try:
        item = inventory_service.deactivate_inventory_item(item_id)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(item.to_dict()), 200


@inventory_bp.post("/<int:item_id>/add")
@require_auth
@require_permission("UPDATE_STOCK")
def add_stock_route(item_id: int):
    """Body: {"quantity": int, "reason": str}"""
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.add_stock(
            item_id, data.get("quantity"), data.get("reason"), user_id=g.current_user.id
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(item.to_dict()), 200


@inventory_bp.post("/<int:item_id>/remove")
@require_auth
@require_permission("UPDATE_STOCK")
def remove_stock_route(item_id: int):
    """Body: {"quantity": int, "reason": str}"""
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.remove_stock(
            item_id, data.get("quantity"), data.get("reason"), user_id=g.current_user.id
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(item.to_dict()), 200


@inventory_bp.post("/<int:item_id>/adjust")
@require_auth
@require_permission("MANAGE_INVENTORY")
def adjust_stock_route(item_id: int):
    """Body: {"new_quantity": int, "reason": str}"""
    data = request.get_json(silent=True) or {}
    try:
        item = inventory_service.adjust_stock(
            item_id, data.get("new_quantity"), data.get("reason"), user_id=g.current_user.id
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(item.to_dict()), 200
