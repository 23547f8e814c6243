# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/cofitearia/routes/sales.py
"""
Sales routes.

- Cart building and finalization require PROCESS_SALE
- Reads, receipts and summaries require VIEW_SALES
- Voids require VOID_SALE
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import error_response, require_auth, require_permission
from ..errors import CofiteariaError, ValidationError
from ..money import money_str
from ..services import sales_service
from ..time_utils import parse_iso_datetime

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def _json() -> dict:
    return request.get_json(silent=True) or {}


def _datetime_arg(name: str):
    try:
        return parse_iso_datetime(request.args.get(name))
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


@sales_bp.post("")
@require_auth
@require_permission("PROCESS_SALE")
def create_sale_route():
    """Body (optional): {"tax_rate": "0.12"}"""
    try:
        sale = sales_service.create_sale(
            cashier_id=g.current_user.id, tax_rate=_json().get("tax_rate")
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 201


@sales_bp.get("")
@require_auth
@require_permission("VIEW_SALES")
def list_sales_route():
    """
    Query params:
    - include_voided: bool (optional)
    - start, end: ISO-8601 datetimes (optional, inclusive)
    - limit: int (optional, default 200)
    """
    include_voided = request.args.get("include_voided", "").lower() in ("1", "true", "yes")
    try:
        sales = sales_service.list_sales(
            include_voided=include_voided,
            start=_datetime_arg("start"),
            end=_datetime_arg("end"),
            limit=request.args.get("limit", 200),
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify({"items": [s.to_dict(include_items=False) for s in sales]}), 200


@sales_bp.get("/drafts")
@require_auth
@require_permission("PROCESS_SALE")
def list_drafts_route():
    """Open carts rung up by the current user."""
    sales = sales_service.list_draft_sales(cashier_id=g.current_user.id)
    return jsonify({"items": [s.to_dict() for s in sales]}), 200


@sales_bp.get("/summary")
@require_auth
@require_permission("VIEW_SALES")
def summary_route():
    try:
        summary = sales_service.summarize_sales(
            start=_datetime_arg("start"), end=_datetime_arg("end")
        )
    except CofiteariaError as e:
        return error_response(e)
    for key in ("subtotal", "tax", "discount", "total"):
        summary[key] = money_str(summary[key])
    return jsonify(summary), 200


@sales_bp.get("/<int:sale_id>")
@require_auth
@require_permission("VIEW_SALES")
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.get("/transaction/<string:number>")
@require_auth
@require_permission("VIEW_SALES")
def get_by_transaction_route(number: str):
    try:
        sale = sales_service.get_sale_by_transaction_number(number)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.get("/<int:sale_id>/receipt")
@require_auth
@require_permission("VIEW_SALES")
def receipt_route(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id)
        text = sales_service.render_receipt(sale)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify({"sale_id": sale.id, "receipt": text}), 200


@sales_bp.post("/<int:sale_id>/items")
@require_auth
@require_permission("PROCESS_SALE")
def add_item_route(sale_id: int):
    """Body: {"product_id": int, "quantity": int (default 1)}"""
    data = _json()
    product_id = data.get("product_id")
    if not isinstance(product_id, int) or isinstance(product_id, bool):
        return jsonify({"error": "product_id is required"}), 400
    try:
        sale = sales_service.add_item(sale_id, product_id, data.get("quantity", 1))
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.post("/<int:sale_id>/items/<int:product_id>/decrement")
@require_auth
@require_permission("PROCESS_SALE")
def decrement_item_route(sale_id: int, product_id: int):
    try:
        sale = sales_service.decrement_item(sale_id, product_id)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.delete("/<int:sale_id>/items/<int:product_id>")
@require_auth
@require_permission("PROCESS_SALE")
def remove_item_route(sale_id: int, product_id: int):
    try:
        sale = sales_service.remove_item(sale_id, product_id)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.post("/<int:sale_id>/tax")
@require_auth
@require_permission("PROCESS_SALE")
def apply_tax_route(sale_id: int):
    """Body: {"rate": "0.12"}"""
    try:
        sale = sales_service.apply_tax(sale_id, _json().get("rate"))
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.post("/<int:sale_id>/discount")
@require_auth
@require_permission("PROCESS_SALE")
def apply_discount_route(sale_id: int):
    """Body: {"amount": "10.00"}"""
    try:
        sale = sales_service.apply_discount(sale_id, _json().get("amount"))
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.post("/<int:sale_id>/finalize")
@require_auth
@require_permission("PROCESS_SALE")
def finalize_route(sale_id: int):
    """
    Body: {"payment_method": "CASH"|"CARD"|"E_WALLET", "customer_info": str,
           "notes": str, "accessibility_assistance_used": bool,
           "accessibility_notes": str}
    """
    data = _json()
    try:
        sale = sales_service.finalize_sale(
            sale_id,
            data.get("payment_method"),
            cashier_id=g.current_user.id,
            customer_info=data.get("customer_info"),
            notes=data.get("notes"),
            accessibility_assistance_used=data.get("accessibility_assistance_used", False),
            accessibility_notes=data.get("accessibility_notes"),
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200


@sales_bp.post("/<int:sale_id>/void")
@require_auth
@require_permission("VOID_SALE")
def void_route(sale_id: int):
    """Body: {"reason": str}"""
    try:
        sale = sales_service.void_sale(sale_id, user_id=g.current_user.id, reason=_json().get("reason"))
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(sale.to_dict()), 200
