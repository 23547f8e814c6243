# Overview: Flask API routes for system settings; parses input and returns JSON responses.

# backend/cofitearia/routes/settings.py
from flask import Blueprint, jsonify, request

from ..decorators import error_response, require_auth, require_permission
from ..errors import CofiteariaError
from ..services import settings_service

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
def list_settings_route():
    return jsonify({"items": [s.to_dict() for s in settings_service.list_settings()]}), 200


@settings_bp.get("/<string:key>")
@require_auth
def get_setting_route(key: str):
    try:
        setting = settings_service.get_setting_row(key)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(setting.to_dict()), 200


@settings_bp.put("/<string:key>")
@require_auth
@require_permission("SYSTEM_SETTINGS")
def set_setting_route(key: str):
    """Body: {"value": ..., "description": str (optional)}"""
    data = request.get_json(silent=True) or {}
    if "value" not in data:
        return jsonify({"error": "value is required"}), 400
    try:
        setting = settings_service.set_setting(key, data["value"], data.get("description"))
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(setting.to_dict()), 200
