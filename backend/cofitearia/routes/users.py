# Overview: Flask API routes for user administration; parses input and returns JSON responses.

# backend/cofitearia/routes/users.py
"""
User administration routes.

- list/create/update/password reset require MANAGE_USERS
- deactivation requires DELETE_USER
- /me/accessibility is open to any authenticated user (own preferences)

Only an OWNER may create OWNER accounts or change an OWNER's role.
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import error_response, require_auth, require_permission
from ..errors import CofiteariaError, PermissionDeniedError
from ..permissions import Role
from ..services import auth_service, session_service

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _require_owner_for(role) -> None:
    if str(role or "").upper() == Role.OWNER and g.current_user.role != Role.OWNER:
        raise PermissionDeniedError("Only an owner can manage owner accounts")


@users_bp.get("")
@require_auth
@require_permission("MANAGE_USERS")
def list_users_route():
    include_inactive = request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
    try:
        users = auth_service.list_users(
            role=request.args.get("role") or None, include_inactive=include_inactive
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify({"items": [u.to_dict() for u in users]}), 200


@users_bp.post("")
@require_auth
@require_permission("MANAGE_USERS")
def create_user_route():
    """
    Body: {"username", "password", "first_name", "last_name", "role", "email"}
    """
    data = request.get_json(silent=True) or {}
    try:
        _require_owner_for(data.get("role"))
        user = auth_service.create_user(
            username=data.get("username"),
            password=data.get("password"),
            first_name=data.get("first_name"),
            last_name=data.get("last_name"),
            role=data.get("role", Role.STAFF),
            email=data.get("email"),
        )
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(user.to_dict()), 201


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def get_user_route(user_id: int):
    try:
        user = auth_service.get_user(user_id)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(user.to_dict()), 200


@users_bp.put("/<int:user_id>")
@require_auth
@require_permission("MANAGE_USERS")
def update_user_route(user_id: int):
    data = request.get_json(silent=True) or {}
    try:
        target = auth_service.get_user(user_id)
        _require_owner_for(target.role)
        if "role" in data:
            _require_owner_for(data.get("role"))
        user = auth_service.update_user(user_id, data)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify(user.to_dict()), 200


@users_bp.post("/<int:user_id>/password")
@require_auth
@require_permission("MANAGE_USERS")
def change_password_route(user_id: int):
    """Body: {"new_password": str}. Revokes the user's sessions."""
    data = request.get_json(silent=True) or {}
    try:
        target = auth_service.get_user(user_id)
        _require_owner_for(target.role)
        auth_service.change_password(user_id, data.get("new_password"))
    except CofiteariaError as e:
        return error_response(e)
    session_service.revoke_all_user_sessions(user_id, reason="Password changed")
    return jsonify({"message": "Password changed"}), 200


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("DELETE_USER")
def deactivate_user_route(user_id: int):
    if user_id == g.current_user.id:
        return jsonify({"error": "You cannot deactivate your own account"}), 409
    try:
        user = auth_service.deactivate_user(user_id)
    except CofiteariaError as e:
        return error_response(e)
    session_service.revoke_all_user_sessions(user_id, reason="User account deactivated")
    return jsonify(user.to_dict()), 200


@users_bp.get("/me/accessibility")
@require_auth
def get_my_accessibility_route():
    user = g.current_user
    return jsonify({
        "preferences": user.accessibility_preferences(),
        "summary": auth_service.accessibility_summary(user),
    }), 200


@users_bp.put("/me/accessibility")
@require_auth
def update_my_accessibility_route():
    data = request.get_json(silent=True) or {}
    try:
        user = auth_service.update_accessibility_preferences(g.current_user.id, **data)
    except CofiteariaError as e:
        return error_response(e)
    return jsonify({
        "preferences": user.accessibility_preferences(),
        "summary": auth_service.accessibility_summary(user),
    }), 200
