# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/cofitearia/routes/auth.py
"""
Authentication API routes: login, logout and the current user.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import bearer_token, error_response, require_auth
from ..errors import CofiteariaError
from ..permissions import permissions_for
from ..services import auth_service, session_service

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    The token must be sent as "Authorization: Bearer <token>" on protected
    routes.
    """
    data = request.get_json(silent=True) or {}
    username = data.get("username")
    password = data.get("password")

    if not username or not password:
        return jsonify({"error": "username and password required"}), 400

    try:
        user = auth_service.authenticate(username, password)
        session, token = session_service.create_session(user.id)
    except CofiteariaError as e:
        return error_response(e)

    return jsonify({
        "user": user.to_dict(),
        "permissions": permissions_for(user),
        "token": token,
        "expires_at": session.to_dict()["expires_at"],
    }), 200


@auth_bp.post("/logout")
@require_auth
def logout_route():
    session_service.revoke_session(bearer_token())
    return jsonify({"message": "Logged out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    user = g.current_user
    return jsonify({
        "user": user.to_dict(),
        "permissions": permissions_for(user),
        "accessibility_summary": auth_service.accessibility_summary(user),
    }), 200
