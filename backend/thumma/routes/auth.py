# Overview: Flask API routes for login, logout and password changes.

"""
Authentication API routes

SECURITY FEATURES:
- Session management with hashed, revocable bearer tokens
- Password strength validation on change
- Default password forces a change before any other call
"""

from flask import Blueprint, jsonify, g, request

from ..decorators import require_auth
from ..serialization import camel_response, read_json
from ..services import auth_service, session_service
from ..services.user_service import user_dict


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and create session token.

    Token must be included in the Authorization header for protected routes.
    """
    data = read_json()
    username = data.get("username")
    password = data.get("password")

    if not all([username, password]):
        return jsonify({"error": "Username and password are required"}), 400

    user = auth_service.authenticate(str(username), str(password))
    if not user:
        return jsonify({"error": "Invalid credentials"}), 401

    _, token = session_service.create_session(user.id)
    return camel_response({
        "user": user_dict(user),
        "token": token,
        "must_change_password": user.must_change_password,
    })


@auth_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1]
    session_service.revoke_session(token)
    return jsonify({"status": "logged_out"}), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    return camel_response({"user": user_dict(g.current_user)})


@auth_bp.post("/change-password")
@require_auth
def change_password_route():
    """
    Change the caller's password. All sessions are revoked, so the client
    logs in again with the new password.
    """
    data = read_json()
    current_password = data.get("current_password")
    new_password = data.get("new_password")
    if not all([current_password, new_password]):
        return jsonify({"error": "current_password and new_password are required"}), 400

    user = auth_service.change_password(g.current_user, str(current_password), str(new_password))
    return camel_response({"user": user_dict(user)})
