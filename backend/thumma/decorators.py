# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .permissions import describe_permission, is_known_permission, permissions_for_roles
from .services import session_service


# Endpoints a user with a forced password change may still call
PASSWORD_CHANGE_ENDPOINTS = {"auth.change_password_route", "auth.logout_route", "auth.me_route"}


def _is_authenticated() -> bool:
    return hasattr(g, 'current_user')


def require_auth(f):
    """
    Require authentication.

    Sets the following Flask g attributes:
    - g.current_user: The authenticated User object
    - g.session_context: The full SessionContext object
    - g.permissions: Permission codes granted by the user's roles

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid or expired token
    - User account deactivated
    Returns 403 while the user must change the default password, except on
    the password change endpoints.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1]

        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        g.current_user = context.user
        g.session_context = context
        g.permissions = permissions_for_roles(context.user.roles)

        if context.user.must_change_password and request.endpoint not in PASSWORD_CHANGE_ENDPOINTS:
            return jsonify({
                "error": "Password change required",
                "mustChangePassword": True,
            }), 403

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a specific permission. Must be applied after @require_auth."""
    if not is_known_permission(permission_code):
        raise ValueError(f"Unknown permission code: {permission_code}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if permission_code not in g.permissions:
                return jsonify({
                    "error": "Permission denied",
                    "requiredPermission": permission_code,
                    "permissionName": describe_permission(permission_code)["name"],
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
