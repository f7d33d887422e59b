# Overview: Flask API routes for staff accounts; parses input and returns JSON responses.

from flask import Blueprint, g

from ..decorators import require_auth, require_permission
from ..permissions import DEFAULT_ROLE_PERMISSIONS, ROLES, permission_catalog
from ..serialization import camel_response, read_json
from ..services import user_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_permission("USER_MANAGEMENT_READ")
def list_users_route():
    return camel_response({"users": user_service.list_users()})


@users_bp.get("/roles")
@require_auth
@require_permission("USER_MANAGEMENT_READ")
def list_roles_route():
    return camel_response({
        "roles": [
            {"name": role, "permissions": sorted(DEFAULT_ROLE_PERMISSIONS.get(role, []))}
            for role in ROLES
        ]
    })


@users_bp.get("/permissions")
@require_auth
@require_permission("USER_MANAGEMENT_READ")
def list_permissions_route():
    return camel_response({"categories": permission_catalog()})


@users_bp.post("")
@require_auth
@require_permission("USER_MANAGEMENT_WRITE")
def create_user_route():
    """
    Create a staff account. The new user gets the default password and
    must change it at first login.
    """
    data = read_json()
    data.pop("password", None)
    user = user_service.create_user(data, g.current_user)
    return camel_response({"user": user_service.user_dict(user)}, 201)


@users_bp.get("/<int:user_id>")
@require_auth
@require_permission("USER_MANAGEMENT_READ")
def get_user_route(user_id: int):
    return camel_response({"user": user_service.user_dict(user_service.get_user(user_id))})


@users_bp.put("/<int:user_id>")
@require_auth
@require_permission("USER_MANAGEMENT_WRITE")
def update_user_route(user_id: int):
    user = user_service.update_user(user_id, read_json(), g.current_user)
    return camel_response({"user": user_service.user_dict(user)})


@users_bp.delete("/<int:user_id>")
@require_auth
@require_permission("USER_MANAGEMENT_DELETE")
def delete_user_route(user_id: int):
    user_service.delete_user(user_id, g.current_user)
    return "", 204


@users_bp.post("/<int:user_id>/reset-password")
@require_auth
@require_permission("USER_MANAGEMENT_RESET_PASSWORD")
def reset_password_route(user_id: int):
    user = user_service.reset_user_password(user_id, g.current_user)
    return camel_response({"user": user_service.user_dict(user)})


@users_bp.put("/me/profile")
@require_auth
def update_own_profile_route():
    """Users may change their own display name, avatar and UI settings."""
    data = read_json()
    allowed = {k: data[k] for k in ("name", "avatar", "settings") if k in data}
    user = user_service.update_user(g.current_user.id, allowed, g.current_user)
    return camel_response({"user": user_service.user_dict(user)})
