# Overview: Permission lookups used by the route decorators and the user management screens.

from .definitions import PERMISSION_DEFINITIONS
from .roles import DEFAULT_ROLE_PERMISSIONS


_BY_CODE = {perm[0]: perm for perm in PERMISSION_DEFINITIONS}


def is_known_permission(code):
    return code in _BY_CODE


def describe_permission(code):
    """Display form of a permission code, or None when the code is unknown."""
    perm = _BY_CODE.get(code)
    if perm is None:
        return None
    return {"code": perm[0], "name": perm[1], "description": perm[2], "category": perm[3]}


def permission_catalog():
    """
    Every permission grouped by category, categories in definition order.

    Drives the role/permission matrix on the user management screen.
    """
    grouped = {}
    for code, _name, _description, category in PERMISSION_DEFINITIONS:
        grouped.setdefault(category, []).append(describe_permission(code))
    return [{"category": category, "permissions": perms} for category, perms in grouped.items()]


def permissions_for_roles(roles):
    """Union of the permission sets of the given role names. Unknown roles grant nothing."""
    granted = set()
    for role in roles or []:
        granted.update(DEFAULT_ROLE_PERMISSIONS.get(role, []))
    return granted
