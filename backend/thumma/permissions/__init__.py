# Overview: Permission system package.
# Re-exports all public APIs.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    DASHBOARD_PERMISSIONS,
    SALES_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    PARTY_PERMISSIONS,
    ACCOUNTS_PERMISSIONS,
    ADMIN_PERMISSIONS,
)
from .roles import (
    DEFAULT_ROLE_PERMISSIONS,
    ROLES,
    ROLE_CEO,
    ROLE_ADMIN,
    ROLE_ACCOUNT_MANAGER,
    ROLE_STORE_MANAGER,
    ROLE_STORE_STAFF,
    ROLE_POS_OPERATOR,
)
from .helpers import (
    describe_permission,
    is_known_permission,
    permission_catalog,
    permissions_for_roles,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "DASHBOARD_PERMISSIONS",
    "SALES_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "PARTY_PERMISSIONS",
    "ACCOUNTS_PERMISSIONS",
    "ADMIN_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
    "ROLES",
    "ROLE_CEO",
    "ROLE_ADMIN",
    "ROLE_ACCOUNT_MANAGER",
    "ROLE_STORE_MANAGER",
    "ROLE_STORE_STAFF",
    "ROLE_POS_OPERATOR",
    "describe_permission",
    "is_known_permission",
    "permission_catalog",
    "permissions_for_roles",
]
