# Overview: Built-in roles and their permission sets.
# A user with several roles gets the union of their permissions.

from .definitions import PERMISSION_DEFINITIONS


ROLE_CEO = "CEO"
ROLE_ADMIN = "Admin"
ROLE_ACCOUNT_MANAGER = "Account Manager"
ROLE_STORE_MANAGER = "Store Manager"
ROLE_STORE_STAFF = "Store Staff"
ROLE_POS_OPERATOR = "POS Operator"

ROLES = (
    ROLE_CEO,
    ROLE_ADMIN,
    ROLE_ACCOUNT_MANAGER,
    ROLE_STORE_MANAGER,
    ROLE_STORE_STAFF,
    ROLE_POS_OPERATOR,
)

_ALL = [perm[0] for perm in PERMISSION_DEFINITIONS]

DEFAULT_ROLE_PERMISSIONS = {
    ROLE_CEO: _ALL,
    ROLE_ADMIN: _ALL,
    ROLE_ACCOUNT_MANAGER: [
        "DASHBOARD_READ",
        "DASHBOARD_MANAGEMENT_READ",
        "DASHBOARD_MANAGEMENT_WRITE",
        "CATEGORY_MANAGEMENT_READ",
        "CUSTOMERS_READ",
        "CUSTOMERS_WRITE",
        "SUPPLIERS_READ",
        "SUPPLIERS_WRITE",
        "AP_READ",
        "AP_WRITE",
        "AP_DELETE",
        "AR_READ",
        "AR_WRITE",
        "AR_DELETE",
        "SALES_HISTORY_READ",
        "END_OF_DAY_READ",
        "END_OF_DAY_WRITE",
        "SHIFT_HISTORY_READ",
        "ACTIVITY_LOG_READ",
        "STORE_SETTINGS_READ",
        "STORE_SETTINGS_WRITE",
    ],
    ROLE_STORE_MANAGER: [
        "DASHBOARD_READ",
        "DASHBOARD_MANAGEMENT_READ",
        "DASHBOARD_MANAGEMENT_WRITE",
        "POS_READ",
        "POS_WRITE",
        "INVENTORY_READ",
        "INVENTORY_WRITE",
        "INVENTORY_DELETE",
        "CATEGORY_MANAGEMENT_READ",
        "CATEGORY_MANAGEMENT_WRITE",
        "RETURNS_READ",
        "RETURNS_WRITE",
        "CUSTOMERS_READ",
        "CUSTOMERS_WRITE",
        "SUPPLIERS_READ",
        "SUPPLIERS_WRITE",
        "AP_READ",
        "AP_WRITE",
        "AR_READ",
        "AR_WRITE",
        "SALES_HISTORY_READ",
        "ORDER_FULFILLMENT_READ",
        "ORDER_FULFILLMENT_WRITE",
        "CUSTOMER_ASSIST_READ",
        "END_OF_DAY_READ",
        "END_OF_DAY_WRITE",
        "SHIFT_HISTORY_READ",
        "ACTIVITY_LOG_READ",
        "STORE_SETTINGS_READ",
        "STORE_SETTINGS_WRITE",
    ],
    ROLE_STORE_STAFF: [
        "DASHBOARD_READ",
        "POS_READ",
        "POS_WRITE",
        "INVENTORY_READ",
        "INVENTORY_WRITE",
        "CATEGORY_MANAGEMENT_READ",
        "RETURNS_READ",
        "RETURNS_WRITE",
        "CUSTOMERS_READ",
        "CUSTOMERS_WRITE",
        "ORDER_FULFILLMENT_READ",
        "ORDER_FULFILLMENT_WRITE",
        "CUSTOMER_ASSIST_READ",
    ],
    ROLE_POS_OPERATOR: [
        "DASHBOARD_READ",
        "POS_READ",
        "POS_WRITE",
        "INVENTORY_READ",
        "RETURNS_READ",
        "RETURNS_WRITE",
        "CUSTOMERS_READ",
        "CUSTOMER_ASSIST_READ",
    ],
}
