# Overview: Permission category constants (one per application area).


class PermissionCategory:
    """Permission categories for grouping and UI display."""
    DASHBOARD = "DASHBOARD"
    POS = "POS"
    INVENTORY = "INVENTORY"
    RETURNS = "RETURNS"
    CUSTOMERS = "CUSTOMERS"
    SUPPLIERS = "SUPPLIERS"
    ACCOUNTS_PAYABLE = "ACCOUNTS_PAYABLE"
    ACCOUNTS_RECEIVABLE = "ACCOUNTS_RECEIVABLE"
    SALES_HISTORY = "SALES_HISTORY"
    ORDER_FULFILLMENT = "ORDER_FULFILLMENT"
    CUSTOMER_ASSIST = "CUSTOMER_ASSIST"
    END_OF_DAY = "END_OF_DAY"
    SHIFT_HISTORY = "SHIFT_HISTORY"
    ACTIVITY_LOG = "ACTIVITY_LOG"
    USER_MANAGEMENT = "USER_MANAGEMENT"
    STORE_SETTINGS = "STORE_SETTINGS"
    DASHBOARD_MANAGEMENT = "DASHBOARD_MANAGEMENT"
    CATEGORY_MANAGEMENT = "CATEGORY_MANAGEMENT"
