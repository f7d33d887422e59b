# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- DASHBOARD --

DASHBOARD_PERMISSIONS = [
    ("DASHBOARD_READ", "View Dashboard", "View the CEO dashboard and summaries", PermissionCategory.DASHBOARD),
    ("DASHBOARD_MANAGEMENT_READ", "View Dashboard Layout", "View dashboard widget configuration", PermissionCategory.DASHBOARD_MANAGEMENT),
    ("DASHBOARD_MANAGEMENT_WRITE", "Manage Dashboard Layout", "Show or hide dashboard widgets", PermissionCategory.DASHBOARD_MANAGEMENT),
]


# -- POS & SALES --

SALES_PERMISSIONS = [
    ("POS_READ", "Open POS", "View the point of sale", PermissionCategory.POS),
    ("POS_WRITE", "Sell", "Checkout carts and create invoices", PermissionCategory.POS),
    ("RETURNS_READ", "View Returns", "Look up transactions for return", PermissionCategory.RETURNS),
    ("RETURNS_WRITE", "Process Returns", "Return items and issue store credit", PermissionCategory.RETURNS),
    ("SALES_HISTORY_READ", "View Sales History", "Browse past transactions", PermissionCategory.SALES_HISTORY),
    ("SALES_HISTORY_WRITE", "Edit Sales History", "Attach files to past transactions", PermissionCategory.SALES_HISTORY),
    ("SALES_HISTORY_DELETE", "Delete Transactions", "Delete a transaction permanently", PermissionCategory.SALES_HISTORY),
    ("ORDER_FULFILLMENT_READ", "View Orders", "View pickup and delivery orders", PermissionCategory.ORDER_FULFILLMENT),
    ("ORDER_FULFILLMENT_WRITE", "Manage Orders", "Create orders, change status, convert to invoice", PermissionCategory.ORDER_FULFILLMENT),
    ("CUSTOMER_ASSIST_READ", "Use Assistant", "Ask the sales assistant", PermissionCategory.CUSTOMER_ASSIST),
    ("END_OF_DAY_READ", "View End of Day", "Preview the current shift summary", PermissionCategory.END_OF_DAY),
    ("END_OF_DAY_WRITE", "Close Shift", "Close the current shift", PermissionCategory.END_OF_DAY),
    ("SHIFT_HISTORY_READ", "View Shift History", "View closed shift reports", PermissionCategory.SHIFT_HISTORY),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    ("INVENTORY_READ", "View Inventory", "View products, variants and stock history", PermissionCategory.INVENTORY),
    ("INVENTORY_WRITE", "Edit Inventory", "Create and edit products, adjust stock, import", PermissionCategory.INVENTORY),
    ("INVENTORY_DELETE", "Delete Products", "Delete products and variants", PermissionCategory.INVENTORY),
    ("CATEGORY_MANAGEMENT_READ", "View Categories", "View the category tree", PermissionCategory.CATEGORY_MANAGEMENT),
    ("CATEGORY_MANAGEMENT_WRITE", "Edit Categories", "Create and edit categories", PermissionCategory.CATEGORY_MANAGEMENT),
    ("CATEGORY_MANAGEMENT_DELETE", "Delete Categories", "Delete unused categories", PermissionCategory.CATEGORY_MANAGEMENT),
]


# -- PARTIES --

PARTY_PERMISSIONS = [
    ("CUSTOMERS_READ", "View Customers", "View customer records", PermissionCategory.CUSTOMERS),
    ("CUSTOMERS_WRITE", "Edit Customers", "Create, edit and import customers", PermissionCategory.CUSTOMERS),
    ("CUSTOMERS_DELETE", "Delete Customers", "Delete customer records", PermissionCategory.CUSTOMERS),
    ("SUPPLIERS_READ", "View Suppliers", "View supplier records", PermissionCategory.SUPPLIERS),
    ("SUPPLIERS_WRITE", "Edit Suppliers", "Create, edit and import suppliers", PermissionCategory.SUPPLIERS),
    ("SUPPLIERS_DELETE", "Delete Suppliers", "Delete suppliers without bills", PermissionCategory.SUPPLIERS),
]


# -- ACCOUNTS --

ACCOUNTS_PERMISSIONS = [
    ("AP_READ", "View Payables", "View supplier bills", PermissionCategory.ACCOUNTS_PAYABLE),
    ("AP_WRITE", "Edit Payables", "Create, edit, pay and import bills", PermissionCategory.ACCOUNTS_PAYABLE),
    ("AP_DELETE", "Delete Bills", "Delete supplier bills", PermissionCategory.ACCOUNTS_PAYABLE),
    ("AR_READ", "View Receivables", "View unpaid invoices and balances", PermissionCategory.ACCOUNTS_RECEIVABLE),
    ("AR_WRITE", "Edit Receivables", "Record payments, past invoices and consolidations", PermissionCategory.ACCOUNTS_RECEIVABLE),
    ("AR_DELETE", "Undo Receivables", "Undo consolidations and delete past invoices", PermissionCategory.ACCOUNTS_RECEIVABLE),
]


# -- ADMINISTRATION --

ADMIN_PERMISSIONS = [
    ("ACTIVITY_LOG_READ", "View Activity Log", "View who did what", PermissionCategory.ACTIVITY_LOG),
    ("USER_MANAGEMENT_READ", "View Users", "View staff accounts", PermissionCategory.USER_MANAGEMENT),
    ("USER_MANAGEMENT_WRITE", "Edit Users", "Create and edit staff accounts", PermissionCategory.USER_MANAGEMENT),
    ("USER_MANAGEMENT_DELETE", "Delete Users", "Delete staff accounts", PermissionCategory.USER_MANAGEMENT),
    ("USER_MANAGEMENT_RESET_PASSWORD", "Reset Passwords", "Reset another user's password", PermissionCategory.USER_MANAGEMENT),
    ("STORE_SETTINGS_READ", "View Store Settings", "View store configuration", PermissionCategory.STORE_SETTINGS),
    ("STORE_SETTINGS_WRITE", "Edit Store Settings", "Change store configuration", PermissionCategory.STORE_SETTINGS),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    DASHBOARD_PERMISSIONS
    + SALES_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + PARTY_PERMISSIONS
    + ACCOUNTS_PERMISSIONS
    + ADMIN_PERMISSIONS
)
