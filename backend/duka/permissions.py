"""
Permission codes and role mappings.

WHY: Centralized permission definitions ensure consistency across routes and
services. Roles are fixed (admin, staff-admin, staff); each maps to a set
of permission codes.

DESIGN PRINCIPLES:
- Permissions are granular (one action per permission)
- Default role mappings follow principle of least privilege
- Admin has all permissions
"""

from .models.auth import ROLE_ADMIN, ROLE_STAFF, ROLE_STAFF_ADMIN


class PermissionCategory:
    """Permission categories for organization."""
    INVENTORY = "INVENTORY"
    LENDING = "LENDING"
    SALES = "SALES"
    USERS = "USERS"
    SYSTEM = "SYSTEM"


# Each permission is defined as: (code, name, description, category)
PERMISSION_DEFINITIONS = [
    # INVENTORY PERMISSIONS
    ("VIEW_INVENTORY", "View Inventory", "View stock lines and pair counts", PermissionCategory.INVENTORY),
    ("EDIT_INVENTORY", "Edit Inventory", "Manually correct stock, incomplete pairs and notes", PermissionCategory.INVENTORY),
    ("MANAGE_PRODUCTS", "Manage Products", "Create stock lines and change codes or prices", PermissionCategory.INVENTORY),
    ("DELETE_INVENTORY", "Delete Inventory", "Hard-delete a stock line", PermissionCategory.INVENTORY),

    # LENDING PERMISSIONS
    ("LEND_ITEMS", "Lend Items", "Lend pairs or single shoes to another store", PermissionCategory.LENDING),
    ("RETURN_LENT_ITEMS", "Return Lent Items", "Book lent items back into the source store", PermissionCategory.LENDING),
    ("ACKNOWLEDGE_LENT_ITEMS", "Acknowledge Lent Items", "Mark lent items as updated without a return", PermissionCategory.LENDING),
    ("VIEW_LENT_ITEMS", "View Lent Items", "View the lending ledger", PermissionCategory.LENDING),

    # SALES PERMISSIONS
    ("RECORD_SALE", "Record Sale", "Record point-of-sale transactions", PermissionCategory.SALES),
    ("VIEW_SALES", "View Sales", "View sales history", PermissionCategory.SALES),
    ("PROCESS_RETURN", "Process Return", "Accept customer returns of sales", PermissionCategory.SALES),
    ("REQUEST_SHOES", "Request Shoes", "Raise a request for stock a customer asked for", PermissionCategory.SALES),
    ("PROCESS_REQUESTS", "Process Requests", "Mark shoe requests as processed", PermissionCategory.SALES),
    ("VIEW_REPORTS", "View Reports", "View stock-level and sales summaries", PermissionCategory.SALES),

    # USERS / SYSTEM PERMISSIONS
    ("VIEW_USERS", "View Users", "List staff accounts", PermissionCategory.USERS),
    ("MANAGE_USERS", "Manage Users", "Create, promote, demote and deactivate staff", PermissionCategory.USERS),
    ("MANAGE_STORES", "Manage Stores", "Add store locations to the business", PermissionCategory.SYSTEM),
]


DEFAULT_ROLE_PERMISSIONS = {
    ROLE_ADMIN: [code for code, _name, _desc, _cat in PERMISSION_DEFINITIONS],

    ROLE_STAFF_ADMIN: [
        # Staff-admin: runs a store, edits its stock, handles requests
        "VIEW_INVENTORY",
        "EDIT_INVENTORY",
        "LEND_ITEMS",
        "RETURN_LENT_ITEMS",
        "ACKNOWLEDGE_LENT_ITEMS",
        "VIEW_LENT_ITEMS",
        "RECORD_SALE",
        "VIEW_SALES",
        "PROCESS_RETURN",
        "REQUEST_SHOES",
        "PROCESS_REQUESTS",
    ],

    ROLE_STAFF: [
        # Staff: shop floor operations only
        "VIEW_INVENTORY",
        "LEND_ITEMS",
        "RETURN_LENT_ITEMS",
        "ACKNOWLEDGE_LENT_ITEMS",
        "VIEW_LENT_ITEMS",
        "RECORD_SALE",
        "VIEW_SALES",
        "PROCESS_RETURN",
        "REQUEST_SHOES",
    ],
}


def get_all_permission_codes():
    """Get list of all permission codes."""
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def validate_permission_code(code):
    """Check if a permission code is valid."""
    return code in get_all_permission_codes()
