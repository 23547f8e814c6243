"""
Role and permission definitions.

Roles are a closed set. Permission checks are a fixed role -> action mapping;
there are no per-user overrides and no role editing at runtime.
"""
from .errors import PermissionDeniedError


# =============================================================================
# ROLES
# =============================================================================

class Role:
    """User roles (stored as their string code)."""
    OWNER = "OWNER"
    MANAGER = "MANAGER"
    STAFF = "STAFF"
    PWD_STAFF = "PWD_STAFF"


ROLE_DEFINITIONS = [
    # (code, display name, description)
    (Role.OWNER, "Owner", "Full system access"),
    (Role.MANAGER, "Manager", "Inventory and sales management"),
    (Role.STAFF, "Staff", "Basic sales and inventory operations"),
    (Role.PWD_STAFF, "PWD Staff", "Accessible interface with full staff privileges"),
]

ALL_ROLES = tuple(code for code, _, _ in ROLE_DEFINITIONS)


# =============================================================================
# ACTIONS
# =============================================================================

class PermissionCategory:
    """Permission categories for organization."""
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    USERS = "USERS"
    SYSTEM = "SYSTEM"


# Each action is defined as: (code, description, category)
PERMISSION_DEFINITIONS = [
    ("VIEW_INVENTORY", "View products, stock levels and movements", PermissionCategory.INVENTORY),
    ("UPDATE_STOCK", "Add or remove stock on existing inventory items", PermissionCategory.INVENTORY),
    ("MANAGE_INVENTORY", "Create inventory items, edit thresholds, post count adjustments", PermissionCategory.INVENTORY),
    ("MANAGE_PRODUCTS", "Create, edit and deactivate catalog products", PermissionCategory.INVENTORY),

    ("PROCESS_SALE", "Ring up and finalize sales", PermissionCategory.SALES),
    ("VIEW_SALES", "View sales, receipts and sales summaries", PermissionCategory.SALES),
    ("VOID_SALE", "Void completed sales", PermissionCategory.SALES),

    ("MANAGE_USERS", "Create and edit user accounts", PermissionCategory.USERS),
    ("DELETE_USER", "Deactivate user accounts", PermissionCategory.USERS),

    ("SYSTEM_SETTINGS", "Change system settings such as the tax rate", PermissionCategory.SYSTEM),
]

ALL_ACTIONS = frozenset(code for code, _, _ in PERMISSION_DEFINITIONS)

# Managers get everything except these
MANAGER_EXCLUDED_ACTIONS = frozenset({"DELETE_USER", "SYSTEM_SETTINGS"})

STAFF_ACTIONS = frozenset({"VIEW_INVENTORY", "PROCESS_SALE", "VIEW_SALES", "UPDATE_STOCK"})


def has_permission(user, action: str) -> bool:
    """
    Check if user may perform action.

    Inactive users have no permissions regardless of role. Action codes
    outside ALL_ACTIONS follow the same rules: OWNER and MANAGER pass, staff
    roles do not.
    """
    if user is None or not user.is_active:
        return False

    role = user.role
    if role == Role.OWNER:
        return True
    if role == Role.MANAGER:
        return action not in MANAGER_EXCLUDED_ACTIONS
    if role in (Role.STAFF, Role.PWD_STAFF):
        return action in STAFF_ACTIONS
    return False


def require_permission(user, action: str) -> None:
    """Raise PermissionDeniedError unless has_permission(user, action)."""
    if not has_permission(user, action):
        who = user.username if user is not None else "anonymous"
        raise PermissionDeniedError(
            f"User {who} lacks permission {action}",
            details={"required_permission": action},
        )


def permissions_for(user) -> list[str]:
    """Sorted list of known actions the user may perform."""
    return sorted(a for a in ALL_ACTIONS if has_permission(user, a))


def role_display_name(role: str) -> str:
    for code, name, _ in ROLE_DEFINITIONS:
        if code == role:
            return name
    return role
