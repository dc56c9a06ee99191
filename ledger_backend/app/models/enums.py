"""
User roles and permissions.

Roles arrive in the identity token; permissions are derived from them here and
never read from the token directly.
"""

import enum


class UserRole(str, enum.Enum):
    """
    User role enumeration.

    Roles:
        ADMIN: Platform administration
        MERCHANT: Owns one or more businesses
        MANAGER: Runs a business on behalf of the merchant
        CASHIER: Operates the point of sale
        CUSTOMER: End user holding wallets with businesses
    """
    ADMIN = "admin"
    MERCHANT = "merchant"
    MANAGER = "manager"
    CASHIER = "cashier"
    CUSTOMER = "user"


class Permission(str, enum.Enum):
    """Capabilities checked by the API layer."""
    VIEW_ADMIN_DASHBOARD = "view:admin_dashboard"
    MANAGE_STORE = "manage:store"
    ACCESS_POS = "access:pos"
    PROCESS_REFUNDS = "process:refunds"
    VIEW_WALLET = "view:wallet"
    MAKE_PAYMENTS = "make:payments"


ROLE_PERMISSIONS = {
    UserRole.ADMIN: {Permission.VIEW_ADMIN_DASHBOARD},
    UserRole.MERCHANT: {Permission.MANAGE_STORE, Permission.ACCESS_POS, Permission.VIEW_WALLET},
    UserRole.MANAGER: {Permission.MANAGE_STORE, Permission.ACCESS_POS, Permission.PROCESS_REFUNDS},
    UserRole.CASHIER: {Permission.ACCESS_POS},
    UserRole.CUSTOMER: {Permission.VIEW_WALLET, Permission.MAKE_PAYMENTS},
}


def has_permission(roles, permission: Permission) -> bool:
    """Return True if any of the given role names grants the permission."""
    for role_name in roles or []:
        try:
            role = UserRole(role_name)
        except ValueError:
            continue
        if permission in ROLE_PERMISSIONS[role]:
            return True
    return False
