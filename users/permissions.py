"""Role-based access control gate.

A static table maps each role to its permitted capabilities. Every mutating
service consults this table before touching state; the functions here are
pure and never fail.
"""

from typing import Dict, FrozenSet, Iterable, List

from common.choices import Role
from common.errors import PermissionDenied
from django.db import models
from rest_framework.permissions import BasePermission


class Permission(models.TextChoices):
    # Orders
    VIEW_ALL_ORDERS = "view:all-orders", "View all orders"
    VIEW_OWN_ORDERS = "view:own-orders", "View own orders"
    CREATE_MANUAL_ORDERS = "create:manual-orders", "Create manual orders"
    UPDATE_ORDER_STATUS = "update:order-status", "Update order status"
    CANCEL_ORDERS = "cancel:orders", "Cancel orders"
    PROCESS_REFUNDS = "process:refunds", "Process refunds"
    VIEW_REFUND_REQUESTS = "view:refund-requests", "View refund requests"
    # Products & inventory
    VIEW_PRODUCTS = "view:products", "View products"
    CREATE_PRODUCTS = "create:products", "Create products"
    UPDATE_PRODUCTS = "update:products", "Update products"
    DELETE_PRODUCTS = "delete:products", "Delete products"
    MANAGE_INVENTORY = "manage:inventory", "Manage inventory"
    VIEW_INVENTORY_LEVELS = "view:inventory-levels", "View inventory levels"
    TRANSFER_STOCK = "transfer:stock", "Transfer stock"
    FULFILL_ORDERS = "fulfill:orders", "Fulfill orders"
    # Accounts
    VIEW_ALL_USERS = "view:all-users", "View all users"
    CREATE_CUSTOMER_ACCOUNTS = "create:customer-accounts", "Create customer accounts"
    CREATE_STAFF_ACCOUNTS = "create:staff-accounts", "Create staff accounts"
    CREATE_CLERK_ACCOUNTS = "create:clerk-accounts", "Create clerk accounts"
    CREATE_ADMIN_ACCOUNTS = "create:admin-accounts", "Create admin accounts"
    UPDATE_USER_ACCOUNTS = "update:user-accounts", "Update user accounts"
    DEACTIVATE_USER_ACCOUNTS = "deactivate:user-accounts", "Deactivate user accounts"
    # Coupons
    VIEW_COUPONS = "view:coupons", "View coupons"
    CREATE_COUPONS = "create:coupons", "Create coupons"
    UPDATE_COUPONS = "update:coupons", "Update coupons"
    DELETE_COUPONS = "delete:coupons", "Delete coupons"
    # Reporting
    VIEW_REVENUE = "view:revenue", "View revenue"
    VIEW_DETAILED_ANALYTICS = "view:detailed-analytics", "View detailed analytics"
    EXPORT_REPORTS = "export:reports", "Export reports"
    # Customer service
    VIEW_CUSTOMER_INFO = "view:customer-info", "View customer info"
    CONTACT_CUSTOMERS = "contact:customers", "Contact customers"
    # System
    ACCESS_ADMIN_PANEL = "access:admin-panel", "Access admin panel"
    MANAGE_SYSTEM_SETTINGS = "manage:system-settings", "Manage system settings"


P = Permission

_CUSTOMER = {
    P.VIEW_OWN_ORDERS,
    P.CANCEL_ORDERS,
    P.VIEW_PRODUCTS,
    P.VIEW_INVENTORY_LEVELS,
    P.VIEW_COUPONS,
}

_STAFF = {
    P.VIEW_ALL_ORDERS,
    P.VIEW_OWN_ORDERS,
    P.CREATE_MANUAL_ORDERS,
    P.UPDATE_ORDER_STATUS,
    P.CANCEL_ORDERS,
    P.PROCESS_REFUNDS,
    P.VIEW_REFUND_REQUESTS,
    P.VIEW_PRODUCTS,
    P.VIEW_INVENTORY_LEVELS,
    P.VIEW_ALL_USERS,
    P.CREATE_CUSTOMER_ACCOUNTS,
    P.VIEW_COUPONS,
    P.VIEW_REVENUE,
    P.VIEW_CUSTOMER_INFO,
    P.CONTACT_CUSTOMERS,
    P.ACCESS_ADMIN_PANEL,
}

# Warehouse role: not customer-facing, so no refunds and no cancellations.
_INVENTORY_CLERK = {
    P.VIEW_ALL_ORDERS,
    P.VIEW_OWN_ORDERS,
    P.UPDATE_ORDER_STATUS,
    P.VIEW_PRODUCTS,
    P.UPDATE_PRODUCTS,
    P.MANAGE_INVENTORY,
    P.VIEW_INVENTORY_LEVELS,
    P.TRANSFER_STOCK,
    P.EXPORT_REPORTS,
    P.VIEW_CUSTOMER_INFO,
    P.ACCESS_ADMIN_PANEL,
}

_OWNER = set(Permission)
_ADMIN = _OWNER - {P.CREATE_ADMIN_ACCOUNTS}

ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    Role.CUSTOMER: frozenset(_CUSTOMER),
    Role.STAFF: frozenset(_STAFF),
    Role.INVENTORY_CLERK: frozenset(_INVENTORY_CLERK),
    Role.ADMIN: frozenset(_ADMIN),
    Role.OWNER: frozenset(_OWNER),
}

PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.OWNER})

_CREATABLE_ROLES = {
    Role.OWNER: [Role.CUSTOMER, Role.STAFF, Role.INVENTORY_CLERK, Role.ADMIN],
    Role.ADMIN: [Role.CUSTOMER, Role.STAFF, Role.INVENTORY_CLERK],
    Role.STAFF: [Role.CUSTOMER],
}


def has_permission(role: str, permission: str) -> bool:
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def has_any_permission(role: str, permissions: Iterable[str]) -> bool:
    return any(has_permission(role, p) for p in permissions)


def has_all_permissions(role: str, permissions: Iterable[str]) -> bool:
    return all(has_permission(role, p) for p in permissions)


def get_role_permissions(role: str) -> List[str]:
    return sorted(ROLE_PERMISSIONS.get(role, frozenset()))


def is_privileged(role: str) -> bool:
    """Admin and owner may correct operator errors (backward moves, reopen)."""
    return role in PRIVILEGED_ROLES


def get_creatable_roles(role: str) -> List[str]:
    return list(_CREATABLE_ROLES.get(role, []))


def require_permission(role: str, permission: str) -> None:
    if not has_permission(role, permission):
        raise PermissionDenied()


class HasPermission(BasePermission):
    """DRF adapter over the gate; use ``HasPermission.for_(Permission.X)``."""

    required: str = ""

    @classmethod
    def for_(cls, permission: str):
        return type(f"Has_{permission.replace(':', '_').replace('-', '_')}", (cls,), {"required": permission})

    def has_permission(self, request, view) -> bool:
        user = request.user
        if not (user and user.is_authenticated):
            return False
        return has_permission(getattr(user, "role", Role.CUSTOMER), self.required)
