from enum import Enum
from typing import Set

from models.enums import UserRole as Role


class Permission(str, Enum):
    """All application permissions (fine-grained access control)"""

    # Catalogue and customers
    VIEW_PRODUCTS = "view:products"
    MANAGE_PRODUCTS = "manage:products"
    VIEW_STORES = "view:stores"
    MANAGE_STORES = "manage:stores"

    # Orders
    VIEW_ORDERS = "view:orders"
    CREATE_ORDERS = "create:orders"
    VIEW_ALL_ORDERS = "view:all_orders"  # otherwise only own/assigned orders

    # Fleet
    VIEW_VEHICLES = "view:vehicles"
    MANAGE_VEHICLES = "manage:vehicles"

    # Distribution
    VIEW_TRIPS = "view:trips"
    MANAGE_TRIPS = "manage:trips"
    REVIEW_SCHEDULING = "review:scheduling"

    # Pricing
    VIEW_PRICING = "view:pricing"
    MANAGE_PRICING = "manage:pricing"

    # Admin permissions
    VIEW_USERS = "view:users"
    MANAGE_USERS = "manage:users"
    VIEW_STATISTICS = "view:statistics"


_READ_ONLY = {
    Permission.VIEW_PRODUCTS,
    Permission.VIEW_STORES,
    Permission.VIEW_ORDERS,
    Permission.VIEW_VEHICLES,
    Permission.VIEW_PRICING,
}

# Permission matrix - what each role can do
ROLE_PERMISSIONS: dict[Role, Set[Permission]] = {
    Role.VIEWER: set(_READ_ONLY),
    Role.DISTRIBUTOR: _READ_ONLY | {
        Permission.CREATE_ORDERS,
        Permission.VIEW_TRIPS,
    },
    Role.MANAGER: set(Permission) - {Permission.MANAGE_USERS},
    Role.ADMIN: set(Permission),  # All permissions
}


def has_permission(role: str, permission: Permission) -> bool:
    try:
        return permission in ROLE_PERMISSIONS[Role(role)]
    except ValueError:
        return False
