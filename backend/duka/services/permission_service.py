# Overview: Role-based permission checks and store scoping for workflows.

"""
Permission checking with multi-tenant store scoping.

WHY: The route layer checks permissions before calling a service, and every
workflow checks again with the actor it is given, so a service called from
the CLI or a test is held to the same rules.

DESIGN PRINCIPLES:
- Fail closed: deny unless the role grants the permission
- Inactive users have no permissions
- Tenant isolation: a store in another business reads as not found
- Staff and staff-admins act only on their own store; admins on any store
  of their business
"""

from flask import current_app

from ..errors import NotFoundError, PermissionDeniedError
from ..extensions import db
from ..models import Store, User
from ..permissions import DEFAULT_ROLE_PERMISSIONS


def get_active_user(user_id) -> User | None:
    """Resolve an authenticated id to an active user, or None."""
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        return None
    user = db.session.get(User, user_id)
    if not user or not user.is_active:
        return None
    return user


def get_user_permissions(user: User) -> set[str]:
    if not user or not user.is_active:
        return set()
    return set(DEFAULT_ROLE_PERMISSIONS.get(user.role, []))


def has_permission(user: User, permission_code: str) -> bool:
    return permission_code in get_user_permissions(user)


def require_permission(user: User, permission_code: str) -> None:
    """Raise PermissionDeniedError if user lacks permission_code."""
    if not has_permission(user, permission_code):
        current_app.logger.warning(
            "Permission denied: user=%s role=%s permission=%s",
            getattr(user, "id", None), getattr(user, "role", None), permission_code,
        )
        raise PermissionDeniedError(
            f"Missing permission: {permission_code}",
            details={"required_permission": permission_code},
        )


def get_business_store(user: User, store_id: int) -> Store:
    """Load a store of the user's business. Other tenants' stores read as missing."""
    store = db.session.get(Store, store_id)
    if not store or store.business_id != user.business_id:
        raise NotFoundError(f"Store {store_id} not found")
    return store


def ensure_store_access(user: User, store_id: int) -> Store:
    """
    Require that user may act on store_id.

    Admins: any store in their business.
    Staff / staff-admin: their own store only.
    """
    store = get_business_store(user, store_id)
    if not user.is_admin and user.store_id != store.id:
        current_app.logger.warning(
            "Store access denied: user=%s store=%s own_store=%s", user.id, store.id, user.store_id
        )
        raise PermissionDeniedError(
            "You can only act on your own store",
            details={"store_id": store.id},
        )
    return store


def resolve_store_scope(user: User, store_id: int | None) -> int | None:
    """
    Store filter for list endpoints.

    Admins may pass None ("all stores"); everyone else is pinned to their store.
    """
    if store_id is not None:
        return ensure_store_access(user, store_id).id
    if user.is_admin:
        return None
    if user.store_id is None:
        raise PermissionDeniedError("User is not assigned to a store")
    return user.store_id
