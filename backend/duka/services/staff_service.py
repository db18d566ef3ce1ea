"""
Staff Service - user accounts, roles and store assignment

WHY: Authentication happens upstream, but the role and store that decide
what an authenticated id may do live here. Admins create staff, move them
between staff and staff-admin, and deactivate them.

RULES:
- Username and email are unique within a business
- staff and staff-admin users must be assigned to a store of the business
- Role changes only move between staff and staff-admin; admin accounts are
  created from the CLI
- Nobody deactivates their own account
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Store, User
from ..models.auth import ROLE_ADMIN, ROLES, STAFF_ROLES
from ..validation import require_int
from .concurrency import lock_for_update, run_with_retry
from .permission_service import require_permission, resolve_store_scope


def create_user(
    business_id: int,
    username: str,
    email: str,
    role: str,
    store_id: int | None = None,
    actor: User | None = None,
) -> User:
    """
    Create a user in a business.

    actor is None for CLI bootstrap (the first admin). Through the API the
    actor needs MANAGE_USERS and may only create staff roles in their own
    business.

    Raises:
        ValidationError: bad role, missing store for staff, duplicate username/email
        NotFoundError: store not in this business
    """
    if actor is not None:
        require_permission(actor, "MANAGE_USERS")
        if actor.business_id != business_id:
            raise NotFoundError(f"Business {business_id} not found")
        if role not in STAFF_ROLES:
            raise ValidationError(f"role must be one of: {', '.join(STAFF_ROLES)}")

    username = (username or "").strip()
    email = (email or "").strip().lower()
    if not username or not email:
        raise ValidationError("username and email are required")
    if role not in ROLES:
        raise ValidationError(f"role must be one of: {', '.join(ROLES)}")
    if store_id is not None:
        store_id = require_int(store_id, "store_id")
    if role in STAFF_ROLES and store_id is None:
        raise ValidationError("Staff users must be assigned to a store")

    def _op():
        if store_id is not None:
            store = db.session.get(Store, store_id)
            if not store or store.business_id != business_id:
                raise NotFoundError(f"Store {store_id} not found")

        existing = db.session.query(User).filter(
            User.business_id == business_id,
            db.or_(User.username == username, User.email == email),
        ).first()
        if existing:
            raise ValidationError("Username or email already exists in this business")

        user = User(
            business_id=business_id,
            username=username,
            email=email,
            role=role,
            store_id=store_id,
            is_active=True,
        )
        db.session.add(user)
        db.session.commit()
        return user

    user = run_with_retry(_op)
    current_app.logger.info("Created %s user %s (%s) in business %s", role, user.id, username, business_id)
    return user


def _load_staff_for_update(user_id: int, actor: User) -> User:
    user = lock_for_update(db.session.query(User).filter_by(id=user_id)).first()
    if not user or user.business_id != actor.business_id:
        raise NotFoundError(f"User {user_id} not found")
    return user


def set_role(user_id: int, role: str, actor: User) -> User:
    """Promote staff to staff-admin or demote back."""
    require_permission(actor, "MANAGE_USERS")
    if role not in STAFF_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(STAFF_ROLES)}")

    def _op():
        user = _load_staff_for_update(user_id, actor)
        if user.role == ROLE_ADMIN:
            raise ValidationError("Admin roles cannot be changed here")
        previous = user.role
        user.role = role
        db.session.commit()
        return user, previous

    user, previous = run_with_retry(_op)
    current_app.logger.info("User %s role %s -> %s by user %s", user.id, previous, role, actor.id)
    return user


def deactivate_user(user_id: int, actor: User) -> User:
    require_permission(actor, "MANAGE_USERS")
    if user_id == actor.id:
        raise ValidationError("You cannot deactivate your own account")

    def _op():
        user = _load_staff_for_update(user_id, actor)
        user.is_active = False
        db.session.commit()
        return user

    user = run_with_retry(_op)
    current_app.logger.info("User %s deactivated by user %s", user.id, actor.id)
    return user


def list_users(actor: User, *, store_id: int | None = None, include_inactive: bool = False) -> list[User]:
    require_permission(actor, "VIEW_USERS")
    scope = resolve_store_scope(actor, store_id)

    query = db.session.query(User).filter(User.business_id == actor.business_id)
    if scope is not None:
        query = query.filter(User.store_id == scope)
    if not include_inactive:
        query = query.filter(User.is_active.is_(True))
    return query.order_by(User.username).all()


def list_business_users(business_id: int) -> list[User]:
    """All users of a business, for the CLI."""
    return db.session.query(User).filter_by(business_id=business_id).order_by(User.id).all()
