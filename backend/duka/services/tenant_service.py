"""
Tenancy Service: businesses and their stores (dukas)

WHY: Every row in the system hangs off a store, and every store off a
business. Businesses are created from the CLI; stores are added from the
CLI or by a business admin through the API.

SECURITY INVARIANTS:
1. An actor only ever adds or lists stores of their own business
2. Store names are unique within a business
"""

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import Business, Store, User
from .concurrency import run_with_retry
from .permission_service import require_permission


def create_business(name: str) -> Business:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Business name is required")

    def _op():
        business = Business(name=name, is_active=True)
        db.session.add(business)
        db.session.commit()
        return business

    business = run_with_retry(_op)
    current_app.logger.info("Created business %s (%s)", business.id, business.name)
    return business


def get_business(business_id: int) -> Business:
    business = db.session.get(Business, business_id)
    if not business:
        raise NotFoundError(f"Business {business_id} not found")
    return business


def list_businesses() -> list[Business]:
    return db.session.query(Business).order_by(Business.id).all()


def add_store(business_id: int, name: str, code: str | None = None, actor: User | None = None) -> Store:
    """
    Add a store to a business.

    actor is None for CLI bootstrap; otherwise the actor needs MANAGE_STORES
    and must belong to business_id (another business reads as not found).
    """
    if actor is not None:
        require_permission(actor, "MANAGE_STORES")
        if actor.business_id != business_id:
            raise NotFoundError(f"Business {business_id} not found")

    name = (name or "").strip()
    if not name:
        raise ValidationError("Store name is required")
    if len(name) > 120:
        raise ValidationError("Store name exceeds max length 120")
    code = (code or "").strip() or None

    def _op():
        business = get_business(business_id)
        if not business.is_active:
            raise ValidationError("Business is not active")
        if db.session.query(Store.id).filter_by(business_id=business.id, name=name).first():
            raise ValidationError(f"Store {name!r} already exists in this business")

        store = Store(business_id=business.id, name=name, code=code)
        db.session.add(store)
        db.session.commit()
        return store

    store = run_with_retry(_op)
    current_app.logger.info("Added store %s (%s) to business %s", store.id, store.name, business_id)
    return store


def list_stores(business_id: int) -> list[Store]:
    return db.session.query(Store).filter_by(business_id=business_id).order_by(Store.name).all()
