# Overview: Stock line CRUD with pair-invariant validation.

"""
Inventory Service - stock lines per store

WHY: Stock lines are created by admins, corrected by staff-admins at their
own store, and mutated by lending and sales through their own services.
Every manual write goes through validate_inventory_payload so the pair
invariant holds no matter which screen sent the edit.

ROLE RULES:
- MANAGE_PRODUCTS (admin): full create / edit incl. at_no and price
- EDIT_INVENTORY (staff-admin): stock, incomplete pairs, notes, sizes, colors
- DELETE_INVENTORY (admin): hard delete; ledger rows keep their snapshots
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, LentShoe, Sale, SaleReturn, Store, User
from ..validation import INVENTORY_POLICY, STAFF_INVENTORY_POLICY, validate_inventory_payload
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_activity_event
from .permission_service import ensure_store_access, require_permission, resolve_store_scope


def find_item(store_id: int, at_no: str) -> InventoryItem | None:
    """Stock line for (store, @No), the key lending uses for destinations."""
    return db.session.query(InventoryItem).filter_by(store_id=store_id, at_no=at_no).first()


def get_item(item_id: int, actor: User) -> InventoryItem:
    require_permission(actor, "VIEW_INVENTORY")
    item = db.session.get(InventoryItem, item_id)
    if not item:
        raise NotFoundError(f"Inventory item {item_id} not found")
    if item.store.business_id != actor.business_id:
        raise NotFoundError(f"Inventory item {item_id} not found")
    ensure_store_access(actor, item.store_id)
    return item


def list_items(actor: User, store_id: int | None = None) -> list[InventoryItem]:
    """
    Stock lines visible to actor. Admins without store_id see every store
    of their business.
    """
    require_permission(actor, "VIEW_INVENTORY")
    scope = resolve_store_scope(actor, store_id)

    query = db.session.query(InventoryItem).join(Store).filter(Store.business_id == actor.business_id)
    if scope is not None:
        query = query.filter(InventoryItem.store_id == scope)
    return query.order_by(InventoryItem.store_id, InventoryItem.at_no).all()


def create_item(store_id: int, payload: dict, actor: User) -> InventoryItem:
    """
    Add a new product line to a store.

    Raises:
        ValidationError: bad payload, or @No already used at this store
    """
    require_permission(actor, "MANAGE_PRODUCTS")
    store = ensure_store_access(actor, store_id)
    patch = validate_inventory_payload(payload, partial=False)

    def _op():
        begin_write()
        if find_item(store.id, patch["at_no"]):
            raise ValidationError(f"@No {patch['at_no']} already exists at this store")

        item = InventoryItem(store_id=store.id, **patch)
        db.session.add(item)
        try:
            db.session.flush()
        except IntegrityError:
            raise ValidationError(f"@No {patch['at_no']} already exists at this store")

        append_activity_event(
            store_id=store.id,
            event_type="inventory.created",
            entity_type="inventory_item",
            entity_id=item.id,
            actor_user_id=actor.id,
            payload={"at_no": item.at_no, "stock": item.stock, "incomplete_pairs": item.incomplete_pairs},
        )
        db.session.commit()
        return item

    item = run_with_retry(_op)
    current_app.logger.info("Created inventory item %s (%s) at store %s", item.id, item.at_no, store.id)
    return item


def update_item(item_id: int, payload: dict, actor: User) -> InventoryItem:
    """
    Manual edit of a stock line.

    Admins may change every writable field; staff-admins only the stock-keeping
    fields at their own store. The merged result must satisfy the pair invariant.
    """
    if actor.is_admin:
        policy = INVENTORY_POLICY
    else:
        require_permission(actor, "EDIT_INVENTORY")
        policy = STAFF_INVENTORY_POLICY

    def _op():
        begin_write()
        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
        if not item:
            raise NotFoundError(f"Inventory item {item_id} not found")
        ensure_store_access(actor, item.store_id)

        patch = validate_inventory_payload(payload, partial=True, current=item, policy=policy)
        if "at_no" in patch and patch["at_no"] != item.at_no and find_item(item.store_id, patch["at_no"]):
            raise ValidationError(f"@No {patch['at_no']} already exists at this store")

        before = {"stock": item.stock, "incomplete_pairs": item.incomplete_pairs}
        for key, value in patch.items():
            setattr(item, key, value)
        db.session.flush()

        append_activity_event(
            store_id=item.store_id,
            event_type="inventory.updated",
            entity_type="inventory_item",
            entity_id=item.id,
            actor_user_id=actor.id,
            payload={
                "fields": sorted(patch.keys()),
                "before": before,
                "after": {"stock": item.stock, "incomplete_pairs": item.incomplete_pairs},
            },
        )
        db.session.commit()
        return item

    return run_with_retry(_op)


def delete_item(item_id: int, actor: User) -> None:
    """
    Hard-delete a stock line (admin only).

    Sales, returns and lending rows keep their snapshots; their references to
    this line are nulled in the same transaction.
    """
    require_permission(actor, "DELETE_INVENTORY")

    def _op():
        begin_write()
        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()
        if not item:
            raise NotFoundError(f"Inventory item {item_id} not found")
        ensure_store_access(actor, item.store_id)

        db.session.query(Sale).filter_by(product_id=item.id).update(
            {"product_id": None}, synchronize_session=False
        )
        db.session.query(SaleReturn).filter_by(product_id=item.id).update(
            {"product_id": None}, synchronize_session=False
        )
        db.session.query(LentShoe).filter_by(item_id=item.id).update(
            {"item_id": None}, synchronize_session=False
        )
        db.session.query(LentShoe).filter_by(destination_item_id=item.id).update(
            {"destination_item_id": None}, synchronize_session=False
        )

        append_activity_event(
            store_id=item.store_id,
            event_type="inventory.deleted",
            entity_type="inventory_item",
            entity_id=item.id,
            actor_user_id=actor.id,
            payload=item.snapshot(),
        )
        db.session.delete(item)
        db.session.commit()

    run_with_retry(_op)
    current_app.logger.info("Deleted inventory item %s", item_id)
