# Overview: Store-to-store lending of pairs and single shoes.

"""
Lending Service - inter-store lends with a return workflow

WHY: Stores borrow stock from each other to close a sale. A lend touches
three rows (source line, destination line, ledger row) and all three are
written in ONE database transaction, so a failure at any step leaves both
stores exactly as they were.

LIFECYCLE:
1. lent: source decremented, destination credited
2. returned (terminal): inverse deltas applied at both stores
3. updated (terminal): destination staff already fixed their own stock by
   hand; no inventory change

PAIR ARITHMETIC lives in services.pairs; this module only loads, locks and
writes rows.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError

from ..errors import NotFoundError, PermissionDeniedError, RecordNotFoundError, TerminalStateError, ValidationError
from ..extensions import db
from ..models import InventoryItem, LentShoe, Store, User
from ..models.auth import STAFF_ROLES
from ..models.lending import (
    LEND_TYPE_PAIR,
    LEND_TYPE_SINGLE,
    LEND_TYPES,
    LENT_STATUS_LENT,
    LENT_STATUS_RETURNED,
    LENT_STATUS_UPDATED,
)
from ..time_utils import utcnow
from ..validation import require_int
from . import pairs
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_activity_event
from .permission_service import ensure_store_access, get_business_store, require_permission, resolve_store_scope

LENT_STATUSES = (LENT_STATUS_LENT, LENT_STATUS_RETURNED, LENT_STATUS_UPDATED)
DIRECTION_OUTGOING = "outgoing"
DIRECTION_INCOMING = "incoming"
DIRECTIONS = (DIRECTION_OUTGOING, DIRECTION_INCOMING)


def _lock_item(item_id: int | None) -> InventoryItem | None:
    if item_id is None:
        return None
    return lock_for_update(db.session.query(InventoryItem).filter_by(id=item_id)).first()


def _lock_destination(store_id: int, at_no: str) -> InventoryItem | None:
    return lock_for_update(
        db.session.query(InventoryItem).filter_by(store_id=store_id, at_no=at_no)
    ).first()


def _create_destination(source: InventoryItem, to_store_id: int) -> InventoryItem | None:
    """
    Insert an empty destination line copied from the source attributes.

    Returns None if another writer created the same (store, @No) line first;
    the caller then locks that row instead.
    """
    dest = InventoryItem(store_id=to_store_id, stock=0, incomplete_pairs=0, **source.snapshot())
    try:
        with db.session.begin_nested():
            db.session.add(dest)
    except IntegrityError:
        return None
    return dest


def _validate_destination_staff(to_staff_id: int, to_store: Store) -> User:
    staff = db.session.get(User, to_staff_id)
    if (
        not staff
        or not staff.is_active
        or staff.business_id != to_store.business_id
        or staff.role not in STAFF_ROLES
        or staff.store_id != to_store.id
    ):
        raise ValidationError(
            "Receiving staff must be an active staff member of the destination store",
            details={"to_staff_id": to_staff_id, "to_store_id": to_store.id},
        )
    return staff


def lend_item(
    item_id,
    to_store_id,
    to_staff_id,
    lend_type: str,
    quantity,
    actor: User,
) -> LentShoe:
    """
    Lend a pair (or pairs) or a single shoe to another store.

    Args:
        item_id: Source stock line (must be at a store actor may act on)
        to_store_id: Destination store in the same business
        to_staff_id: Staff member receiving at the destination
        lend_type: "pair" or "single"
        quantity: Pairs to lend; forced to 1 for single lends
        actor: User performing the lend

    Raises:
        ValidationError: missing selection, same store, bad receiving staff
        InsufficientStockError: source short on stock
        InvariantViolationError: result would break the pair invariant
    """
    require_permission(actor, "LEND_ITEMS")

    if item_id in (None, "") or to_store_id in (None, "") or to_staff_id in (None, ""):
        raise ValidationError("Item, destination store and receiving staff are all required")
    item_id = require_int(item_id, "item_id")
    to_store_id = require_int(to_store_id, "to_store_id")
    to_staff_id = require_int(to_staff_id, "to_staff_id")

    if lend_type not in LEND_TYPES:
        raise ValidationError(f"lend_type must be one of: {', '.join(LEND_TYPES)}")
    if lend_type == LEND_TYPE_SINGLE:
        quantity = 1
    else:
        quantity = require_int(quantity, "quantity", minimum=1)

    to_store = get_business_store(actor, to_store_id)
    staff = _validate_destination_staff(to_staff_id, to_store)

    def _op():
        begin_write()
        source = _lock_item(item_id)
        if not source:
            raise NotFoundError(f"Inventory item {item_id} not found")
        ensure_store_access(actor, source.store_id)
        if source.store_id == to_store.id:
            raise ValidationError("Cannot lend to the same store")

        if lend_type == LEND_TYPE_PAIR:
            source_state = pairs.lend_pair(source.pair_state, quantity)
            mode = None
        else:
            source_state, mode = pairs.lend_single(source.pair_state)

        dest = _lock_destination(to_store.id, source.at_no)
        created = False
        if dest is None:
            dest = _create_destination(source, to_store.id)
            created = dest is not None
            if dest is None:
                dest = _lock_destination(to_store.id, source.at_no)

        prior = None if created else dest.pair_state
        if lend_type == LEND_TYPE_PAIR:
            dest_state = pairs.receive_pair(prior, quantity)
        else:
            dest_state = pairs.receive_single(prior)

        source.apply_pair_state(source_state)
        dest.apply_pair_state(dest_state)

        lent = LentShoe(
            item_id=source.id,
            destination_item_id=dest.id,
            at_no=source.at_no,
            item_snapshot=source.snapshot(),
            from_store_id=source.store_id,
            to_store_id=to_store.id,
            from_staff_id=actor.id,
            to_staff_id=staff.id,
            lend_type=lend_type,
            quantity=quantity,
            single_mode=mode,
            status=LENT_STATUS_LENT,
            lent_at=utcnow(),
        )
        db.session.add(lent)
        db.session.flush()

        append_activity_event(
            store_id=source.store_id,
            event_type="lend.created",
            entity_type="lent_shoe",
            entity_id=lent.id,
            actor_user_id=actor.id,
            occurred_at=lent.lent_at,
            payload={
                "at_no": lent.at_no,
                "lend_type": lend_type,
                "quantity": quantity,
                "single_mode": mode,
                "to_store_id": to_store.id,
                "destination_created": created,
            },
        )
        db.session.commit()
        return lent

    lent = run_with_retry(_op)
    current_app.logger.info(
        "Lent %s x%s (%s) of %s from store %s to store %s",
        lent.lend_type, lent.quantity, lent.single_mode or "-", lent.at_no, lent.from_store_id, lent.to_store_id,
    )
    return lent


def _load_lent_for_update(lent_id: int, actor: User) -> LentShoe:
    lent = lock_for_update(db.session.query(LentShoe).filter_by(id=lent_id)).first()
    if not lent or lent.from_store.business_id != actor.business_id:
        raise NotFoundError(f"Lent record {lent_id} not found")
    return lent


def _require_lent_status(lent: LentShoe) -> None:
    if lent.status != LENT_STATUS_LENT:
        current_app.logger.warning("Lent record %s already %s", lent.id, lent.status)
        raise TerminalStateError(
            f"Lent record is already {lent.status}",
            details={"lent_id": lent.id, "status": lent.status},
        )


def return_lent_item(lent_id: int, actor: User) -> LentShoe:
    """
    Return a lend: apply the exact inverse at both stores and close the record.

    Either store may record the return. If the source or destination line was
    deleted since the lend, nothing is written and RecordNotFoundError is raised.
    """
    require_permission(actor, "RETURN_LENT_ITEMS")

    def _op():
        begin_write()
        lent = _load_lent_for_update(lent_id, actor)
        if not actor.is_admin and actor.store_id not in (lent.from_store_id, lent.to_store_id):
            raise PermissionDeniedError("Only the lending or receiving store can return this item")
        _require_lent_status(lent)

        source = _lock_item(lent.item_id)
        if not source:
            raise RecordNotFoundError(
                "Source inventory line no longer exists",
                details={"lent_id": lent.id, "at_no": lent.at_no, "store_id": lent.from_store_id},
            )
        dest = _lock_item(lent.destination_item_id)
        if not dest:
            raise RecordNotFoundError(
                "Destination inventory line no longer exists",
                details={"lent_id": lent.id, "at_no": lent.at_no, "store_id": lent.to_store_id},
            )

        if lent.lend_type == LEND_TYPE_PAIR:
            source_state = pairs.return_pair_to_source(source.pair_state, lent.quantity)
            dest_state = pairs.take_back_pair(dest.pair_state, lent.quantity)
        else:
            source_state = pairs.return_single_to_source(source.pair_state, lent.single_mode)
            dest_state = pairs.take_back_single(dest.pair_state)

        source.apply_pair_state(source_state)
        dest.apply_pair_state(dest_state)

        lent.status = LENT_STATUS_RETURNED
        lent.returned_at = utcnow()
        lent.returned_by_user_id = actor.id

        append_activity_event(
            store_id=lent.from_store_id,
            event_type="lend.returned",
            entity_type="lent_shoe",
            entity_id=lent.id,
            actor_user_id=actor.id,
            occurred_at=lent.returned_at,
            payload={"at_no": lent.at_no, "lend_type": lent.lend_type, "quantity": lent.quantity},
        )
        db.session.commit()
        return lent

    lent = run_with_retry(_op)
    current_app.logger.info("Returned lent record %s (%s) to store %s", lent.id, lent.at_no, lent.from_store_id)
    return lent


def mark_updated(lent_id: int, actor: User) -> LentShoe:
    """
    Close a lend without a physical return.

    Used when the receiving store has already booked the item through its own
    inventory edit. Touches no stock. A second call fails with TerminalStateError.
    """
    require_permission(actor, "ACKNOWLEDGE_LENT_ITEMS")

    def _op():
        begin_write()
        lent = _load_lent_for_update(lent_id, actor)
        if not actor.is_admin and actor.store_id != lent.to_store_id:
            raise PermissionDeniedError("Only the receiving store can acknowledge this item")
        _require_lent_status(lent)

        lent.status = LENT_STATUS_UPDATED
        lent.processed_at = utcnow()
        lent.processed_by_user_id = actor.id

        append_activity_event(
            store_id=lent.to_store_id,
            event_type="lend.updated",
            entity_type="lent_shoe",
            entity_id=lent.id,
            actor_user_id=actor.id,
            occurred_at=lent.processed_at,
        )
        db.session.commit()
        return lent

    lent = run_with_retry(_op)
    current_app.logger.info("Lent record %s marked updated by user %s", lent.id, actor.id)
    return lent


def list_lent_items(
    actor: User,
    *,
    store_id: int | None = None,
    direction: str | None = None,
    status: str | None = None,
) -> list[LentShoe]:
    """
    Lent records touching a store.

    direction "outgoing" lists what the store lent out, "incoming" what it
    received; None lists both. Admins without store_id see the whole business.
    """
    require_permission(actor, "VIEW_LENT_ITEMS")
    if direction is not None and direction not in DIRECTIONS:
        raise ValidationError(f"direction must be one of: {', '.join(DIRECTIONS)}")
    if status is not None and status not in LENT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(LENT_STATUSES)}")

    scope = resolve_store_scope(actor, store_id)
    query = (
        db.session.query(LentShoe)
        .join(Store, LentShoe.from_store_id == Store.id)
        .filter(Store.business_id == actor.business_id)
    )
    if scope is not None:
        if direction == DIRECTION_OUTGOING:
            query = query.filter(LentShoe.from_store_id == scope)
        elif direction == DIRECTION_INCOMING:
            query = query.filter(LentShoe.to_store_id == scope)
        else:
            query = query.filter(or_(LentShoe.from_store_id == scope, LentShoe.to_store_id == scope))
    if status is not None:
        query = query.filter(LentShoe.status == status)
    return query.order_by(LentShoe.lent_at.desc(), LentShoe.id.desc()).all()
