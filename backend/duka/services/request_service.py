# Overview: Shoe requests raised by shop-floor staff for stock a store lacks.

from __future__ import annotations

from flask import current_app

from ..errors import NotFoundError, PermissionDeniedError, TerminalStateError, ValidationError
from ..extensions import db
from ..models import ShoeRequest, Store, User
from ..models.requests import REQUEST_STATUS_PENDING, REQUEST_STATUS_PROCESSED
from ..time_utils import utcnow
from ..validation import require_int
from .concurrency import lock_for_update, run_with_retry
from .ledger_service import append_activity_event
from .permission_service import ensure_store_access, require_permission, resolve_store_scope

REQUEST_STATUSES = (REQUEST_STATUS_PENDING, REQUEST_STATUS_PROCESSED)


def create_request(payload: dict, actor: User) -> ShoeRequest:
    """
    Raise a request for a shoe a customer asked for.

    Staff file requests for their own store; admins must name the store.
    """
    require_permission(actor, "REQUEST_SHOES")
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    store_id = payload.get("store_id") or actor.store_id
    if store_id is None:
        raise ValidationError("store_id is required")
    store = ensure_store_access(actor, require_int(store_id, "store_id"))

    shoe_name = str(payload.get("shoe_name") or "").strip()
    if not shoe_name:
        raise ValidationError("shoe_name is required")
    if len(shoe_name) > 255:
        raise ValidationError("shoe_name exceeds max length 255")
    size = str(payload.get("size") or "").strip() or None
    contact = str(payload.get("customer_contact") or "").strip() or None
    quantity = require_int(payload.get("quantity", 1), "quantity", minimum=1)

    def _op():
        req = ShoeRequest(
            store_id=store.id,
            staff_id=actor.id,
            shoe_name=shoe_name,
            size=size,
            quantity=quantity,
            customer_contact=contact,
            status=REQUEST_STATUS_PENDING,
            created_at=utcnow(),
        )
        db.session.add(req)
        db.session.flush()
        append_activity_event(
            store_id=store.id,
            event_type="request.created",
            entity_type="shoe_request",
            entity_id=req.id,
            actor_user_id=actor.id,
            occurred_at=req.created_at,
            note=shoe_name[:255],
        )
        db.session.commit()
        return req

    req = run_with_retry(_op)
    current_app.logger.info("Shoe request %s raised at store %s", req.id, store.id)
    return req


def list_requests(actor: User, *, store_id: int | None = None, status: str | None = REQUEST_STATUS_PENDING) -> list[ShoeRequest]:
    require_permission(actor, "PROCESS_REQUESTS")
    if status is not None and status not in REQUEST_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(REQUEST_STATUSES)}")
    scope = resolve_store_scope(actor, store_id)

    query = db.session.query(ShoeRequest).join(Store).filter(Store.business_id == actor.business_id)
    if scope is not None:
        query = query.filter(ShoeRequest.store_id == scope)
    if status is not None:
        query = query.filter(ShoeRequest.status == status)
    return query.order_by(ShoeRequest.created_at.desc(), ShoeRequest.id.desc()).all()


def process_request(request_id: int, actor: User) -> ShoeRequest:
    """Mark a pending request handled. Processing twice is a TerminalStateError."""
    require_permission(actor, "PROCESS_REQUESTS")

    def _op():
        req = lock_for_update(db.session.query(ShoeRequest).filter_by(id=request_id)).first()
        if not req:
            raise NotFoundError(f"Shoe request {request_id} not found")
        store = db.session.get(Store, req.store_id)
        if store.business_id != actor.business_id:
            raise NotFoundError(f"Shoe request {request_id} not found")
        if not actor.is_admin and actor.store_id != req.store_id:
            raise PermissionDeniedError("You can only process requests for your own store")
        if req.status != REQUEST_STATUS_PENDING:
            raise TerminalStateError(f"Shoe request is already {req.status}", details={"request_id": req.id})

        req.status = REQUEST_STATUS_PROCESSED
        req.processed_at = utcnow()
        req.processed_by_user_id = actor.id
        append_activity_event(
            store_id=req.store_id,
            event_type="request.processed",
            entity_type="shoe_request",
            entity_id=req.id,
            actor_user_id=actor.id,
            occurred_at=req.processed_at,
        )
        db.session.commit()
        return req

    return run_with_retry(_op)
