# Overview: Append-only activity log for domain events.

from __future__ import annotations

from typing import Optional
from datetime import datetime

from ..errors import NotFoundError
from ..extensions import db
from ..models import ActivityEvent, Store
"""
Activity Log Invariants

- Append-only audit log for cross-cutting domain events.
- No domain/business logic in the log itself.
- Events are written inside the same DB transaction as the domain event they record.
- occurred_at is business time (DB default when not given).
"""


def append_activity_event(
    *,
    store_id: int,
    event_type: str,
    entity_type: str,
    entity_id: int,
    actor_user_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
    payload: Optional[dict] = None,
) -> ActivityEvent:
    """
    Append an activity event scoped to the store's business.

    Flushes without committing; the caller's transaction owns the write.
    """
    store = db.session.get(Store, store_id)
    if not store:
        raise NotFoundError(f"Store {store_id} not found for activity event")

    ev = ActivityEvent(
        business_id=store.business_id,
        store_id=store_id,
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=actor_user_id,
        note=note,
        payload=payload,
    )
    if occurred_at is not None:
        ev.occurred_at = occurred_at
    db.session.add(ev)
    db.session.flush()
    return ev


def list_activity_events(
    business_id: int,
    *,
    store_id: int | None = None,
    entity_type: str | None = None,
    entity_id: int | None = None,
    limit: int = 100,
) -> list[ActivityEvent]:
    query = db.session.query(ActivityEvent).filter_by(business_id=business_id)
    if store_id is not None:
        query = query.filter_by(store_id=store_id)
    if entity_type is not None:
        query = query.filter_by(entity_type=entity_type)
    if entity_id is not None:
        query = query.filter_by(entity_id=entity_id)
    return query.order_by(ActivityEvent.occurred_at.desc(), ActivityEvent.id.desc()).limit(limit).all()
