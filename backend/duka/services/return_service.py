"""
Return Service - customer returns of a sale

WHY: A returned sale puts its pairs back on the selling store's shelf and
leaves an audit row. Both happen in one transaction.

RULES:
- One return per sale (AlreadyReturnedError on the second attempt)
- Stock goes back to the originating inventory line: stock += sale quantity
- If that line was deleted since the sale, the return row is still written
  with inventory_restored=False so the refund stays on record
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..errors import AlreadyReturnedError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, Sale, SaleReturn, Store, User
from ..time_utils import utcnow
from ..validation import require_int
from . import pairs
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_activity_event
from .permission_service import ensure_store_access, require_permission, resolve_store_scope


def record_return(sale_id, reason, actor: User) -> SaleReturn:
    """
    Record a customer return for a sale.

    Raises:
        ValidationError: missing reason
        NotFoundError: sale missing or in another business
        AlreadyReturnedError: sale was already returned
    """
    require_permission(actor, "PROCESS_RETURN")
    sale_id = require_int(sale_id, "sale_id")
    reason = (reason or "").strip() if isinstance(reason, str) else ""
    if not reason:
        raise ValidationError("Return reason is required")

    def _op():
        begin_write()
        sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
        if not sale or sale.store.business_id != actor.business_id:
            raise NotFoundError(f"Sale {sale_id} not found")
        ensure_store_access(actor, sale.store_id)

        if db.session.query(SaleReturn.id).filter_by(sale_id=sale.id).first():
            raise AlreadyReturnedError(f"Sale {sale.id} has already been returned", details={"sale_id": sale.id})

        item = None
        if sale.product_id is not None:
            item = lock_for_update(db.session.query(InventoryItem).filter_by(id=sale.product_id)).first()
        if item is not None:
            item.apply_pair_state(pairs.restock(item.pair_state, sale.quantity))

        ret = SaleReturn(
            sale_id=sale.id,
            product_id=item.id if item else None,
            store_id=sale.store_id,
            product_name=sale.product_name,
            size=sale.size,
            quantity=sale.quantity,
            price_cents=sale.price_cents,
            customer_name=sale.customer_name,
            customer_phone=sale.customer_phone,
            return_reason=reason,
            inventory_restored=item is not None,
            processed_by_user_id=actor.id,
            created_at=utcnow(),
        )
        db.session.add(ret)
        try:
            db.session.flush()
        except IntegrityError:
            raise AlreadyReturnedError(f"Sale {sale.id} has already been returned", details={"sale_id": sale.id})

        append_activity_event(
            store_id=sale.store_id,
            event_type="sale.returned",
            entity_type="sale_return",
            entity_id=ret.id,
            actor_user_id=actor.id,
            occurred_at=ret.created_at,
            note=reason[:255],
            payload={
                "sale_id": sale.id,
                "quantity": sale.quantity,
                "inventory_restored": ret.inventory_restored,
            },
        )
        db.session.commit()
        return ret

    ret = run_with_retry(_op)
    if not ret.inventory_restored:
        current_app.logger.warning(
            "Return %s for sale %s recorded without restocking: inventory line was deleted", ret.id, ret.sale_id
        )
    else:
        current_app.logger.info("Return %s for sale %s restocked %s pairs", ret.id, ret.sale_id, ret.quantity)
    return ret


def list_returns(actor: User, *, store_id: int | None = None) -> list[SaleReturn]:
    require_permission(actor, "VIEW_SALES")
    scope = resolve_store_scope(actor, store_id)

    query = db.session.query(SaleReturn).join(Store).filter(Store.business_id == actor.business_id)
    if scope is not None:
        query = query.filter(SaleReturn.store_id == scope)
    return query.order_by(SaleReturn.created_at.desc(), SaleReturn.id.desc()).all()
