"""
Sales Service - point of sale for whole pairs

WHY: A sale and the stock decrement that pays for it must land together.
The item row is locked and its stock re-read inside the write transaction,
so two terminals selling the last pair cannot both succeed.

Payments are checked against the sale total before any write: the tenders
must add up exactly to price_cents * quantity (amounts are integer cents).
"""

from __future__ import annotations

from flask import current_app

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import InventoryItem, Sale, SalePayment, Store, User
from ..time_utils import parse_date_range, utcnow
from ..validation import MAX_PRICE_CENTS, parse_payments, require_int
from . import pairs
from .concurrency import begin_write, lock_for_update, run_with_retry
from .ledger_service import append_activity_event
from .permission_service import ensure_store_access, require_permission, resolve_store_scope


def _clean_text(value, field: str, max_length: int) -> str | None:
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if len(value) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return value


def validate_payment_total(payments: list[tuple[str, int]], price_cents: int, quantity: int) -> int:
    """Return the expected total, or raise if the tenders do not add up to it."""
    expected = price_cents * quantity
    paid = sum(amount for _, amount in payments)
    if paid != expected:
        raise ValidationError(
            "Payment amounts must add up to the sale total",
            details={"expected_cents": expected, "paid_cents": paid},
        )
    return expected


def record_sale(
    product_id,
    size,
    quantity,
    price_cents,
    payments,
    actor: User,
    customer_name: str | None = None,
    customer_phone: str | None = None,
) -> Sale:
    """
    Sell `quantity` pairs of one stock line.

    price_cents is the agreed unit price; when it differs from the list price
    the sale is flagged as haggled and any markdown is recorded as discount.

    Raises:
        ValidationError: bad input, unknown size, or payments not matching total
        NotFoundError: inventory line missing
        InsufficientStockError: stock < quantity at commit time; nothing written
    """
    require_permission(actor, "RECORD_SALE")

    product_id = require_int(product_id, "product_id")
    quantity = require_int(quantity, "quantity", minimum=1)
    price_cents = require_int(price_cents, "price_cents", minimum=0)
    if price_cents > MAX_PRICE_CENTS:
        raise ValidationError(f"price_cents cannot exceed {MAX_PRICE_CENTS}")
    size = _clean_text(size, "size", 16)
    if not size:
        raise ValidationError("size is required")
    customer_name = _clean_text(customer_name, "customer_name", 120)
    customer_phone = _clean_text(customer_phone, "customer_phone", 32)

    tenders = parse_payments(payments)
    total_cents = validate_payment_total(tenders, price_cents, quantity)

    def _op():
        begin_write()
        item = lock_for_update(db.session.query(InventoryItem).filter_by(id=product_id)).first()
        if not item:
            raise NotFoundError(f"Inventory item {product_id} not found")
        ensure_store_access(actor, item.store_id)

        if size not in (item.sizes or []):
            raise ValidationError(
                f"Size {size} is not stocked for {item.at_no}",
                details={"sizes": list(item.sizes or [])},
            )

        item.apply_pair_state(pairs.sell(item.pair_state, quantity))

        original = item.price_cents
        discount = (original - price_cents) * quantity if price_cents < original else 0
        sale = Sale(
            store_id=item.store_id,
            product_id=item.id,
            user_id=actor.id,
            at_no=item.at_no,
            product_name=item.name,
            brand=item.brand,
            size=size,
            quantity=quantity,
            price_cents=price_cents,
            original_price_cents=original,
            is_haggled=price_cents != original,
            discount_cents=discount,
            total_cents=total_cents,
            customer_name=customer_name,
            customer_phone=customer_phone,
            created_at=utcnow(),
        )
        db.session.add(sale)
        db.session.flush()

        for method, amount in tenders:
            db.session.add(SalePayment(sale_id=sale.id, method=method, amount_cents=amount))

        append_activity_event(
            store_id=item.store_id,
            event_type="sale.recorded",
            entity_type="sale",
            entity_id=sale.id,
            actor_user_id=actor.id,
            occurred_at=sale.created_at,
            payload={
                "at_no": item.at_no,
                "quantity": quantity,
                "total_cents": total_cents,
                "stock_after": item.stock,
            },
        )
        db.session.commit()
        return sale

    try:
        sale = run_with_retry(_op)
    except InsufficientStockError as exc:
        current_app.logger.warning("Sale rejected for item %s: %s", product_id, exc)
        raise

    current_app.logger.info(
        "Sale %s: %s x%s at %s cents by user %s", sale.id, sale.at_no, sale.quantity, sale.price_cents, actor.id
    )
    return sale


def get_sale(sale_id: int, actor: User) -> Sale:
    require_permission(actor, "VIEW_SALES")
    sale = db.session.get(Sale, sale_id)
    if not sale or sale.store.business_id != actor.business_id:
        raise NotFoundError(f"Sale {sale_id} not found")
    ensure_store_access(actor, sale.store_id)
    return sale


def list_sales(
    actor: User,
    *,
    store_id: int | None = None,
    start: str | None = None,
    end: str | None = None,
) -> list[Sale]:
    """Sales newest first, optionally within [start, end)."""
    require_permission(actor, "VIEW_SALES")
    start_dt, end_dt = parse_date_range(start, end)
    scope = resolve_store_scope(actor, store_id)

    query = db.session.query(Sale).join(Store).filter(Store.business_id == actor.business_id)
    if scope is not None:
        query = query.filter(Sale.store_id == scope)
    if start_dt:
        query = query.filter(Sale.created_at >= start_dt)
    if end_dt:
        query = query.filter(Sale.created_at < end_dt)
    return query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
