# Overview: Stock-level and sales summary reports for admins.

from __future__ import annotations

from flask import current_app
from sqlalchemy import case, func

from ..extensions import db
from ..models import InventoryItem, Sale, SalePayment, SaleReturn, Store, User
from ..time_utils import parse_date_range, to_utc_z
from .permission_service import require_permission, resolve_store_scope

BUCKET_OUT = "out_of_stock"
BUCKET_LOW = "low"
BUCKET_MEDIUM = "medium"
BUCKET_HIGH = "high"
BUCKETS = (BUCKET_OUT, BUCKET_LOW, BUCKET_MEDIUM, BUCKET_HIGH)


def stock_bucket(stock: int, low: int, high: int) -> str:
    if stock <= 0:
        return BUCKET_OUT
    if stock <= low:
        return BUCKET_LOW
    if stock <= high:
        return BUCKET_MEDIUM
    return BUCKET_HIGH


def stock_levels(actor: User, *, store_id: int | None = None) -> dict:
    """
    Stock lines per store grouped into out-of-stock / low / medium / high,
    with pair and shoe totals. Thresholds come from LOW_STOCK_THRESHOLD and
    HIGH_STOCK_THRESHOLD.
    """
    require_permission(actor, "VIEW_REPORTS")
    scope = resolve_store_scope(actor, store_id)
    low = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
    high = current_app.config.get("HIGH_STOCK_THRESHOLD", 50)

    bucket_expr = case(
        (InventoryItem.stock <= 0, BUCKET_OUT),
        (InventoryItem.stock <= low, BUCKET_LOW),
        (InventoryItem.stock <= high, BUCKET_MEDIUM),
        else_=BUCKET_HIGH,
    )
    query = db.session.query(
        Store.id.label("store_id"),
        Store.name.label("store_name"),
        bucket_expr.label("bucket"),
        func.count(InventoryItem.id).label("lines"),
        func.coalesce(func.sum(InventoryItem.stock), 0).label("pairs"),
        func.coalesce(func.sum(InventoryItem.incomplete_pairs), 0).label("incomplete_pairs"),
    ).join(InventoryItem, InventoryItem.store_id == Store.id).filter(Store.business_id == actor.business_id)
    if scope is not None:
        query = query.filter(Store.id == scope)

    stores: dict[int, dict] = {}
    for row in query.group_by(Store.id, Store.name, "bucket").all():
        entry = stores.setdefault(row.store_id, {
            "store_id": row.store_id,
            "store_name": row.store_name,
            "buckets": {b: 0 for b in BUCKETS},
            "total_pairs": 0,
            "incomplete_pairs": 0,
            "total_shoes": 0,
        })
        pairs = int(row.pairs or 0)
        incomplete = int(row.incomplete_pairs or 0)
        entry["buckets"][row.bucket] += int(row.lines)
        entry["total_pairs"] += pairs
        entry["incomplete_pairs"] += incomplete
        entry["total_shoes"] += (pairs - incomplete) * 2 + incomplete

    low_items = db.session.query(InventoryItem).join(Store).filter(
        Store.business_id == actor.business_id,
        InventoryItem.stock <= low,
    )
    if scope is not None:
        low_items = low_items.filter(InventoryItem.store_id == scope)

    return {
        "thresholds": {"low": low, "high": high},
        "stores": sorted(stores.values(), key=lambda s: s["store_name"]),
        "low_stock_items": [
            {
                "id": item.id,
                "store_id": item.store_id,
                "at_no": item.at_no,
                "name": item.name,
                "stock": item.stock,
                "incomplete_pairs": item.incomplete_pairs,
                "bucket": stock_bucket(item.stock, low, high),
            }
            for item in low_items.order_by(InventoryItem.stock, InventoryItem.at_no).all()
        ],
    }


def _grouped(query, key_col):
    return {
        (row.key if row.key is not None else "unknown"): {
            "sales_count": int(row.sales_count or 0),
            "units": int(row.units or 0),
            "revenue_cents": int(row.revenue_cents or 0),
        }
        for row in query.with_entities(
            key_col.label("key"),
            func.count(Sale.id).label("sales_count"),
            func.coalesce(func.sum(Sale.quantity), 0).label("units"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("revenue_cents"),
        ).group_by(key_col).all()
    }


def sales_summary(
    actor: User,
    *,
    store_id: int | None = None,
    start: str | None = None,
    end: str | None = None,
) -> dict:
    """
    Revenue, units, haggling and payment-method totals for a date range.

    haggle_rate is the percentage of sales whose agreed price differed from
    the list price. Returns in the same window are reported separately; they
    are not netted out of revenue.
    """
    require_permission(actor, "VIEW_REPORTS")
    start_dt, end_dt = parse_date_range(start, end)
    scope = resolve_store_scope(actor, store_id)

    sales = db.session.query(Sale).join(Store, Sale.store_id == Store.id).filter(
        Store.business_id == actor.business_id
    )
    if scope is not None:
        sales = sales.filter(Sale.store_id == scope)
    if start_dt:
        sales = sales.filter(Sale.created_at >= start_dt)
    if end_dt:
        sales = sales.filter(Sale.created_at < end_dt)

    totals = sales.with_entities(
        func.count(Sale.id),
        func.coalesce(func.sum(Sale.quantity), 0),
        func.coalesce(func.sum(Sale.total_cents), 0),
        func.coalesce(func.sum(case((Sale.is_haggled.is_(True), 1), else_=0)), 0),
        func.coalesce(func.sum(Sale.discount_cents), 0),
    ).one()
    sales_count, units, revenue, haggled, discounts = (int(v or 0) for v in totals)

    by_method = {
        method: int(amount or 0)
        for method, amount in sales.join(SalePayment, SalePayment.sale_id == Sale.id).with_entities(
            SalePayment.method, func.sum(SalePayment.amount_cents)
        ).group_by(SalePayment.method).all()
    }
    method_counts = dict(
        sales.join(SalePayment, SalePayment.sale_id == Sale.id).with_entities(
            SalePayment.method, func.count(func.distinct(Sale.id))
        ).group_by(SalePayment.method).all()
    )
    popular_method = max(method_counts, key=method_counts.get) if method_counts else None

    returns = db.session.query(SaleReturn).join(Store, SaleReturn.store_id == Store.id).filter(
        Store.business_id == actor.business_id
    )
    if scope is not None:
        returns = returns.filter(SaleReturn.store_id == scope)
    if start_dt:
        returns = returns.filter(SaleReturn.created_at >= start_dt)
    if end_dt:
        returns = returns.filter(SaleReturn.created_at < end_dt)
    return_count, returned_cents = returns.with_entities(
        func.count(SaleReturn.id),
        func.coalesce(func.sum(SaleReturn.price_cents * SaleReturn.quantity), 0),
    ).one()

    return {
        "store_id": scope,
        "start": to_utc_z(start_dt) if start_dt else None,
        "end": to_utc_z(end_dt) if end_dt else None,
        "sales_count": sales_count,
        "units_sold": units,
        "revenue_cents": revenue,
        "average_sale_cents": revenue // sales_count if sales_count else 0,
        "haggled_count": haggled,
        "haggle_rate": round(haggled * 100.0 / sales_count, 2) if sales_count else 0.0,
        "total_discount_cents": discounts,
        "payments_by_method_cents": by_method,
        "popular_payment_method": popular_method,
        "by_brand": _grouped(sales, Sale.brand),
        "by_size": _grouped(sales, Sale.size),
        "by_staff": _grouped(sales, Sale.user_id),
        "returns_count": int(return_count or 0),
        "returned_cents": int(returned_cents or 0),
    }
