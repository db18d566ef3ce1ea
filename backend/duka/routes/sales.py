# backend/duka/routes/sales.py
"""
Point-of-sale routes.
"""
from flask import Blueprint, request, jsonify, g

from . import error_response, json_body, query_int, unexpected_error
from ..decorators import require_auth, require_permission
from ..errors import DukaError
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.route("", methods=["POST"])
@require_auth
@require_permission("RECORD_SALE")
def record_sale():
    """
    Record a sale of whole pairs.

    Request body:
    {
        "product_id": int,
        "size": str,
        "quantity": int,
        "price_cents": int (agreed unit price),
        "payments": [{"method": "cash" | "mpesa" | "card", "amount_cents": int}, ...],
        "customer_name": str (optional),
        "customer_phone": str (optional)
    }

    Returns:
        201: Sale recorded
        400: Invalid request / payments do not add up
        403: Forbidden
        404: Item not found
        409: Insufficient stock
    """
    data = json_body()
    try:
        sale = sales_service.record_sale(
            data.get("product_id"),
            data.get("size"),
            data.get("quantity"),
            data.get("price_cents"),
            data.get("payments"),
            g.current_user,
            customer_name=data.get("customer_name"),
            customer_phone=data.get("customer_phone"),
        )
        return jsonify(sale.to_dict()), 201
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("record sale")


@sales_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_SALES")
def list_sales():
    """Query params: store_id, start, end (ISO-8601; a bare end date is inclusive)."""
    try:
        sales = sales_service.list_sales(
            g.current_user,
            store_id=query_int("store_id"),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify({"sales": [s.to_dict() for s in sales]}), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("list sales")


@sales_bp.route("/<int:sale_id>", methods=["GET"])
@require_auth
@require_permission("VIEW_SALES")
def get_sale(sale_id: int):
    try:
        sale = sales_service.get_sale(sale_id, g.current_user)
        body = sale.to_dict()
        body["returned"] = sale.sale_return is not None
        return jsonify(body), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("load sale")
