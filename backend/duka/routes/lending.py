# backend/duka/routes/lending.py
"""
Inter-store lending routes.
"""
from flask import Blueprint, request, jsonify, g

from . import error_response, json_body, query_int, unexpected_error
from ..decorators import require_auth, require_permission
from ..errors import DukaError
from ..services import lending_service


lending_bp = Blueprint("lending", __name__, url_prefix="/api/lending")


@lending_bp.route("", methods=["POST"])
@require_auth
@require_permission("LEND_ITEMS")
def lend_item():
    """
    Lend pairs or a single shoe to another store.

    Request body:
    {
        "item_id": int,
        "to_store_id": int,
        "to_staff_id": int,
        "lend_type": "pair" | "single",
        "quantity": int (pairs; ignored for single)
    }

    Returns:
        201: Lent record created
        400: Invalid request
        403: Forbidden
        404: Item or store not found
        409: Insufficient stock
    """
    data = json_body()
    try:
        lent = lending_service.lend_item(
            data.get("item_id"),
            data.get("to_store_id"),
            data.get("to_staff_id"),
            data.get("lend_type"),
            data.get("quantity", 1),
            g.current_user,
        )
        return jsonify(lent.to_dict()), 201
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("lend item")


@lending_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_LENT_ITEMS")
def list_lent_items():
    """
    Query params: store_id, direction (outgoing | incoming), status (lent | returned | updated).
    """
    try:
        records = lending_service.list_lent_items(
            g.current_user,
            store_id=query_int("store_id"),
            direction=request.args.get("direction") or None,
            status=request.args.get("status") or None,
        )
        return jsonify({"lent_items": [r.to_dict() for r in records]}), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("list lent items")


@lending_bp.route("/<int:lent_id>/return", methods=["POST"])
@require_auth
@require_permission("RETURN_LENT_ITEMS")
def return_lent_item(lent_id: int):
    """
    Returns:
        200: Lend returned, stock restored at both stores
        404: Lent record or one of its inventory lines missing
        409: Already returned / updated
    """
    try:
        lent = lending_service.return_lent_item(lent_id, g.current_user)
        return jsonify(lent.to_dict()), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("return lent item")


@lending_bp.route("/<int:lent_id>/mark-updated", methods=["POST"])
@require_auth
@require_permission("ACKNOWLEDGE_LENT_ITEMS")
def mark_updated(lent_id: int):
    try:
        lent = lending_service.mark_updated(lent_id, g.current_user)
        return jsonify(lent.to_dict()), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("mark lent item updated")
