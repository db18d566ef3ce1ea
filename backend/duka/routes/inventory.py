# backend/duka/routes/inventory.py
"""
Inventory (stock line) routes.

Manual edits are validated against the pair invariant; stock movements from
sales and lending go through their own endpoints.
"""
from flask import Blueprint, jsonify, g

from . import error_response, json_body, query_int, unexpected_error
from ..decorators import require_auth, require_permission
from ..errors import DukaError
from ..services import inventory_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.route("", methods=["POST"])
@require_auth
@require_permission("MANAGE_PRODUCTS")
def create_item():
    """
    Create a stock line.

    Request body:
    {
        "store_id": int,
        "at_no": str, "name": str, "sizes": [str] | "40,41", "colors": [str] | "black,white",
        "price_cents": int, "stock": int, "incomplete_pairs": int (optional), ...
    }

    Returns:
        201: Item created
        400: Invalid payload / duplicate @No
        403: Forbidden
    """
    data = dict(json_body())
    store_id = data.pop("store_id", None) or g.store_id
    try:
        if store_id is None:
            return jsonify({"error": "store_id is required"}), 400
        item = inventory_service.create_item(store_id, data, g.current_user)
        return jsonify(item.to_dict()), 201
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("create inventory item")


@inventory_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_INVENTORY")
def list_items():
    try:
        items = inventory_service.list_items(g.current_user, query_int("store_id"))
        return jsonify({"items": [i.to_dict() for i in items]}), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("list inventory")


@inventory_bp.route("/<int:item_id>", methods=["GET"])
@require_auth
@require_permission("VIEW_INVENTORY")
def get_item(item_id: int):
    try:
        item = inventory_service.get_item(item_id, g.current_user)
        return jsonify(item.to_dict()), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("load inventory item")


@inventory_bp.route("/<int:item_id>", methods=["PATCH"])
@require_auth
@require_permission("EDIT_INVENTORY")
def update_item(item_id: int):
    """
    Partial update. Staff-admins may only touch stock-keeping fields.

    Returns:
        200: Updated item
        400: Invalid payload (e.g. incomplete_pairs > stock)
        403: Forbidden
        404: Item not found
    """
    try:
        item = inventory_service.update_item(item_id, json_body(), g.current_user)
        return jsonify(item.to_dict()), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("update inventory item")


@inventory_bp.route("/<int:item_id>", methods=["DELETE"])
@require_auth
@require_permission("DELETE_INVENTORY")
def delete_item(item_id: int):
    try:
        inventory_service.delete_item(item_id, g.current_user)
        return jsonify({"deleted": item_id}), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("delete inventory item")
