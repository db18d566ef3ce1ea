# backend/duka/routes/stores.py
"""
Store (duka) routes.
"""
from flask import Blueprint, jsonify, g

from . import error_response, json_body, unexpected_error
from ..decorators import require_auth, require_permission
from ..errors import DukaError
from ..services import tenant_service


stores_bp = Blueprint("stores", __name__, url_prefix="/api")


@stores_bp.route("/businesses/<int:business_id>/stores", methods=["POST"])
@require_auth
@require_permission("MANAGE_STORES")
def add_store(business_id: int):
    """
    Add a store to the caller's business.

    Request body:
    {
        "name": str,
        "code": str (optional)
    }

    Returns:
        201: Store created
        400: Invalid request / duplicate name
        403: Forbidden
        404: Business not found
    """
    data = json_body()
    try:
        store = tenant_service.add_store(
            business_id,
            data.get("name"),
            code=data.get("code"),
            actor=g.current_user,
        )
        return jsonify(store.to_dict()), 201
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("add store")


@stores_bp.route("/stores", methods=["GET"])
@require_auth
def list_stores():
    """Stores of the caller's business. Any authenticated user may list them (lend targets)."""
    try:
        stores = tenant_service.list_stores(g.business_id)
        return jsonify({"stores": [s.to_dict() for s in stores]}), 200
    except Exception:
        return unexpected_error("list stores")
