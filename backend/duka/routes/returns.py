# backend/duka/routes/returns.py
"""
Customer return routes.
"""
from flask import Blueprint, jsonify, g

from . import error_response, json_body, query_int, unexpected_error
from ..decorators import require_auth, require_permission
from ..errors import DukaError
from ..services import return_service


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.route("", methods=["POST"])
@require_auth
@require_permission("PROCESS_RETURN")
def record_return():
    """
    Request body:
    {
        "sale_id": int,
        "reason": str
    }

    Returns:
        201: Return recorded (inventory_restored tells whether stock went back)
        400: Missing reason
        404: Sale not found
        409: Sale already returned
    """
    data = json_body()
    try:
        ret = return_service.record_return(data.get("sale_id"), data.get("reason"), g.current_user)
        return jsonify(ret.to_dict()), 201
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("record return")


@returns_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_SALES")
def list_returns():
    try:
        returns = return_service.list_returns(g.current_user, store_id=query_int("store_id"))
        return jsonify({"returns": [r.to_dict() for r in returns]}), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("list returns")
