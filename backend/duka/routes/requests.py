# backend/duka/routes/requests.py
"""
Shoe request routes: staff ask for stock, admins and staff-admins process.
"""
from flask import Blueprint, request, jsonify, g

from . import error_response, json_body, query_int, unexpected_error
from ..decorators import require_auth, require_permission
from ..errors import DukaError
from ..services import request_service


requests_bp = Blueprint("requests", __name__, url_prefix="/api/requests")


@requests_bp.route("", methods=["POST"])
@require_auth
@require_permission("REQUEST_SHOES")
def create_request():
    """
    Request body:
    {
        "shoe_name": str,
        "size": str (optional),
        "quantity": int (optional, default 1),
        "customer_contact": str (optional),
        "store_id": int (admins only; staff use their own store)
    }
    """
    try:
        req = request_service.create_request(json_body(), g.current_user)
        return jsonify(req.to_dict()), 201
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("create shoe request")


@requests_bp.route("", methods=["GET"])
@require_auth
@require_permission("PROCESS_REQUESTS")
def list_requests():
    """Query params: store_id, status (pending by default; "all" for every status)."""
    status = request.args.get("status") or "pending"
    try:
        reqs = request_service.list_requests(
            g.current_user,
            store_id=query_int("store_id"),
            status=None if status == "all" else status,
        )
        return jsonify({"requests": [r.to_dict() for r in reqs]}), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("list shoe requests")


@requests_bp.route("/<int:request_id>/process", methods=["POST"])
@require_auth
@require_permission("PROCESS_REQUESTS")
def process_request(request_id: int):
    try:
        req = request_service.process_request(request_id, g.current_user)
        return jsonify(req.to_dict()), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("process shoe request")
