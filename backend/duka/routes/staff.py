# backend/duka/routes/staff.py
"""
Staff management routes (admin).
"""
from flask import Blueprint, request, jsonify, g

from . import error_response, json_body, query_int, unexpected_error
from ..decorators import require_auth, require_permission
from ..errors import DukaError
from ..services import staff_service


staff_bp = Blueprint("staff", __name__, url_prefix="/api/staff")


@staff_bp.route("", methods=["GET"])
@require_auth
@require_permission("VIEW_USERS")
def list_staff():
    """Query params: store_id, include_inactive=true."""
    try:
        users = staff_service.list_users(
            g.current_user,
            store_id=query_int("store_id"),
            include_inactive=request.args.get("include_inactive", "").lower() == "true",
        )
        return jsonify({"users": [u.to_dict() for u in users]}), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("list staff")


@staff_bp.route("", methods=["POST"])
@require_auth
@require_permission("MANAGE_USERS")
def create_staff():
    """
    Request body:
    {
        "username": str,
        "email": str,
        "role": "staff" | "staff-admin",
        "store_id": int
    }
    """
    data = json_body()
    try:
        user = staff_service.create_user(
            g.business_id,
            data.get("username"),
            data.get("email"),
            data.get("role") or "staff",
            store_id=data.get("store_id"),
            actor=g.current_user,
        )
        return jsonify(user.to_dict()), 201
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("create staff user")


@staff_bp.route("/<int:user_id>/role", methods=["POST"])
@require_auth
@require_permission("MANAGE_USERS")
def set_role(user_id: int):
    """Request body: {"role": "staff" | "staff-admin"}"""
    try:
        user = staff_service.set_role(user_id, json_body().get("role"), g.current_user)
        return jsonify(user.to_dict()), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("change staff role")


@staff_bp.route("/<int:user_id>/deactivate", methods=["POST"])
@require_auth
@require_permission("MANAGE_USERS")
def deactivate(user_id: int):
    try:
        user = staff_service.deactivate_user(user_id, g.current_user)
        return jsonify(user.to_dict()), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("deactivate staff user")
