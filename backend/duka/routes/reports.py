# backend/duka/routes/reports.py
"""
Reporting routes (admin).
"""
from flask import Blueprint, request, jsonify, g

from . import error_response, query_int, unexpected_error
from ..decorators import require_auth, require_permission
from ..errors import DukaError
from ..services import ledger_service, reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.route("/stock-levels", methods=["GET"])
@require_auth
@require_permission("VIEW_REPORTS")
def stock_levels():
    try:
        report = reporting_service.stock_levels(g.current_user, store_id=query_int("store_id"))
        return jsonify(report), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("build stock level report")


@reports_bp.route("/sales-summary", methods=["GET"])
@require_auth
@require_permission("VIEW_REPORTS")
def sales_summary():
    """Query params: store_id, start, end."""
    try:
        report = reporting_service.sales_summary(
            g.current_user,
            store_id=query_int("store_id"),
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
        return jsonify(report), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("build sales summary")


@reports_bp.route("/activity", methods=["GET"])
@require_auth
@require_permission("VIEW_REPORTS")
def activity():
    """Audit trail. Query params: store_id, entity_type, entity_id, limit (max 500)."""
    try:
        limit = max(1, min(query_int("limit", 100), 500))
        events = ledger_service.list_activity_events(
            g.business_id,
            store_id=query_int("store_id"),
            entity_type=request.args.get("entity_type") or None,
            entity_id=query_int("entity_id"),
            limit=limit,
        )
        return jsonify({"events": [e.to_dict() for e in events]}), 200
    except DukaError as e:
        return error_response(e)
    except Exception:
        return unexpected_error("list activity events")
