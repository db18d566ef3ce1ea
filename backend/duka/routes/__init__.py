from flask import current_app, jsonify, request

from ..errors import DukaError
from ..extensions import db
from ..validation import require_int


def error_response(exc: DukaError):
    """JSON body and status for a service-layer failure."""
    db.session.rollback()
    return jsonify({"error": str(exc), "details": exc.details}), exc.http_status


def unexpected_error(action: str):
    db.session.rollback()
    current_app.logger.exception("Unexpected error while trying to %s", action)
    return jsonify({"error": "Internal server error"}), 500


def query_int(name: str, default: int | None = None) -> int | None:
    """Integer query parameter. Absent or blank gives default; anything else must parse."""
    raw = request.args.get(name)
    if raw is None or not raw.strip():
        return default
    return require_int(raw, name)


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
