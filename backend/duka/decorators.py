# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import current_app, request, jsonify, g

from .permissions import validate_permission_code
from .services import permission_service


def _is_authenticated() -> bool:
    return hasattr(g, "current_user") and g.current_user is not None


def require_auth(f):
    """
    Resolve the caller from the gateway header and establish tenant context.

    Sets the following Flask g attributes:
    - g.current_user: the active User for the forwarded id
    - g.business_id: the user's business (tenant context)
    - g.store_id: the user's store (None for business-level admins)

    Returns 401 if the header is missing or names no active user.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        header = current_app.config.get("AUTH_USER_HEADER", "X-User-Id")
        raw_id = request.headers.get(header)
        if not raw_id:
            return jsonify({"error": "Authentication required"}), 401

        user = permission_service.get_active_user(raw_id)
        if not user:
            current_app.logger.warning("Rejected request for unknown or inactive user id %r", raw_id)
            return jsonify({"error": "Unknown or inactive user"}), 401

        g.current_user = user
        g.business_id = user.business_id
        g.store_id = user.store_id

        return f(*args, **kwargs)

    return decorated_function


def require_permission(permission_code: str):
    """Require a permission granted by the caller's role. Use after @require_auth."""
    if not validate_permission_code(permission_code):
        raise ValueError(f"Unknown permission code: {permission_code}")

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401

            if not permission_service.has_permission(g.current_user, permission_code):
                current_app.logger.warning(
                    "Permission denied: user=%s permission=%s path=%s",
                    g.current_user.id, permission_code, request.path,
                )
                return jsonify({
                    "error": "Permission denied",
                    "details": {"required_permission": permission_code},
                }), 403

            return f(*args, **kwargs)

        return decorated_function

    return decorator
