# Overview: Request and role decorators for API routes.

from functools import wraps
from flask import request, jsonify, g, current_app

from .services import token_service


def _is_authenticated() -> bool:
    return getattr(g, "identity", None) is not None


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.identity (token_service.Identity) for the route, which passes it
    on to services explicitly. Returns 401 if:
    - No Authorization header, or not "Bearer <token>"
    - Token malformed, tampered with, or expired
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        g.identity = None

        identity = token_service.authenticate(request)
        if identity is None:
            return jsonify({"success": False, "error": "Unauthorized. Please login."}), 401

        g.identity = identity
        return f(*args, **kwargs)

    return decorated_function


def require_roles(*roles: str):
    """
    Require the authenticated caller to hold one of roles.

    Must be stacked under @require_auth.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"success": False, "error": "Unauthorized. Please login."}), 401

            if g.identity.role not in roles:
                current_app.logger.warning(
                    "Role denied user=%s role=%s path=%s required=%s",
                    g.identity.user_id, g.identity.role, request.path, ",".join(roles),
                )
                return jsonify({
                    "success": False,
                    "error": "Forbidden. Insufficient permissions.",
                    "required_roles": list(roles),
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator
