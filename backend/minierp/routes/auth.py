# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/minierp/routes/auth.py
"""
Authentication API routes

- POST /register: self-registration, returns a bearer token
- POST /login: email + password, returns a bearer token
- GET /me: the account behind the presented token
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services.auth_service import AuthenticationError, AccountDisabledError
from ..validation import ValidationError, ConflictError
from ..decorators import require_auth
from .errors import error_response


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/register")
def register_route():
    """
    Create an account and return a token for it.

    Body: {name, email, password, role?, department?}
    """
    data = request.get_json(silent=True) or {}

    try:
        user, token = auth_service.register(
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
            department=data.get("department"),
        )
    except ValidationError as e:
        return error_response(str(e), 400)
    except ConflictError as e:
        return error_response(str(e), 409)
    except Exception:
        current_app.logger.exception("Failed to register user")
        return error_response("Registration failed. Please try again.", 500)

    return jsonify({
        "success": True,
        "message": "User registered successfully",
        "token": token,
        "user": user.to_dict(),
    }), 201


@auth_bp.post("/login")
def login_route():
    """
    Authenticate user and issue a token.

    Token must be included in Authorization header for protected routes.
    """
    data = request.get_json(silent=True) or {}

    try:
        user, token = auth_service.login(data.get("email"), data.get("password"))
    except ValidationError as e:
        return error_response(str(e), 400)
    except AuthenticationError as e:
        return error_response(str(e), 401)
    except AccountDisabledError as e:
        return error_response(str(e), 403)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return error_response("Login failed. Please try again.", 500)

    return jsonify({
        "success": True,
        "token": token,
        "user": user.to_dict(),
    }), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Return the current user; 401 if the account no longer exists."""
    user = auth_service.get_user(g.identity.user_id)
    if not user:
        return error_response("Unauthorized. Please login.", 401)
    return jsonify({"success": True, "user": user.to_dict()})
