# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

"""
Authentication API routes

Login is scoped by shop: the client sends the shop's subdomain as shop_id.
Every login failure answers with the same message.
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..services import auth_service
from ..services.auth_service import AuthError
from ..storage import get_storage
from ..decorators import require_auth, require_json_object


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.post("/login")
@require_json_object
def login_route():
    """
    Authenticate user and issue an access token.

    Request body:
    {
        "shop_id": "demo",
        "username": "cashier",
        "password": "..."
    }

    Returns:
        200: {token, user, tenant}
        400: Invalid credentials
    """
    data = request.get_json(silent=True) or {}
    shop_id = data.get("shop_id")
    username = data.get("username")
    password = data.get("password")

    if not all(isinstance(v, str) and v for v in (shop_id, username, password)):
        return jsonify({"error": "Invalid credentials"}), 400

    try:
        context = auth_service.authenticate(
            get_storage(),
            shop_id.strip().lower(),
            username.strip(),
            password,
        )
    except AuthError as e:
        current_app.logger.warning(
            "Failed login: shop=%s username=%s ip=%s", shop_id, username, request.remote_addr
        )
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Login failed")
        return jsonify({"error": "Internal server error"}), 500

    token = auth_service.issue_token(context.user)
    return jsonify({
        "token": token,
        "user": context.user.to_dict(),
        "tenant": context.tenant.to_dict(),
    }), 200


@auth_bp.get("/me")
@require_auth
def me_route():
    """Current user and shop for the bearer token."""
    return jsonify({
        "user": g.current_user.to_dict(),
        "tenant": g.tenant.to_dict(),
    }), 200
