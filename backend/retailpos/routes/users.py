# Overview: Flask API routes for shop staff accounts (admin only).

"""
User administration routes.

MULTI-TENANT: Admins only see and manage users of their own shop.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import user_service
from ..services.auth_service import PasswordValidationError
from ..storage import get_storage
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_json_object, require_role

users_bp = Blueprint("users", __name__, url_prefix="/api/users")


def _error_response(e: Exception):
    if isinstance(e, (ValidationError, PasswordValidationError)):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    current_app.logger.exception("User request failed")
    return jsonify({"error": "Internal server error"}), 500


@users_bp.get("")
@require_auth
@require_role("admin")
def list_users_route():
    try:
        users = user_service.list_users(get_storage(), g.tenant_id)
    except Exception as e:
        return _error_response(e)
    return jsonify({
        "items": [u.to_dict() for u in users],
        "count": len(users),
    }), 200


@users_bp.post("")
@require_auth
@require_role("admin")
@require_json_object
def create_user_route():
    """
    Create a staff account.

    Request body:
    {
        "username": "jane",
        "password": "...",
        "email": "...", "first_name": "...", "last_name": "...",   (optional)
        "role": "admin" | "cashier" | "sales_attendant" | "staff"  (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        user = user_service.create_user(get_storage(), g.tenant_id, payload)
    except Exception as e:
        return _error_response(e)
    current_app.logger.info(
        "User created: tenant=%s user=%s role=%s by=%s", g.tenant_id, user.id, user.role, g.current_user.id
    )
    return jsonify(user.to_dict()), 201


@users_bp.put("/<int:user_id>")
@require_auth
@require_role("admin")
@require_json_object
def update_user_route(user_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        user = user_service.update_user(get_storage(), g.tenant_id, user_id, payload, actor=g.current_user)
    except Exception as e:
        return _error_response(e)
    return jsonify(user.to_dict()), 200
