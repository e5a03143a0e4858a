# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's shop.
The tenant_id is derived from g.tenant_id (set by @require_auth).

SECURITY: All routes require authentication.
- Read operations are open to every role
- Write operations require the admin role
"""
from flask import Blueprint, request, jsonify, g, current_app

from ..services import products_service
from ..storage import get_storage
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_json_object, require_role

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _error_response(e: Exception):
    if isinstance(e, ValidationError):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, ConflictError):
        return jsonify({"error": str(e)}), 409
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    current_app.logger.exception("Product request failed")
    return jsonify({"error": "Internal server error"}), 500


@products_bp.get("")
@require_auth
def list_products():
    """
    List products ordered by name.

    Query params:
    - include_inactive: "true" to include soft-deleted products (admin only)
    """
    include_inactive = request.args.get("include_inactive", "false").lower() == "true"
    if include_inactive and g.current_user.role != "admin":
        return jsonify({
            "error": "Insufficient permissions",
            "required_roles": ["admin"],
        }), 403

    try:
        result = products_service.list_products(get_storage(), g.tenant_id, include_inactive=include_inactive)
    except Exception as e:
        return _error_response(e)
    return jsonify(result), 200


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    try:
        product = products_service.get_product(get_storage(), g.tenant_id, product_id)
    except Exception as e:
        return _error_response(e)
    return jsonify(product.to_dict()), 200


@products_bp.get("/barcode/<barcode>")
@require_auth
def get_product_by_barcode_route(barcode: str):
    """Scanner lookup; only active products match."""
    try:
        product = products_service.get_product_by_barcode(get_storage(), g.tenant_id, barcode)
    except Exception as e:
        return _error_response(e)
    return jsonify(product.to_dict()), 200


@products_bp.post("")
@require_auth
@require_role("admin")
@require_json_object
def create_product_route():
    """
    Create a new product in the caller's shop.

    Required: name, sku, price_cents. SKU must be unique in the shop.
    """
    payload = request.get_json(silent=True) or {}

    try:
        created = products_service.create_product(get_storage(), g.tenant_id, payload)
    except Exception as e:
        return _error_response(e)

    return jsonify(created.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_role("admin")
@require_json_object
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        updated = products_service.update_product(get_storage(), g.tenant_id, product_id, payload)
    except Exception as e:
        return _error_response(e)

    return jsonify(updated.to_dict()), 200


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("admin")
def delete_product_route(product_id: int):
    """
    Soft-delete a product (is_active = false).

    Past transactions keep pointing at the row.
    """
    try:
        products_service.delete_product(get_storage(), g.tenant_id, product_id)
    except Exception as e:
        return _error_response(e)

    return jsonify({"ok": True}), 200
