# Overview: Flask API routes for transactions (sales); parses input and returns JSON responses.

"""
Transaction API Routes

Checkout records a completed sale in one atomic step: prices come from the
stored products, stock is checked and decremented together with the
transaction insert. Clients may send an Idempotency-Key header (or an
idempotency_key body field) to make retries safe.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import checkout_service
from ..services.checkout_service import CheckoutError
from ..storage import InsufficientStockError, get_storage
from ..validation import ValidationError
from ..decorators import require_auth, require_json_object, require_role

transactions_bp = Blueprint("transactions", __name__, url_prefix="/api/transactions")

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def _transaction_payload(transaction, items) -> dict:
    data = transaction.to_dict()
    data["items"] = [item.to_dict() for item in items]
    return data


@transactions_bp.post("")
@require_auth
@require_role("admin", "cashier")
@require_json_object
def create_transaction_route():
    """
    Checkout a cart.

    Request body:
    {
        "items": [{"product_id": 1, "quantity": 2}],
        "payment_method": "cash" | "card" | "mobile_money",
        "discount_cents": 0,          (optional)
        "customer_name": "...",       (optional)
        "attendant_id": 3,            (optional)
        "notes": "..."                (optional)
    }

    Returns:
        201: {transaction, items, replayed: false}
        200: same body for a replayed idempotency key (replayed: true)
        400: Invalid cart
        409: Insufficient stock
    """
    payload = request.get_json(silent=True) or {}
    idempotency_key = request.headers.get("Idempotency-Key")

    try:
        result = checkout_service.checkout(
            get_storage(),
            tenant=g.tenant,
            cashier=g.current_user,
            payload=payload,
            idempotency_key=idempotency_key,
        )
    except (CheckoutError, ValidationError) as e:
        body = {"error": str(e)}
        body.update(getattr(e, "details", {}))
        return jsonify(body), 400
    except InsufficientStockError as e:
        return jsonify({"error": str(e), "details": e.details}), 409
    except Exception:
        current_app.logger.exception("Checkout failed")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "transaction": result.transaction.to_dict(),
        "items": [item.to_dict() for item in result.items],
        "replayed": not result.created,
    }), 201 if result.created else 200


@transactions_bp.get("")
@require_auth
def list_transactions_route():
    """
    List recent transactions, newest first.

    Query params:
    - limit: int (default 50, max 200)
    """
    limit = request.args.get("limit", DEFAULT_LIMIT, type=int)
    if limit is None or limit < 1:
        return jsonify({"error": "limit must be a positive integer"}), 400
    limit = min(limit, MAX_LIMIT)

    try:
        transactions = get_storage().list_transactions(g.tenant_id, limit=limit)
    except Exception:
        current_app.logger.exception("Failed to list transactions")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "items": [t.to_dict() for t in transactions],
        "count": len(transactions),
    }), 200


@transactions_bp.get("/<int:transaction_id>")
@require_auth
def get_transaction_route(transaction_id: int):
    """Single transaction with its line items."""
    storage = get_storage()
    try:
        transaction = storage.get_transaction(g.tenant_id, transaction_id)
        if transaction is None:
            return jsonify({"error": "Transaction not found"}), 404
        items = storage.list_transaction_items(g.tenant_id, transaction.id)
    except Exception:
        current_app.logger.exception("Failed to load transaction")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(_transaction_payload(transaction, items)), 200
