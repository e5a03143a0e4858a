# Overview: Flask API routes for returns operations; parses input and returns JSON responses.

"""
Return Processing API Routes

A return is recorded, restocked and refunded in one step; there is no
approval workflow. Without items the whole remaining transaction is
returned.

SECURITY:
- admin and cashier roles only
- Returns are attributed to the authenticated user
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import return_service
from ..services.return_service import ReturnError
from ..storage import ReturnQuantityError, get_storage
from ..validation import ValidationError, ConflictError, NotFoundError
from ..decorators import require_auth, require_json_object, require_role


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("")
@require_auth
@require_role("admin", "cashier")
@require_json_object
def create_return_route():
    """
    Process a return against a completed transaction.

    Request body:
    {
        "transaction_id": 123,
        "reason": "defective_product",
        "items": [{"product_id": 1, "quantity": 1}],   (optional)
        "refund_method": "cash",                       (optional)
        "notes": "..."                                 (optional)
    }

    Returns:
        201: {return, items}
        400: Invalid input or quantity exceeds what is left to return
        404: Transaction not found
    """
    payload = request.get_json(silent=True) or {}

    try:
        result = return_service.process_return(
            get_storage(),
            tenant=g.tenant,
            user=g.current_user,
            payload=payload,
        )
    except (ReturnError, ValidationError) as e:
        body = {"error": str(e)}
        body.update(getattr(e, "details", {}))
        return jsonify(body), 400
    except ReturnQuantityError as e:
        return jsonify({"error": str(e), "details": e.details}), 400
    except NotFoundError as e:
        return jsonify({"error": str(e)}), 404
    except ConflictError as e:
        return jsonify({"error": str(e)}), 409
    except Exception:
        current_app.logger.exception("Failed to process return")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "return": result.return_doc.to_dict(),
        "items": [item.to_dict() for item in result.items],
    }), 201


@returns_bp.get("")
@require_auth
@require_role("admin", "cashier")
def list_returns_route():
    """List the shop's returns, newest first."""
    try:
        returns = return_service.list_returns(get_storage(), g.tenant_id)
    except Exception:
        current_app.logger.exception("Failed to list returns")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify({
        "items": [r.to_dict() for r in returns],
        "count": len(returns),
    }), 200
