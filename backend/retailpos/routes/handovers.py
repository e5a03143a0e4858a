# Overview: Flask API routes for cash handovers; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..services import handover_service
from ..services.handover_service import HandoverAccessError, HandoverError
from ..storage import get_storage
from ..validation import ValidationError, NotFoundError
from ..decorators import require_auth, require_json_object, require_role

handovers_bp = Blueprint("handovers", __name__, url_prefix="/api/handovers")


def _error_response(e: Exception):
    if isinstance(e, HandoverAccessError):
        return jsonify({"error": str(e)}), 403
    if isinstance(e, (HandoverError, ValidationError)):
        return jsonify({"error": str(e)}), 400
    if isinstance(e, NotFoundError):
        return jsonify({"error": str(e)}), 404
    current_app.logger.exception("Handover request failed")
    return jsonify({"error": "Internal server error"}), 500


@handovers_bp.get("")
@require_auth
def list_handovers_route():
    try:
        handovers = handover_service.list_handovers(get_storage(), g.tenant_id)
    except Exception as e:
        return _error_response(e)
    return jsonify({
        "items": [h.to_dict() for h in handovers],
        "count": len(handovers),
    }), 200


@handovers_bp.post("")
@require_auth
@require_role("admin", "cashier")
@require_json_object
def create_handover_route():
    """
    Record an end-of-shift cash count for the calling user.

    Request body:
    {
        "denominations": {"50": 2, "10": 3},
        "shift_date": "2024-05-01",     (optional, default today)
        "expected_cents": 13000,        (optional, default computed from cash sales)
        "supervisor_id": 1,             (optional, active admin)
        "notes": "...",                 (optional)
        "is_submitted": false           (optional)
    }
    """
    payload = request.get_json(silent=True) or {}
    try:
        handover = handover_service.create_handover(
            get_storage(), tenant=g.tenant, cashier=g.current_user, payload=payload
        )
    except Exception as e:
        return _error_response(e)
    return jsonify(handover.to_dict()), 201


@handovers_bp.put("/<int:handover_id>")
@require_auth
@require_role("admin", "cashier")
@require_json_object
def update_handover_route(handover_id: int):
    """Recount or submit an open handover. Submitted handovers are final."""
    payload = request.get_json(silent=True) or {}
    try:
        handover = handover_service.update_handover(
            get_storage(),
            tenant=g.tenant,
            user=g.current_user,
            handover_id=handover_id,
            payload=payload,
        )
    except Exception as e:
        return _error_response(e)
    return jsonify(handover.to_dict()), 200
