# Overview: Flask API route for dashboard KPIs.

from flask import Blueprint, jsonify, g, current_app

from ..services import reporting_service
from ..storage import get_storage
from ..decorators import require_auth

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/kpis")
@require_auth
def kpis_route():
    """Today's sales, transaction count, low stock count and active staff."""
    try:
        kpis = reporting_service.dashboard_kpis(get_storage(), g.tenant_id)
    except Exception:
        current_app.logger.exception("Failed to compute dashboard KPIs")
        return jsonify({"error": "Internal server error"}), 500
    return jsonify(kpis), 200
