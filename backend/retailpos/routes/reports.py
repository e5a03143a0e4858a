# Overview: Flask API routes for reports operations; parses input and returns JSON responses.

# backend/retailpos/routes/reports.py
"""
Reporting API Routes

All dates are UTC calendar days. Ranges are inclusive of both ends.
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..storage import get_storage
from ..decorators import require_auth

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/sales")
@require_auth
def sales_report_route():
    """
    Completed sales grouped by day.

    Query params:
    - start_date: YYYY-MM-DD (optional, default 6 days before end_date)
    - end_date: YYYY-MM-DD (optional, default today)
    """
    try:
        report = reporting_service.sales_report(
            get_storage(),
            g.tenant_id,
            request.args.get("start_date"),
            request.args.get("end_date"),
        )
    except ReportError as e:
        return jsonify({"error": str(e)}), 400
    except Exception:
        current_app.logger.exception("Failed to build sales report")
        return jsonify({"error": "Internal server error"}), 500

    return jsonify(report), 200
