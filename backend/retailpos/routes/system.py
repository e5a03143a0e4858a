# backend/retailpos/routes/system.py
"""
System health endpoint.

Reports whether the configured storage backend answers queries.
"""

import time
from flask import Blueprint, current_app
from ..storage import get_storage
from retailpos.time_utils import utcnow

system_bp = Blueprint("system", __name__, url_prefix="/api")


def check_storage_health() -> dict:
    """
    Check the storage backend with a cheap tenant listing.

    Returns dict with status and details.
    """
    start_time = time.time()
    storage = get_storage()
    try:
        tenant_count = len(storage.list_tenants())
        elapsed_ms = (time.time() - start_time) * 1000
        return {
            "status": "healthy",
            "latency_ms": round(elapsed_ms, 2),
            "details": {
                "backend": storage.name,
                "tenants": tenant_count,
            }
        }
    except Exception:
        elapsed_ms = (time.time() - start_time) * 1000
        current_app.logger.exception("Storage health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round(elapsed_ms, 2),
            "error": "Storage error"
        }


@system_bp.get("/health")
def health():
    """
    Health check endpoint.

    Returns:
    - 200: storage healthy
    - 503: storage unreachable
    """
    start_time = time.time()
    storage_health = check_storage_health()

    if storage_health["status"] == "unhealthy":
        overall_status = "unhealthy"
        http_status = 503
    else:
        overall_status = "healthy"
        http_status = 200

    total_elapsed_ms = (time.time() - start_time) * 1000

    response = {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round(total_elapsed_ms, 2),
        "checks": {
            "storage": storage_health,
        }
    }

    return response, http_status
