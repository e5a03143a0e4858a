# Overview: Service-layer operations for reporting; dashboard KPIs and sales by day.

from __future__ import annotations

from datetime import date, timedelta

from ..storage import Storage
from retailpos.time_utils import day_bounds, parse_iso_date, utcnow

DEFAULT_REPORT_DAYS = 7
MAX_REPORT_DAYS = 366


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def dashboard_kpis(storage: Storage, tenant_id: int, today: date | None = None) -> dict:
    """
    Today's figures for the dashboard, computed per request (UTC day).

    - today_sales_cents: total of completed transactions created today
    - today_transactions: all transactions created today
    - low_stock_items: active products with stock <= min_stock
    - active_staff: active users
    """
    start, end = day_bounds(today or utcnow().date())
    kpis = storage.dashboard_kpis(tenant_id, start, end)
    kpis["date"] = start.date().isoformat()
    return kpis


def _parse_day(value: str | None, field: str) -> date | None:
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ReportError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")


def sales_report(storage: Storage, tenant_id: int, start_date: str | None, end_date: str | None) -> dict:
    """
    Completed sales grouped by UTC day over an inclusive date range.

    Missing bounds default to the last DEFAULT_REPORT_DAYS days ending today.
    """
    end_day = _parse_day(end_date, "end_date") or utcnow().date()
    start_day = _parse_day(start_date, "start_date") or end_day - timedelta(days=DEFAULT_REPORT_DAYS - 1)

    if start_day > end_day:
        raise ReportError("start_date must be on or before end_date")
    if (end_day - start_day).days + 1 > MAX_REPORT_DAYS:
        raise ReportError(f"Report range cannot exceed {MAX_REPORT_DAYS} days")

    start, _ = day_bounds(start_day)
    _, end = day_bounds(end_day)
    rows = storage.sales_by_day(tenant_id, start, end)

    return {
        "start_date": start_day.isoformat(),
        "end_date": end_day.isoformat(),
        "rows": [
            {"date": row.date, "total_cents": row.total_cents, "count": row.count}
            for row in rows
        ],
        "total_cents": sum(row.total_cents for row in rows),
        "count": sum(row.count for row in rows),
    }
