"""
Cash Handover Service - end-of-shift cash reconciliation

The drawer is counted by denomination. actual = sum(face value x count),
expected = cash taken by the cashier on the shift day minus the cash they
refunded (unless the client supplies an expected amount), and
difference = actual - expected. A submitted handover is final.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..models import CashHandover, Tenant, User
from ..storage import HandoverSubmittedError, Storage
from ..validation import NotFoundError, ValidationError, require_int
from retailpos.time_utils import day_bounds, parse_iso_date, utcnow
from .user_service import require_active_user

HANDOVER_FIELDS = {
    "denominations", "expected_cents", "supervisor_id", "notes", "is_submitted", "shift_date",
}


class HandoverError(Exception):
    """Raised for cash handover errors."""
    pass


class HandoverAccessError(HandoverError):
    """The caller may not modify this handover."""
    pass


def count_cash(denominations, allowed: list[int]) -> tuple[dict[str, int], int]:
    """
    Normalize a {face value: count} map and total it.

    Keys may be ints or numeric strings; faces must be in `allowed`, counts
    must be non-negative integers. Returns (normalized map, total in cents).
    """
    if not isinstance(denominations, dict):
        raise HandoverError("denominations must be an object of face value -> count")

    normalized: dict[str, int] = {}
    total_cents = 0
    for raw_face, raw_count in denominations.items():
        try:
            face = int(str(raw_face).strip())
        except ValueError:
            raise HandoverError(f"Unknown denomination: {raw_face}")
        if face not in allowed:
            raise HandoverError(f"Unknown denomination: {raw_face}")
        count = require_int(raw_count, f"denominations[{face}]", minimum=0)
        normalized[str(face)] = normalized.get(str(face), 0) + count
        total_cents += face * 100 * count
    return normalized, total_cents


def expected_cash_cents(storage: Storage, tenant_id: int, cashier_id: int, shift_day) -> int:
    start, end = day_bounds(shift_day)
    sales, refunds = storage.cash_movements(tenant_id, cashier_id, start, end)
    return sales - refunds


def _parse_shift_day(value):
    if value is None:
        return utcnow().date()
    if not isinstance(value, str):
        raise HandoverError("shift_date must be an ISO-8601 date")
    try:
        day = parse_iso_date(value)
    except ValueError:
        raise HandoverError("shift_date must be an ISO-8601 date")
    if day is None:
        raise HandoverError("shift_date must be an ISO-8601 date")
    return day


def _apply_fields(storage: Storage, tenant_id: int, cashier_id: int, payload: dict, current: CashHandover | None) -> dict:
    unknown = sorted(set(payload) - HANDOVER_FIELDS)
    if unknown:
        raise HandoverError(f"Field not allowed: {unknown[0]}")

    fields: dict = {}

    if "shift_date" in payload or current is None:
        shift_day = _parse_shift_day(payload.get("shift_date"))
        fields["shift_date"] = datetime.combine(shift_day, datetime.min.time())
    else:
        shift_day = current.shift_date.date()

    if "denominations" in payload or current is None:
        denominations, actual = count_cash(
            payload.get("denominations", {}),
            current_app.config["HANDOVER_DENOMINATIONS"],
        )
        fields["denominations"] = denominations
    else:
        actual = current.actual_cents

    if payload.get("expected_cents") is not None:
        expected = require_int(payload["expected_cents"], "expected_cents", minimum=0)
    elif current is None or "shift_date" in payload:
        expected = expected_cash_cents(storage, tenant_id, cashier_id, shift_day)
    else:
        expected = current.expected_cents

    fields["actual_cents"] = actual
    fields["expected_cents"] = expected
    fields["difference_cents"] = actual - expected

    if "supervisor_id" in payload:
        if payload["supervisor_id"] is None:
            fields["supervisor_id"] = None
        else:
            supervisor = require_active_user(
                storage, tenant_id, payload["supervisor_id"], field="supervisor_id", roles=("admin",)
            )
            fields["supervisor_id"] = supervisor.id

    if "notes" in payload:
        notes = payload["notes"]
        if notes is not None and not isinstance(notes, str):
            raise HandoverError("notes must be a string")
        fields["notes"] = notes.strip() if notes else None

    if "is_submitted" in payload:
        if not isinstance(payload["is_submitted"], bool):
            raise ValidationError("is_submitted must be a boolean")
        fields["is_submitted"] = payload["is_submitted"]
        if payload["is_submitted"]:
            fields["submitted_at"] = utcnow()

    return fields


def create_handover(storage: Storage, *, tenant: Tenant, cashier: User, payload: dict) -> CashHandover:
    """Create a handover counted by the calling user."""
    fields = _apply_fields(storage, tenant.id, cashier.id, payload or {}, current=None)
    fields["cashier_id"] = cashier.id
    fields.setdefault("is_submitted", False)
    handover = storage.create_handover(tenant.id, fields)
    if handover.is_submitted:
        current_app.logger.info(
            "Handover %s submitted: tenant=%s cashier=%s difference_cents=%s",
            handover.id, tenant.id, cashier.id, handover.difference_cents,
        )
    return handover


def update_handover(storage: Storage, *, tenant: Tenant, user: User, handover_id: int, payload: dict) -> CashHandover:
    """
    Recount or submit an open handover.

    Cashiers may only touch their own handovers; admins may touch any in
    their shop.
    """
    handover = storage.get_handover(tenant.id, handover_id)
    if handover is None:
        raise NotFoundError("Cash handover not found")

    if user.role != "admin" and handover.cashier_id != user.id:
        raise HandoverAccessError("You can only update your own handover")

    if handover.is_submitted:
        raise HandoverError("Submitted handovers cannot be modified")

    fields = _apply_fields(storage, tenant.id, handover.cashier_id, payload or {}, current=handover)
    try:
        updated = storage.update_handover(tenant.id, handover_id, fields)
    except HandoverSubmittedError as e:
        raise HandoverError(str(e))
    if updated is None:
        raise NotFoundError("Cash handover not found")
    if fields.get("is_submitted"):
        current_app.logger.info(
            "Handover %s submitted: tenant=%s cashier=%s difference_cents=%s",
            updated.id, tenant.id, updated.cashier_id, updated.difference_cents,
        )
    return updated


def list_handovers(storage: Storage, tenant_id: int) -> list[CashHandover]:
    return storage.list_handovers(tenant_id)
