"""
Return Service - full and partial returns against completed transactions

A return without items reverses everything still unreturned on the
transaction and refunds the outstanding balance. A return with items
refunds each unit at its sale price plus its share of the transaction's tax,
minus its share of any discount. The last return to cover a transaction
refunds exactly what is left, so the refunds of a transaction always add up
to its total.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app

from ..models import PAYMENT_METHODS, RETURN_REASONS, Return, ReturnItem, Tenant, User
from ..storage import LineInput, Storage
from ..storage.base import remaining_quantities
from ..validation import NotFoundError, require_int
from .checkout_service import ratio_cents


class ReturnError(Exception):
    """Raised for return operation errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class ReturnResult:
    return_doc: Return
    items: list[ReturnItem]


def _parse_items(raw_items) -> dict[int, int]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ReturnError("items must be a non-empty list when provided")
    requested: dict[int, int] = {}
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ReturnError(f"items[{index}] must be an object")
        product_id = require_int(raw.get("product_id"), f"items[{index}].product_id", minimum=1)
        quantity = require_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1)
        requested[product_id] = requested.get(product_id, 0) + quantity
    return requested


def process_return(storage: Storage, *, tenant: Tenant, user: User, payload: dict) -> ReturnResult:
    """
    Record a return and restock the returned units.

    Raises:
        NotFoundError: transaction not in this tenant
        ReturnError: invalid payload or transaction not returnable
        ReturnQuantityError: a line exceeds what is left to return
    """
    payload = payload or {}

    transaction_id = require_int(payload.get("transaction_id"), "transaction_id", minimum=1)

    reason = payload.get("reason")
    if reason not in RETURN_REASONS:
        raise ReturnError(f"reason must be one of: {', '.join(RETURN_REASONS)}")

    transaction = storage.get_transaction(tenant.id, transaction_id)
    if transaction is None:
        raise NotFoundError("Transaction not found")

    if transaction.status != "completed":
        raise ReturnError(f"Cannot return a transaction with status {transaction.status}")

    refund_method = payload.get("refund_method") or transaction.payment_method
    if refund_method not in PAYMENT_METHODS:
        raise ReturnError(f"refund_method must be one of: {', '.join(PAYMENT_METHODS)}")

    notes = payload.get("notes")
    if notes is not None and not isinstance(notes, str):
        raise ReturnError("notes must be a string")

    sold = storage.list_transaction_items(tenant.id, transaction.id)
    unit_prices = {item.product_id: item.unit_price_cents for item in sold}
    summary = storage.returned_summary(tenant.id, transaction.id)
    remaining = remaining_quantities(sold, summary.quantities)

    if payload.get("items") is None:
        requested = {pid: qty for pid, qty in remaining.items() if qty > 0}
        if not requested:
            raise ReturnError("Transaction has already been fully returned")
    else:
        requested = _parse_items(payload["items"])
        not_sold = sorted(pid for pid in requested if pid not in unit_prices)
        if not_sold:
            raise ReturnError("Product was not sold on this transaction", details={"product_ids": not_sold})

    lines = [
        LineInput(
            product_id=pid,
            quantity=qty,
            unit_price_cents=unit_prices[pid],
            total_cents=unit_prices[pid] * qty,
        )
        for pid, qty in sorted(requested.items())
    ]

    closes_transaction = all(
        remaining.get(pid, 0) - requested.get(pid, 0) <= 0 for pid in remaining
    )
    if closes_transaction:
        refund_cents = transaction.total_cents - summary.refund_cents
    else:
        base = sum(line.total_cents for line in lines)
        refund_cents = (
            base
            + ratio_cents(base, transaction.tax_cents, transaction.subtotal_cents)
            - ratio_cents(base, transaction.discount_cents, transaction.subtotal_cents)
        )
    refund_cents = max(refund_cents, 0)

    return_doc = storage.create_return(
        tenant.id,
        {
            "transaction_id": transaction.id,
            "processed_by_id": user.id,
            "reason": reason,
            "refund_cents": refund_cents,
            "refund_method": refund_method,
            "notes": notes.strip() if notes else None,
        },
        lines,
    )

    current_app.logger.info(
        "Return %s processed: tenant=%s transaction=%s refund_cents=%s",
        return_doc.id, tenant.id, transaction.receipt_number, refund_cents,
    )
    return ReturnResult(return_doc=return_doc, items=storage.list_return_items(tenant.id, return_doc.id))


def list_returns(storage: Storage, tenant_id: int) -> list[Return]:
    return storage.list_returns(tenant_id)
