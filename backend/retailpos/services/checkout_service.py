"""
Checkout Service - cart to completed transaction

Prices, tax and totals are computed here from stored product prices;
amounts sent by the client are ignored. The write itself (transaction,
items, stock decrement, completion) is a single atomic storage call, so a
failure never leaves a pending transaction or a half-applied stock change.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from flask import current_app

from ..models import PAYMENT_METHODS, Tenant, Transaction, TransactionItem, User
from ..storage import LineInput, Storage
from ..validation import MAX_PRICE_CENTS, require_int
from .user_service import require_active_user

MAX_LINES = 200
MAX_IDEMPOTENCY_KEY_LENGTH = 128


class CheckoutError(Exception):
    """Raised for checkout input and business-rule errors."""
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class CheckoutResult:
    transaction: Transaction
    items: list[TransactionItem]
    created: bool


@dataclass(frozen=True)
class Totals:
    subtotal_cents: int
    tax_cents: int
    discount_cents: int
    total_cents: int


def ratio_cents(amount_cents: int, numerator: int, denominator: int) -> int:
    """amount * numerator / denominator, rounded half-up (non-negative inputs)."""
    if denominator <= 0:
        return 0
    return (2 * amount_cents * numerator + denominator) // (2 * denominator)


def compute_totals(lines: list[LineInput], tax_rate_bps: int, discount_cents: int = 0) -> Totals:
    """
    subtotal = sum of line totals; tax = subtotal * rate (half-up);
    total = subtotal + tax - discount.
    """
    subtotal = sum(line.total_cents for line in lines)
    tax = ratio_cents(subtotal, tax_rate_bps, 10_000)
    if discount_cents > subtotal + tax:
        raise CheckoutError("discount_cents cannot exceed the transaction total")
    return Totals(
        subtotal_cents=subtotal,
        tax_cents=tax,
        discount_cents=discount_cents,
        total_cents=subtotal + tax - discount_cents,
    )


def next_receipt_number() -> str:
    """RCP-<epoch milliseconds>; storage appends -N on a same-millisecond clash."""
    return f"RCP-{int(time.time() * 1000)}"


def _parse_cart(raw_items) -> dict[int, int]:
    """Validate cart lines and merge duplicates into {product_id: quantity}."""
    if not isinstance(raw_items, list) or not raw_items:
        raise CheckoutError("items must be a non-empty list")
    if len(raw_items) > MAX_LINES:
        raise CheckoutError(f"A transaction cannot have more than {MAX_LINES} lines")

    cart: dict[int, int] = {}
    for index, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise CheckoutError(f"items[{index}] must be an object")
        product_id = require_int(raw.get("product_id"), f"items[{index}].product_id", minimum=1)
        quantity = require_int(raw.get("quantity"), f"items[{index}].quantity", minimum=1)
        cart[product_id] = cart.get(product_id, 0) + quantity
    return cart


def _optional_text(payload: dict, field: str, max_length: int | None = None) -> str | None:
    value = payload.get(field)
    if value is None:
        return None
    if not isinstance(value, str):
        raise CheckoutError(f"{field} must be a string")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise CheckoutError(f"{field} exceeds max length {max_length}")
    return value or None


def _load_result(storage: Storage, tenant_id: int, transaction: Transaction, created: bool) -> CheckoutResult:
    items = storage.list_transaction_items(tenant_id, transaction.id)
    return CheckoutResult(transaction=transaction, items=items, created=created)


def checkout(
    storage: Storage,
    *,
    tenant: Tenant,
    cashier: User,
    payload: dict,
    idempotency_key: str | None = None,
) -> CheckoutResult:
    """
    Validate a cart, price it and record it as a completed transaction.

    Replaying an idempotency key returns the original transaction untouched
    (created=False).

    Raises:
        CheckoutError: invalid payload, unknown/inactive product, bad attendant
        ValidationError: malformed integers in the payload
        InsufficientStockError: a line exceeds the product's stock
    """
    payload = payload or {}

    key = idempotency_key or payload.get("idempotency_key")
    if key is not None:
        if not isinstance(key, str) or not key.strip():
            raise CheckoutError("idempotency_key must be a non-empty string")
        key = key.strip()
        if len(key) > MAX_IDEMPOTENCY_KEY_LENGTH:
            raise CheckoutError(f"idempotency_key exceeds max length {MAX_IDEMPOTENCY_KEY_LENGTH}")
        existing = storage.get_transaction_by_idempotency_key(tenant.id, key)
        if existing is not None:
            return _load_result(storage, tenant.id, existing, created=False)

    cart = _parse_cart(payload.get("items"))

    payment_method = payload.get("payment_method")
    if payment_method not in PAYMENT_METHODS:
        raise CheckoutError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")

    discount_cents = 0
    if payload.get("discount_cents") is not None:
        discount_cents = require_int(payload["discount_cents"], "discount_cents", minimum=0)

    attendant_id = None
    if payload.get("attendant_id") is not None:
        attendant = require_active_user(storage, tenant.id, payload["attendant_id"], field="attendant_id")
        attendant_id = attendant.id

    unavailable = []
    lines: list[LineInput] = []
    for product_id, quantity in cart.items():
        product = storage.get_product(tenant.id, product_id)
        if product is None or not product.is_active:
            unavailable.append(product_id)
            continue
        line_total = product.price_cents * quantity
        if line_total > MAX_PRICE_CENTS:
            raise CheckoutError("Line total too large", details={"product_id": product_id})
        lines.append(LineInput(
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=product.price_cents,
            total_cents=line_total,
        ))
    if unavailable:
        raise CheckoutError("Product not found or inactive", details={"product_ids": unavailable})

    totals = compute_totals(lines, tenant.tax_rate_bps, discount_cents)

    transaction, created = storage.create_transaction(
        tenant.id,
        {
            "cashier_id": cashier.id,
            "attendant_id": attendant_id,
            "customer_name": _optional_text(payload, "customer_name", 255),
            "subtotal_cents": totals.subtotal_cents,
            "tax_cents": totals.tax_cents,
            "discount_cents": totals.discount_cents,
            "total_cents": totals.total_cents,
            "payment_method": payment_method,
            "receipt_number": next_receipt_number(),
            "notes": _optional_text(payload, "notes"),
        },
        lines,
        idempotency_key=key,
    )

    if created:
        current_app.logger.info(
            "Transaction %s completed: tenant=%s cashier=%s total_cents=%s",
            transaction.receipt_number, tenant.id, cashier.id, transaction.total_cents,
        )
    return _load_result(storage, tenant.id, transaction, created=created)
