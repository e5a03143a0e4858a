"""
Storage facade shared by the database and in-memory backends.

Every method that touches tenant data takes the caller's tenant_id first and
resolves referenced rows through it: a row owned by another tenant behaves
exactly like a missing row. Both backends return the same model classes.

Multi-row writes (checkout, returns) are atomic: either every row is
written and every stock count adjusted, or nothing changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from ..models import (
    CashHandover,
    Product,
    Return,
    ReturnItem,
    Tenant,
    Transaction,
    TransactionItem,
    User,
)


class InsufficientStockError(Exception):
    """Raised when a checkout asks for more units than are on hand."""
    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(message)
        self.details = details or []


class ReturnQuantityError(Exception):
    """Raised when a return exceeds what is left to return on a transaction."""
    def __init__(self, message: str, details: list[dict] | None = None):
        super().__init__(message)
        self.details = details or []


class HandoverSubmittedError(Exception):
    """Raised when writing to a handover that has already been submitted."""
    pass


@dataclass(frozen=True)
class LineInput:
    """A priced line handed to the storage layer (sale or return)."""
    product_id: int
    quantity: int
    unit_price_cents: int
    total_cents: int


@dataclass
class ReturnedSummary:
    """Quantities already returned per product and the refunded total."""
    quantities: dict[int, int] = field(default_factory=dict)
    refund_cents: int = 0


@dataclass(frozen=True)
class SalesDay:
    date: str
    total_cents: int
    count: int


def remaining_quantities(
    sold: list[TransactionItem], returned: dict[int, int]
) -> dict[int, int]:
    """Units per product still eligible for return."""
    remaining: dict[int, int] = {}
    for item in sold:
        remaining[item.product_id] = remaining.get(item.product_id, 0) + item.quantity
    for product_id, qty in returned.items():
        remaining[product_id] = remaining.get(product_id, 0) - qty
    return remaining


def check_return_lines(
    sold: list[TransactionItem], returned: dict[int, int], items: list[LineInput]
) -> bool:
    """
    Validate return lines against what is left to return.

    Returns True when, after these lines, nothing is left to return.
    Raises ReturnQuantityError otherwise invalid.
    """
    remaining = remaining_quantities(sold, returned)
    requested: dict[int, int] = {}
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    problems = []
    for product_id, qty in requested.items():
        available = remaining.get(product_id, 0)
        if qty > available:
            problems.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "returnable_quantity": max(available, 0),
            })
    if problems:
        raise ReturnQuantityError("Return quantity exceeds quantity sold", details=problems)

    return all(remaining.get(pid, 0) - requested.get(pid, 0) <= 0 for pid in remaining)


def check_stock(products: dict[int, Product | None], items: list[LineInput]) -> None:
    """Raise InsufficientStockError unless every line can be fulfilled."""
    requested: dict[int, int] = {}
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    insufficient = []
    for product_id, qty in requested.items():
        product = products.get(product_id)
        on_hand = product.stock if product is not None and product.is_active else 0
        if on_hand < qty:
            insufficient.append({
                "product_id": product_id,
                "requested_quantity": qty,
                "on_hand": on_hand,
            })

    if insufficient:
        raise InsufficientStockError(
            "Insufficient stock to complete transaction",
            details=insufficient,
        )


class Storage(ABC):
    """Data-access facade; see SqlStorage and MemoryStorage."""

    name: str = "abstract"

    # -- tenants ---------------------------------------------------------

    @abstractmethod
    def get_tenant(self, tenant_id: int) -> Tenant | None: ...

    @abstractmethod
    def get_tenant_by_subdomain(self, subdomain: str) -> Tenant | None: ...

    @abstractmethod
    def create_tenant(self, fields: dict) -> Tenant:
        """Raises ConflictError if the subdomain is taken."""

    @abstractmethod
    def list_tenants(self) -> list[Tenant]: ...

    # -- users -----------------------------------------------------------

    @abstractmethod
    def get_user(self, tenant_id: int, user_id: int) -> User | None: ...

    @abstractmethod
    def get_user_by_username(self, tenant_id: int, username: str) -> User | None: ...

    @abstractmethod
    def create_user(self, tenant_id: int, fields: dict) -> User:
        """Raises ConflictError if the username exists in the tenant."""

    @abstractmethod
    def update_user(self, tenant_id: int, user_id: int, patch: dict) -> User | None: ...

    @abstractmethod
    def list_users(self, tenant_id: int) -> list[User]: ...

    # -- products --------------------------------------------------------

    @abstractmethod
    def list_products(self, tenant_id: int, include_inactive: bool = False) -> list[Product]: ...

    @abstractmethod
    def get_product(self, tenant_id: int, product_id: int) -> Product | None: ...

    @abstractmethod
    def get_product_by_barcode(self, tenant_id: int, barcode: str) -> Product | None:
        """Active products only."""

    @abstractmethod
    def create_product(self, tenant_id: int, fields: dict) -> Product:
        """Raises ConflictError on a duplicate SKU or active barcode."""

    @abstractmethod
    def update_product(self, tenant_id: int, product_id: int, patch: dict) -> Product | None: ...

    @abstractmethod
    def deactivate_product(self, tenant_id: int, product_id: int) -> bool:
        """Soft delete. False if the product does not exist in the tenant."""

    # -- transactions ----------------------------------------------------

    @abstractmethod
    def create_transaction(
        self,
        tenant_id: int,
        fields: dict,
        items: list[LineInput],
        idempotency_key: str | None = None,
    ) -> tuple[Transaction, bool]:
        """
        Atomically record a sale and decrement stock.

        Returns (transaction, created). When idempotency_key matches an
        earlier transaction of the tenant, that one is returned with
        created=False and nothing is written.

        Raises InsufficientStockError before any write if a line cannot be
        fulfilled.
        """

    @abstractmethod
    def get_transaction(self, tenant_id: int, transaction_id: int) -> Transaction | None: ...

    @abstractmethod
    def get_transaction_by_idempotency_key(self, tenant_id: int, key: str) -> Transaction | None: ...

    @abstractmethod
    def list_transactions(self, tenant_id: int, limit: int = 50) -> list[Transaction]:
        """Newest first."""

    @abstractmethod
    def list_transaction_items(self, tenant_id: int, transaction_id: int) -> list[TransactionItem]: ...

    # -- returns ---------------------------------------------------------

    @abstractmethod
    def create_return(self, tenant_id: int, fields: dict, items: list[LineInput]) -> Return:
        """
        Atomically record a return, restock products and, when nothing is
        left to return, mark the transaction refunded.

        Raises ReturnQuantityError if a line exceeds the returnable quantity.
        """

    @abstractmethod
    def list_returns(self, tenant_id: int) -> list[Return]:
        """Newest first."""

    @abstractmethod
    def list_return_items(self, tenant_id: int, return_id: int) -> list[ReturnItem]: ...

    @abstractmethod
    def returned_summary(self, tenant_id: int, transaction_id: int) -> ReturnedSummary: ...

    # -- cash handovers --------------------------------------------------

    @abstractmethod
    def create_handover(self, tenant_id: int, fields: dict) -> CashHandover: ...

    @abstractmethod
    def get_handover(self, tenant_id: int, handover_id: int) -> CashHandover | None: ...

    @abstractmethod
    def update_handover(self, tenant_id: int, handover_id: int, patch: dict) -> CashHandover | None:
        """Raises HandoverSubmittedError if the handover is already submitted."""

    @abstractmethod
    def list_handovers(self, tenant_id: int) -> list[CashHandover]:
        """Newest first."""

    # -- aggregates ------------------------------------------------------

    @abstractmethod
    def dashboard_kpis(self, tenant_id: int, start: datetime, end: datetime) -> dict:
        """
        Keys: today_sales_cents, today_transactions, low_stock_items,
        active_staff. [start, end) bounds the "today" window.
        """

    @abstractmethod
    def sales_by_day(self, tenant_id: int, start: datetime, end: datetime) -> list[SalesDay]:
        """Completed transactions in [start, end) grouped by UTC day, ascending."""

    @abstractmethod
    def cash_movements(
        self, tenant_id: int, cashier_id: int, start: datetime, end: datetime
    ) -> tuple[int, int]:
        """(cash sales total, cash refunds total) handled by a cashier in [start, end)."""
