# Overview: Process-local storage backend for demos and local operation.

from __future__ import annotations

import itertools
import threading
from collections import defaultdict

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
from ..validation import ConflictError
from retailpos.time_utils import utcnow
from .base import (
    HandoverSubmittedError,
    ReturnedSummary,
    SalesDay,
    Storage,
    check_return_lines,
    check_stock,
)


def _newest_first(rows):
    return sorted(rows, key=lambda r: (r.created_at, r.id), reverse=True)


class _Shop:
    """One tenant's rows, keyed by primary key."""

    def __init__(self):
        self.lock = threading.RLock()
        self.users: dict[int, User] = {}
        self.products: dict[int, Product] = {}
        self.transactions: dict[int, Transaction] = {}
        self.transaction_items: dict[int, TransactionItem] = {}
        self.returns: dict[int, Return] = {}
        self.return_items: dict[int, ReturnItem] = {}
        self.handovers: dict[int, CashHandover] = {}


class MemoryStorage(Storage):
    """
    Storage held in per-tenant dicts keyed by primary key.

    Rows are transient model instances (never attached to a DB session), so
    callers get the same classes and to_dict() output as from SqlStorage.

    Each tenant's rows live in their own partition, and every read or write
    of a partition runs under that tenant's lock. The tenant table, the
    partition map and id allocation are guarded by the registry lock.
    """

    name = "memory"

    def __init__(self):
        self._registry_lock = threading.RLock()
        self._ids = defaultdict(lambda: itertools.count(1))
        self._tenants: dict[int, Tenant] = {}
        self._shops: dict[int, _Shop] = {}

    def _shop(self, tenant_id: int) -> _Shop:
        with self._registry_lock:
            shop = self._shops.get(tenant_id)
            if shop is None:
                shop = self._shops[tenant_id] = _Shop()
            return shop

    def _next_id(self, table: str) -> int:
        with self._registry_lock:
            return next(self._ids[table])

    def _new(self, model, **fields):
        """Instantiate a row, filling id, column defaults and timestamps."""
        row = model(**fields)
        for col in model.__table__.columns:
            if getattr(row, col.key) is not None:
                continue
            if col.primary_key:
                setattr(row, col.key, self._next_id(model.__tablename__))
            elif col.key in ("created_at", "updated_at"):
                setattr(row, col.key, utcnow())
            elif col.default is not None and col.default.is_scalar:
                setattr(row, col.key, col.default.arg)
        return row

    @staticmethod
    def _touch(row, patch: dict) -> None:
        for k, v in patch.items():
            setattr(row, k, v)
        if hasattr(row, "updated_at"):
            row.updated_at = utcnow()

    # -- tenants ---------------------------------------------------------

    def get_tenant(self, tenant_id):
        with self._registry_lock:
            return self._tenants.get(tenant_id)

    def get_tenant_by_subdomain(self, subdomain):
        with self._registry_lock:
            for tenant in self._tenants.values():
                if tenant.subdomain == subdomain:
                    return tenant
            return None

    def create_tenant(self, fields):
        with self._registry_lock:
            if self.get_tenant_by_subdomain(fields.get("subdomain")):
                raise ConflictError("Subdomain already in use.")
            tenant = self._new(Tenant, **fields)
            self._tenants[tenant.id] = tenant
            self._shops[tenant.id] = _Shop()
            return tenant

    def list_tenants(self):
        with self._registry_lock:
            return sorted(self._tenants.values(), key=lambda t: t.id)

    # -- users -----------------------------------------------------------

    def get_user(self, tenant_id, user_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            return shop.users.get(user_id)

    def get_user_by_username(self, tenant_id, username):
        shop = self._shop(tenant_id)
        with shop.lock:
            for user in shop.users.values():
                if user.username == username:
                    return user
            return None

    def create_user(self, tenant_id, fields):
        shop = self._shop(tenant_id)
        with shop.lock:
            if self.get_user_by_username(tenant_id, fields.get("username")):
                raise ConflictError("Username already exists for this shop.")
            user = self._new(User, tenant_id=tenant_id, **fields)
            shop.users[user.id] = user
            return user

    def update_user(self, tenant_id, user_id, patch):
        shop = self._shop(tenant_id)
        with shop.lock:
            user = shop.users.get(user_id)
            if user is None:
                return None
            if "username" in patch and patch["username"] != user.username:
                if self.get_user_by_username(tenant_id, patch["username"]):
                    raise ConflictError("Username already exists for this shop.")
            self._touch(user, patch)
            return user

    def list_users(self, tenant_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            return sorted(shop.users.values(), key=lambda u: u.username)

    # -- products --------------------------------------------------------

    def list_products(self, tenant_id, include_inactive=False):
        shop = self._shop(tenant_id)
        with shop.lock:
            products = [p for p in shop.products.values() if include_inactive or p.is_active]
        return sorted(products, key=lambda p: (p.name, p.id))

    def get_product(self, tenant_id, product_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            return shop.products.get(product_id)

    def get_product_by_barcode(self, tenant_id, barcode):
        shop = self._shop(tenant_id)
        with shop.lock:
            matches = [p for p in shop.products.values() if p.is_active and p.barcode == barcode]
        return min(matches, key=lambda p: p.id) if matches else None

    @staticmethod
    def _check_product_unique(shop: _Shop, patch, current=None):
        barcode = patch.get("barcode", current.barcode if current is not None else None)
        active = patch.get("is_active", current.is_active if current is not None else True)
        for p in shop.products.values():
            if current is not None and p.id == current.id:
                continue
            if "sku" in patch and p.sku == patch["sku"]:
                raise ConflictError("SKU already exists for this shop.")
            if barcode and active and p.is_active and p.barcode == barcode:
                raise ConflictError("Barcode already assigned to another product.")

    def create_product(self, tenant_id, fields):
        shop = self._shop(tenant_id)
        with shop.lock:
            self._check_product_unique(shop, fields)
            product = self._new(Product, tenant_id=tenant_id, **fields)
            shop.products[product.id] = product
            return product

    def update_product(self, tenant_id, product_id, patch):
        shop = self._shop(tenant_id)
        with shop.lock:
            product = shop.products.get(product_id)
            if product is None:
                return None
            self._check_product_unique(shop, patch, current=product)
            self._touch(product, patch)
            product.version_id += 1
            return product

    def deactivate_product(self, tenant_id, product_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            product = shop.products.get(product_id)
            if product is None:
                return False
            if product.is_active:
                self._touch(product, {"is_active": False})
                product.version_id += 1
            return True

    # -- transactions ----------------------------------------------------

    def create_transaction(self, tenant_id, fields, items, idempotency_key=None):
        shop = self._shop(tenant_id)
        with shop.lock:
            if idempotency_key:
                existing = self.get_transaction_by_idempotency_key(tenant_id, idempotency_key)
                if existing is not None:
                    return existing, False

            products = {item.product_id: shop.products.get(item.product_id) for item in items}
            check_stock(products, items)

            taken = {t.receipt_number for t in shop.transactions.values()}
            receipt = base = fields["receipt_number"]
            suffix = 1
            while receipt in taken:
                suffix += 1
                receipt = f"{base}-{suffix}"

            # Validated above; nothing below can fail part-way.
            transaction = self._new(
                Transaction,
                tenant_id=tenant_id,
                idempotency_key=idempotency_key,
                **{**fields, "receipt_number": receipt, "status": "pending"},
            )
            shop.transactions[transaction.id] = transaction

            for item in items:
                row = self._new(
                    TransactionItem,
                    transaction_id=transaction.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    total_cents=item.total_cents,
                )
                shop.transaction_items[row.id] = row
                product = products[item.product_id]
                self._touch(product, {"stock": product.stock - item.quantity})
                product.version_id += 1

            transaction.status = "completed"
            return transaction, True

    def get_transaction(self, tenant_id, transaction_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            return shop.transactions.get(transaction_id)

    def get_transaction_by_idempotency_key(self, tenant_id, key):
        shop = self._shop(tenant_id)
        with shop.lock:
            for transaction in shop.transactions.values():
                if transaction.idempotency_key == key:
                    return transaction
            return None

    def list_transactions(self, tenant_id, limit=50):
        shop = self._shop(tenant_id)
        with shop.lock:
            rows = list(shop.transactions.values())
        return _newest_first(rows)[:limit]

    def list_transaction_items(self, tenant_id, transaction_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            items = [i for i in shop.transaction_items.values() if i.transaction_id == transaction_id]
        return sorted(items, key=lambda i: i.id)

    # -- returns ---------------------------------------------------------

    def create_return(self, tenant_id, fields, items):
        shop = self._shop(tenant_id)
        with shop.lock:
            transaction = shop.transactions.get(fields["transaction_id"])
            if transaction is None or transaction.status != "completed":
                raise ConflictError("Only completed transactions can be returned")

            sold = self.list_transaction_items(tenant_id, transaction.id)
            summary = self.returned_summary(tenant_id, transaction.id)
            fully_returned = check_return_lines(sold, summary.quantities, items)

            return_doc = self._new(Return, tenant_id=tenant_id, **fields)
            shop.returns[return_doc.id] = return_doc

            for item in items:
                row = self._new(
                    ReturnItem,
                    return_id=return_doc.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    total_cents=item.total_cents,
                )
                shop.return_items[row.id] = row
                product = shop.products.get(item.product_id)
                if product is not None:
                    self._touch(product, {"stock": product.stock + item.quantity})
                    product.version_id += 1

            if fully_returned:
                self._touch(transaction, {"status": "refunded"})
            return return_doc

    def list_returns(self, tenant_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            rows = list(shop.returns.values())
        return _newest_first(rows)

    def list_return_items(self, tenant_id, return_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            items = [i for i in shop.return_items.values() if i.return_id == return_id]
        return sorted(items, key=lambda i: i.id)

    def returned_summary(self, tenant_id, transaction_id):
        shop = self._shop(tenant_id)
        summary = ReturnedSummary()
        with shop.lock:
            return_ids = set()
            for return_doc in shop.returns.values():
                if return_doc.transaction_id == transaction_id:
                    return_ids.add(return_doc.id)
                    summary.refund_cents += return_doc.refund_cents
            for item in shop.return_items.values():
                if item.return_id in return_ids:
                    summary.quantities[item.product_id] = (
                        summary.quantities.get(item.product_id, 0) + item.quantity
                    )
        return summary

    # -- cash handovers --------------------------------------------------

    def create_handover(self, tenant_id, fields):
        shop = self._shop(tenant_id)
        with shop.lock:
            handover = self._new(CashHandover, tenant_id=tenant_id, **fields)
            shop.handovers[handover.id] = handover
            return handover

    def get_handover(self, tenant_id, handover_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            return shop.handovers.get(handover_id)

    def update_handover(self, tenant_id, handover_id, patch):
        shop = self._shop(tenant_id)
        with shop.lock:
            handover = shop.handovers.get(handover_id)
            if handover is None:
                return None
            if handover.is_submitted:
                raise HandoverSubmittedError("Submitted handovers cannot be modified")
            self._touch(handover, patch)
            return handover

    def list_handovers(self, tenant_id):
        shop = self._shop(tenant_id)
        with shop.lock:
            rows = list(shop.handovers.values())
        return _newest_first(rows)

    # -- aggregates ------------------------------------------------------

    def dashboard_kpis(self, tenant_id, start, end):
        shop = self._shop(tenant_id)
        with shop.lock:
            todays = [t for t in shop.transactions.values() if start <= t.created_at < end]
            return {
                "today_sales_cents": sum(t.total_cents for t in todays if t.status == "completed"),
                "today_transactions": len(todays),
                "low_stock_items": sum(
                    1 for p in shop.products.values() if p.is_active and p.is_low_stock
                ),
                "active_staff": sum(1 for u in shop.users.values() if u.is_active),
            }

    def sales_by_day(self, tenant_id, start, end):
        shop = self._shop(tenant_id)
        days: dict[str, list[int]] = {}
        with shop.lock:
            for t in shop.transactions.values():
                if t.status != "completed" or not (start <= t.created_at < end):
                    continue
                bucket = days.setdefault(t.created_at.date().isoformat(), [0, 0])
                bucket[0] += t.total_cents
                bucket[1] += 1
        return [SalesDay(date=d, total_cents=v[0], count=v[1]) for d, v in sorted(days.items())]

    def cash_movements(self, tenant_id, cashier_id, start, end):
        shop = self._shop(tenant_id)
        with shop.lock:
            sales = sum(
                t.total_cents for t in shop.transactions.values()
                if t.cashier_id == cashier_id
                and t.payment_method == "cash"
                and t.status in ("completed", "refunded")
                and start <= t.created_at < end
            )
            refunds = sum(
                r.refund_cents for r in shop.returns.values()
                if r.processed_by_id == cashier_id
                and r.refund_method == "cash"
                and start <= r.created_at < end
            )
        return sales, refunds
