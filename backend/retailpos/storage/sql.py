# Overview: Relational storage backend on the Flask-SQLAlchemy session.

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from ..extensions import db
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
from .base import (
    HandoverSubmittedError,
    ReturnedSummary,
    SalesDay,
    Storage,
    check_return_lines,
    check_stock,
)
from .concurrency import lock_for_update, run_with_retry


RECEIPT_ATTEMPTS = 5


def _is_receipt_clash(exc: IntegrityError) -> bool:
    # PostgreSQL names the constraint, SQLite names the columns.
    message = str(exc.orig)
    return "uq_transactions_tenant_receipt" in message or "transactions.receipt_number" in message


def _apply_patch(row, patch: dict) -> None:
    for k, v in patch.items():
        setattr(row, k, v)


class SqlStorage(Storage):
    """
    Storage on the application database.

    Multi-row writes run inside one database transaction: product rows are
    locked (SELECT ... FOR UPDATE where supported, Product.version_id
    otherwise), everything is validated, then written and committed once.
    Any exception rolls the whole unit back.
    """

    name = "sql"

    def _atomic(self, op):
        def _op():
            try:
                result = op()
                db.session.commit()
                return result
            except Exception:
                db.session.rollback()
                raise
        return run_with_retry(_op)

    def _commit_or_conflict(self, message: str) -> None:
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            raise ConflictError(message)

    # -- tenants ---------------------------------------------------------

    def get_tenant(self, tenant_id):
        return db.session.query(Tenant).filter_by(id=tenant_id).first()

    def get_tenant_by_subdomain(self, subdomain):
        return db.session.query(Tenant).filter_by(subdomain=subdomain).first()

    def create_tenant(self, fields):
        if self.get_tenant_by_subdomain(fields.get("subdomain")):
            raise ConflictError("Subdomain already in use.")
        tenant = Tenant(**fields)
        db.session.add(tenant)
        self._commit_or_conflict("Subdomain already in use.")
        return tenant

    def list_tenants(self):
        return db.session.query(Tenant).order_by(Tenant.id.asc()).all()

    # -- users -----------------------------------------------------------

    def get_user(self, tenant_id, user_id):
        return db.session.query(User).filter_by(id=user_id, tenant_id=tenant_id).first()

    def get_user_by_username(self, tenant_id, username):
        return db.session.query(User).filter_by(tenant_id=tenant_id, username=username).first()

    def create_user(self, tenant_id, fields):
        if self.get_user_by_username(tenant_id, fields.get("username")):
            raise ConflictError("Username already exists for this shop.")
        user = User(tenant_id=tenant_id, **fields)
        db.session.add(user)
        self._commit_or_conflict("Username already exists for this shop.")
        return user

    def update_user(self, tenant_id, user_id, patch):
        user = self.get_user(tenant_id, user_id)
        if not user:
            return None
        if "username" in patch and patch["username"] != user.username:
            if self.get_user_by_username(tenant_id, patch["username"]):
                raise ConflictError("Username already exists for this shop.")
        _apply_patch(user, patch)
        self._commit_or_conflict("Username already exists for this shop.")
        return user

    def list_users(self, tenant_id):
        return (
            db.session.query(User)
            .filter_by(tenant_id=tenant_id)
            .order_by(User.username.asc())
            .all()
        )

    # -- products --------------------------------------------------------

    def list_products(self, tenant_id, include_inactive=False):
        query = db.session.query(Product).filter(Product.tenant_id == tenant_id)
        if not include_inactive:
            query = query.filter(Product.is_active.is_(True))
        return query.order_by(Product.name.asc(), Product.id.asc()).all()

    def get_product(self, tenant_id, product_id):
        return db.session.query(Product).filter_by(id=product_id, tenant_id=tenant_id).first()

    def get_product_by_barcode(self, tenant_id, barcode):
        return (
            db.session.query(Product)
            .filter_by(tenant_id=tenant_id, barcode=barcode, is_active=True)
            .order_by(Product.id.asc())
            .first()
        )

    def _check_product_unique(self, tenant_id, patch, current=None):
        """SKU is unique per tenant; barcode is unique among active products."""
        exclude_id = current.id if current is not None else None
        if "sku" in patch:
            query = db.session.query(Product).filter(
                Product.tenant_id == tenant_id, Product.sku == patch["sku"]
            )
            if exclude_id is not None:
                query = query.filter(Product.id != exclude_id)
            if query.first():
                raise ConflictError("SKU already exists for this shop.")

        barcode = patch.get("barcode", current.barcode if current is not None else None)
        active = patch.get("is_active", current.is_active if current is not None else True)
        if barcode and active:
            query = db.session.query(Product).filter(
                Product.tenant_id == tenant_id,
                Product.barcode == barcode,
                Product.is_active.is_(True),
            )
            if exclude_id is not None:
                query = query.filter(Product.id != exclude_id)
            if query.first():
                raise ConflictError("Barcode already assigned to another product.")

    def create_product(self, tenant_id, fields):
        self._check_product_unique(tenant_id, fields)
        product = Product(tenant_id=tenant_id, **fields)
        db.session.add(product)
        self._commit_or_conflict("SKU already exists for this shop.")
        return product

    def update_product(self, tenant_id, product_id, patch):
        product = self.get_product(tenant_id, product_id)
        if not product:
            return None
        self._check_product_unique(tenant_id, patch, current=product)
        _apply_patch(product, patch)
        self._commit_or_conflict("SKU already exists for this shop.")
        return product

    def deactivate_product(self, tenant_id, product_id):
        product = self.get_product(tenant_id, product_id)
        if not product:
            return False
        # Soft-delete only: preserve IDs and historical references.
        if product.is_active:
            product.is_active = False
            db.session.commit()
        return True

    # -- transactions ----------------------------------------------------

    def _receipt_taken(self, tenant_id, receipt_number):
        return db.session.query(Transaction.id).filter_by(
            tenant_id=tenant_id, receipt_number=receipt_number
        ).first() is not None

    def create_transaction(self, tenant_id, fields, items, idempotency_key=None):
        def _op():
            if idempotency_key:
                existing = self.get_transaction_by_idempotency_key(tenant_id, idempotency_key)
                if existing:
                    return existing, False

            product_ids = sorted({item.product_id for item in items})
            locked = lock_for_update(
                db.session.query(Product).filter(
                    Product.tenant_id == tenant_id, Product.id.in_(product_ids)
                )
            ).all()
            products = {p.id: p for p in locked}
            check_stock(products, items)

            receipt = base = fields["receipt_number"]
            suffix = 1
            while self._receipt_taken(tenant_id, receipt):
                suffix += 1
                receipt = f"{base}-{suffix}"

            transaction = Transaction(
                tenant_id=tenant_id,
                idempotency_key=idempotency_key,
                **{**fields, "receipt_number": receipt, "status": "pending"},
            )
            db.session.add(transaction)
            db.session.flush()

            for item in items:
                db.session.add(TransactionItem(
                    transaction_id=transaction.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    total_cents=item.total_cents,
                ))
                product = products[item.product_id]
                product.stock = product.stock - item.quantity

            transaction.status = "completed"
            return transaction, True

        for attempt in range(RECEIPT_ATTEMPTS):
            try:
                return self._atomic(_op)
            except IntegrityError as exc:
                # Lost a race on the idempotency key: hand back the winner.
                if idempotency_key:
                    existing = self.get_transaction_by_idempotency_key(tenant_id, idempotency_key)
                    if existing:
                        return existing, False
                # Lost a race on the receipt number: pick the next suffix.
                if _is_receipt_clash(exc) and attempt < RECEIPT_ATTEMPTS - 1:
                    continue
                raise

    def get_transaction(self, tenant_id, transaction_id):
        return db.session.query(Transaction).filter_by(id=transaction_id, tenant_id=tenant_id).first()

    def get_transaction_by_idempotency_key(self, tenant_id, key):
        return db.session.query(Transaction).filter_by(tenant_id=tenant_id, idempotency_key=key).first()

    def list_transactions(self, tenant_id, limit=50):
        return (
            db.session.query(Transaction)
            .filter(Transaction.tenant_id == tenant_id)
            .order_by(Transaction.created_at.desc(), Transaction.id.desc())
            .limit(limit)
            .all()
        )

    def list_transaction_items(self, tenant_id, transaction_id):
        return (
            db.session.query(TransactionItem)
            .join(Transaction, Transaction.id == TransactionItem.transaction_id)
            .filter(Transaction.tenant_id == tenant_id, Transaction.id == transaction_id)
            .order_by(TransactionItem.id.asc())
            .all()
        )

    # -- returns ---------------------------------------------------------

    def create_return(self, tenant_id, fields, items):
        def _op():
            transaction = lock_for_update(
                db.session.query(Transaction).filter_by(
                    id=fields["transaction_id"], tenant_id=tenant_id
                )
            ).first()
            if not transaction or transaction.status != "completed":
                raise ConflictError("Only completed transactions can be returned")

            sold = self.list_transaction_items(tenant_id, transaction.id)
            summary = self.returned_summary(tenant_id, transaction.id)
            fully_returned = check_return_lines(sold, summary.quantities, items)

            return_doc = Return(tenant_id=tenant_id, **fields)
            db.session.add(return_doc)
            db.session.flush()

            product_ids = sorted({item.product_id for item in items})
            products = {
                p.id: p
                for p in lock_for_update(
                    db.session.query(Product).filter(
                        Product.tenant_id == tenant_id, Product.id.in_(product_ids)
                    )
                ).all()
            }
            for item in items:
                db.session.add(ReturnItem(
                    return_id=return_doc.id,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    unit_price_cents=item.unit_price_cents,
                    total_cents=item.total_cents,
                ))
                product = products.get(item.product_id)
                if product is not None:
                    product.stock = product.stock + item.quantity

            if fully_returned:
                transaction.status = "refunded"
            return return_doc

        return self._atomic(_op)

    def list_returns(self, tenant_id):
        return (
            db.session.query(Return)
            .filter(Return.tenant_id == tenant_id)
            .order_by(Return.created_at.desc(), Return.id.desc())
            .all()
        )

    def list_return_items(self, tenant_id, return_id):
        return (
            db.session.query(ReturnItem)
            .join(Return, Return.id == ReturnItem.return_id)
            .filter(Return.tenant_id == tenant_id, Return.id == return_id)
            .order_by(ReturnItem.id.asc())
            .all()
        )

    def returned_summary(self, tenant_id, transaction_id):
        rows = (
            db.session.query(ReturnItem.product_id, func.sum(ReturnItem.quantity))
            .join(Return, Return.id == ReturnItem.return_id)
            .filter(Return.tenant_id == tenant_id, Return.transaction_id == transaction_id)
            .group_by(ReturnItem.product_id)
            .all()
        )
        refunded = (
            db.session.query(func.coalesce(func.sum(Return.refund_cents), 0))
            .filter(Return.tenant_id == tenant_id, Return.transaction_id == transaction_id)
            .scalar()
        )
        return ReturnedSummary(
            quantities={product_id: int(qty or 0) for product_id, qty in rows},
            refund_cents=int(refunded or 0),
        )

    # -- cash handovers --------------------------------------------------

    def create_handover(self, tenant_id, fields):
        handover = CashHandover(tenant_id=tenant_id, **fields)
        db.session.add(handover)
        db.session.commit()
        return handover

    def get_handover(self, tenant_id, handover_id):
        return db.session.query(CashHandover).filter_by(id=handover_id, tenant_id=tenant_id).first()

    def update_handover(self, tenant_id, handover_id, patch):
        def _op():
            handover = lock_for_update(
                db.session.query(CashHandover)
                .filter_by(id=handover_id, tenant_id=tenant_id)
                .populate_existing()
            ).first()
            if not handover:
                return None
            if handover.is_submitted:
                raise HandoverSubmittedError("Submitted handovers cannot be modified")
            _apply_patch(handover, patch)
            return handover

        return self._atomic(_op)

    def list_handovers(self, tenant_id):
        return (
            db.session.query(CashHandover)
            .filter(CashHandover.tenant_id == tenant_id)
            .order_by(CashHandover.created_at.desc(), CashHandover.id.desc())
            .all()
        )

    # -- aggregates ------------------------------------------------------

    def dashboard_kpis(self, tenant_id, start, end):
        in_window = (
            Transaction.tenant_id == tenant_id,
            Transaction.created_at >= start,
            Transaction.created_at < end,
        )
        today_sales = (
            db.session.query(func.coalesce(func.sum(Transaction.total_cents), 0))
            .filter(*in_window, Transaction.status == "completed")
            .scalar()
        )
        today_transactions = db.session.query(func.count(Transaction.id)).filter(*in_window).scalar()
        low_stock = (
            db.session.query(func.count(Product.id))
            .filter(
                Product.tenant_id == tenant_id,
                Product.is_active.is_(True),
                Product.stock <= Product.min_stock,
            )
            .scalar()
        )
        active_staff = (
            db.session.query(func.count(User.id))
            .filter(User.tenant_id == tenant_id, User.is_active.is_(True))
            .scalar()
        )
        return {
            "today_sales_cents": int(today_sales or 0),
            "today_transactions": int(today_transactions or 0),
            "low_stock_items": int(low_stock or 0),
            "active_staff": int(active_staff or 0),
        }

    def sales_by_day(self, tenant_id, start, end):
        day = func.date(Transaction.created_at)
        rows = (
            db.session.query(
                day.label("day"),
                func.coalesce(func.sum(Transaction.total_cents), 0).label("total_cents"),
                func.count(Transaction.id).label("count"),
            )
            .filter(
                Transaction.tenant_id == tenant_id,
                Transaction.status == "completed",
                Transaction.created_at >= start,
                Transaction.created_at < end,
            )
            .group_by(day)
            .order_by(day)
            .all()
        )
        # SQLite returns the day as text, PostgreSQL as a date
        return [
            SalesDay(date=str(row.day)[:10], total_cents=int(row.total_cents), count=int(row.count))
            for row in rows
        ]

    def cash_movements(self, tenant_id, cashier_id, start, end):
        sales = (
            db.session.query(func.coalesce(func.sum(Transaction.total_cents), 0))
            .filter(
                Transaction.tenant_id == tenant_id,
                Transaction.cashier_id == cashier_id,
                Transaction.payment_method == "cash",
                Transaction.status.in_(("completed", "refunded")),
                Transaction.created_at >= start,
                Transaction.created_at < end,
            )
            .scalar()
        )
        refunds = (
            db.session.query(func.coalesce(func.sum(Return.refund_cents), 0))
            .filter(
                Return.tenant_id == tenant_id,
                Return.processed_by_id == cashier_id,
                Return.refund_method == "cash",
                Return.created_at >= start,
                Return.created_at < end,
            )
            .scalar()
        )
        return int(sales or 0), int(refunds or 0)
