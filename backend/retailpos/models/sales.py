from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow

PAYMENT_METHODS = ("cash", "card", "mobile_money")


class Transaction(db.Model):
    """
    A completed (or refunded) checkout.

    Amounts are server-computed: total = subtotal + tax - discount.
    receipt_number is the human-readable handle printed on the receipt.
    idempotency_key lets a client retry a checkout without selling twice.
    """
    __tablename__ = "transactions"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "receipt_number", name="uq_transactions_tenant_receipt"),
        db.UniqueConstraint("tenant_id", "idempotency_key", name="uq_transactions_tenant_idempotency"),
        # Composite index for dashboard/report range scans
        db.Index("ix_transactions_tenant_status_created", "tenant_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)

    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    attendant_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    customer_name = db.Column(db.String(255), nullable=True)

    subtotal_cents = db.Column(db.Integer, nullable=False)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    # pending | completed | refunded | cancelled
    status = db.Column(db.String(16), nullable=False, default="pending", index=True)
    payment_method = db.Column(db.String(16), nullable=False)
    receipt_number = db.Column(db.String(50), nullable=False)
    idempotency_key = db.Column(db.String(128), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "cashier_id": self.cashier_id,
            "attendant_id": self.attendant_id,
            "customer_name": self.customer_name,
            "subtotal_cents": self.subtotal_cents,
            "tax_cents": self.tax_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "status": self.status,
            "payment_method": self.payment_method,
            "receipt_number": self.receipt_number,
            "idempotency_key": self.idempotency_key,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class TransactionItem(db.Model):
    """Line item on a transaction; prices are a snapshot at time of sale."""
    __tablename__ = "transaction_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }
