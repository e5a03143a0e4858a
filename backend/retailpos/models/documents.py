from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow

RETURN_REASONS = (
    "defective_product",
    "wrong_item",
    "customer_changed_mind",
    "damaged_in_transit",
    "other",
)


class Return(db.Model):
    """
    Return document reversing all or part of a completed transaction.

    Returned quantities go back into product stock. Once every sold unit
    has been returned, the original transaction is marked refunded.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.Index("ix_returns_tenant_created", "tenant_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    transaction_id = db.Column(db.Integer, db.ForeignKey("transactions.id"), nullable=False, index=True)
    processed_by_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)

    reason = db.Column(db.String(255), nullable=False)
    refund_cents = db.Column(db.Integer, nullable=False)
    refund_method = db.Column(db.String(16), nullable=False)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "transaction_id": self.transaction_id,
            "processed_by_id": self.processed_by_id,
            "reason": self.reason,
            "refund_cents": self.refund_cents,
            "refund_method": self.refund_method,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }


class ReturnItem(db.Model):
    """Line items on a return document."""
    __tablename__ = "return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
        }
