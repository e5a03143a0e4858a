from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow

class CashHandover(db.Model):
    """
    End-of-shift cash count.

    denominations maps face value (whole currency units, as a string key)
    to the number of notes/coins counted. actual_cents is derived from it;
    difference_cents = actual_cents - expected_cents.

    IMMUTABLE: Once submitted, the handover cannot be modified.
    """
    __tablename__ = "cash_handovers"
    __table_args__ = (
        db.Index("ix_cash_handovers_tenant_shift", "tenant_id", "shift_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.Integer, db.ForeignKey("tenants.id"), nullable=False, index=True)
    cashier_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    supervisor_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    shift_date = db.Column(db.DateTime, nullable=False)

    # Cash tracking (all amounts in cents)
    expected_cents = db.Column(db.Integer, nullable=False)
    actual_cents = db.Column(db.Integer, nullable=False)
    difference_cents = db.Column(db.Integer, nullable=False)

    denominations = db.Column(db.JSON, nullable=False)
    notes = db.Column(db.Text, nullable=True)

    is_submitted = db.Column(db.Boolean, nullable=False, default=False)
    submitted_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "cashier_id": self.cashier_id,
            "supervisor_id": self.supervisor_id,
            "shift_date": to_utc_z(self.shift_date),
            "expected_cents": self.expected_cents,
            "actual_cents": self.actual_cents,
            "difference_cents": self.difference_cents,
            "denominations": dict(self.denominations or {}),
            "notes": self.notes,
            "is_submitted": self.is_submitted,
            "submitted_at": to_utc_z(self.submitted_at) if self.submitted_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
