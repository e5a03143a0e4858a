from __future__ import annotations

from ..extensions import db
from retailpos.time_utils import to_utc_z, utcnow

class Tenant(db.Model):
    """
    Multi-tenant root: every shop is a Tenant.

    All users, products, transactions, returns and handovers carry a
    tenant_id; no row may reference a row of another tenant.
    Shops are addressed at login by their subdomain ("shop id").
    """
    __tablename__ = "tenants"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    subdomain = db.Column(db.String(100), nullable=False, unique=True, index=True)

    address = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(20), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    logo_url = db.Column(db.String(500), nullable=True)
    primary_color = db.Column(db.String(7), nullable=False, default="#1976D2")

    # Basis points (1250 = 12.5%)
    tax_rate_bps = db.Column(db.Integer, nullable=False, default=1250)
    currency = db.Column(db.String(3), nullable=False, default="GHS")

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self) -> str:
        return f"<Tenant id={self.id} subdomain={self.subdomain!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "subdomain": self.subdomain,
            "address": self.address,
            "phone": self.phone,
            "email": self.email,
            "logo_url": self.logo_url,
            "primary_color": self.primary_color,
            "tax_rate_bps": self.tax_rate_bps,
            "currency": self.currency,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
