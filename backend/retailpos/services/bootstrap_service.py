# Overview: Idempotent bootstrap of a shop with default staff and sample products.

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ..models import Tenant
from ..storage import Storage
from ..validation import ValidationError
from .auth_service import hash_password

DEFAULT_PASSWORD = "Password123!"

SUBDOMAIN_RE = re.compile(r"^[a-z0-9][a-z0-9-]{1,62}$")

DEFAULT_USERS = [
    {"username": "admin", "email": "admin@retailpos.local", "first_name": "Shop", "last_name": "Admin", "role": "admin"},
    {"username": "cashier", "email": "cashier@retailpos.local", "first_name": "Front", "last_name": "Cashier", "role": "cashier"},
]

SAMPLE_PRODUCTS = [
    {
        "name": "Coca Cola",
        "description": "Coca Cola 500ml",
        "sku": "CC-500",
        "barcode": "123456789",
        "category": "beverages",
        "price_cents": 250,
        "cost_cents": 150,
        "stock": 50,
        "min_stock": 10,
    },
    {
        "name": "Bread",
        "description": "Fresh white bread loaf",
        "sku": "BR-001",
        "barcode": "987654321",
        "category": "household",
        "price_cents": 150,
        "cost_cents": 80,
        "stock": 25,
        "min_stock": 5,
    },
]


@dataclass
class BootstrapResult:
    tenant: Tenant
    tenant_created: bool
    users_created: list[str] = field(default_factory=list)
    products_created: list[str] = field(default_factory=list)


def bootstrap_shop(
    storage: Storage,
    *,
    name: str = "Demo Shop",
    subdomain: str = "demo",
    password: str = DEFAULT_PASSWORD,
    with_products: bool = True,
) -> BootstrapResult:
    """
    Ensure a shop exists with default admin/cashier users and sample products.

    Safe to run repeatedly: existing tenants, users (by username) and
    products (by SKU) are left untouched.
    """
    subdomain = (subdomain or "").strip().lower()
    tenant = storage.get_tenant_by_subdomain(subdomain)
    tenant_created = tenant is None
    if tenant is None:
        tenant = create_tenant(storage, name=name, subdomain=subdomain)

    result = BootstrapResult(tenant=tenant, tenant_created=tenant_created)

    for entry in DEFAULT_USERS:
        if storage.get_user_by_username(tenant.id, entry["username"]) is not None:
            continue
        storage.create_user(tenant.id, {**entry, "password_hash": hash_password(password)})
        result.users_created.append(entry["username"])

    if with_products:
        existing_skus = {p.sku for p in storage.list_products(tenant.id, include_inactive=True)}
        for entry in SAMPLE_PRODUCTS:
            if entry["sku"] in existing_skus:
                continue
            storage.create_product(tenant.id, dict(entry))
            result.products_created.append(entry["sku"])

    return result


def create_tenant(storage: Storage, *, name: str, subdomain: str) -> Tenant:
    """Create a shop. The subdomain doubles as the shop id used at login."""
    name = (name or "").strip()
    subdomain = (subdomain or "").strip().lower()
    if not name:
        raise ValidationError("name is required")
    if not SUBDOMAIN_RE.match(subdomain):
        raise ValidationError(
            "subdomain must be 2-63 lowercase letters, digits or hyphens and start with a letter or digit"
        )
    return storage.create_tenant({"name": name, "subdomain": subdomain})
