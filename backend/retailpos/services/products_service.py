# backend/retailpos/services/products_service.py
"""
Products Service with Multi-Tenant Support

MULTI-TENANT: Every operation takes the caller's tenant_id; a product of
another tenant is indistinguishable from a missing one.
"""
from __future__ import annotations

from ..models import Product
from ..storage import Storage
from ..validation import (
    ModelValidationPolicy,
    NotFoundError,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "description", "sku", "barcode", "category",
        "price_cents", "cost_cents", "stock", "min_stock",
        "image_url", "is_active",
    },
    required_on_create={"name", "sku", "price_cents"},
)


def list_products(storage: Storage, tenant_id: int, include_inactive: bool = False) -> dict:
    """
    Tenant-scoped product listing, ordered by name.

    Soft-deleted products are only included when include_inactive is set.
    """
    products = storage.list_products(tenant_id, include_inactive=include_inactive)
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def get_product(storage: Storage, tenant_id: int, product_id: int) -> Product:
    product = storage.get_product(tenant_id, product_id)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def get_product_by_barcode(storage: Storage, tenant_id: int, barcode: str) -> Product:
    product = storage.get_product_by_barcode(tenant_id, barcode.strip())
    if product is None:
        raise NotFoundError("Product not found")
    return product


def create_product(storage: Storage, tenant_id: int, payload: dict) -> Product:
    """
    Create product from a request payload.

    Raises:
        ValidationError: payload fails the field policy or business rules
        ConflictError: SKU (or active barcode) already exists in the tenant
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    return storage.create_product(tenant_id, patch)


def update_product(storage: Storage, tenant_id: int, product_id: int, payload: dict) -> Product:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch)
    product = storage.update_product(tenant_id, product_id, patch)
    if product is None:
        raise NotFoundError("Product not found")
    return product


def delete_product(storage: Storage, tenant_id: int, product_id: int) -> None:
    """Soft-delete: the row stays so past transaction items still resolve."""
    if not storage.deactivate_product(tenant_id, product_id):
        raise NotFoundError("Product not found")
