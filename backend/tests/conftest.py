"""
Pytest fixtures for RetailPOS backend tests.

Every app-level test runs twice: once on the SQL storage backend (in-memory
SQLite) and once on the process-local memory backend. Fixtures create two
shops so tenant isolation can be checked against real data.
"""

from types import SimpleNamespace

import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.storage import get_storage
from retailpos.services.auth_service import hash_password

PASSWORD = "Password123!"


@pytest.fixture(params=["sql", "memory"])
def app(request):
    """Create application for testing on each storage backend."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test-secret-key',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STORAGE_BACKEND': request.param,
        'DEMO_SEED_ENABLED': False,
        'BCRYPT_LOG_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def storage(app):
    return get_storage()


def _make_shop(storage, name: str, subdomain: str) -> SimpleNamespace:
    tenant = storage.create_tenant({"name": name, "subdomain": subdomain})
    password_hash = hash_password(PASSWORD)

    admin = storage.create_user(tenant.id, {
        "username": "admin", "email": f"admin@{subdomain}.test",
        "password_hash": password_hash, "role": "admin",
    })
    cashier = storage.create_user(tenant.id, {
        "username": "cashier", "email": f"cashier@{subdomain}.test",
        "password_hash": password_hash, "role": "cashier",
    })
    attendant = storage.create_user(tenant.id, {
        "username": "attendant", "password_hash": password_hash, "role": "sales_attendant",
    })
    coke = storage.create_product(tenant.id, {
        "name": "Coca Cola", "sku": "CC-500", "barcode": "123456789",
        "category": "beverages", "price_cents": 250, "cost_cents": 150,
        "stock": 50, "min_stock": 10,
    })
    bread = storage.create_product(tenant.id, {
        "name": "Bread", "sku": "BR-001", "barcode": "987654321",
        "category": "household", "price_cents": 150, "cost_cents": 80,
        "stock": 25, "min_stock": 5,
    })

    # Plain ids only: ORM instances may expire between requests.
    return SimpleNamespace(
        tenant_id=tenant.id,
        subdomain=tenant.subdomain,
        admin_id=admin.id,
        cashier_id=cashier.id,
        attendant_id=attendant.id,
        coke_id=coke.id,
        bread_id=bread.id,
    )


@pytest.fixture(scope='function')
def shop_a(storage):
    """Shop A (first tenant) with admin, cashier, attendant and two products."""
    return _make_shop(storage, "Shop A - Corner Store", "shop-a")


@pytest.fixture(scope='function')
def shop_b(storage):
    """Shop B (second tenant) with the same usernames and SKUs as shop A."""
    return _make_shop(storage, "Shop B - Market Stall", "shop-b")


def get_auth_token(client, shop_id: str, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'shop_id': shop_id,
        'username': username,
        'password': password,
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


def login(client, shop, username: str) -> dict:
    """Log in a fixture user and return Authorization headers."""
    token = get_auth_token(client, shop.subdomain, username)
    assert token, f"login failed for {username}@{shop.subdomain}"
    return auth_headers(token)


def checkout(client, headers, items, payment_method="cash", **extra):
    body = {"items": items, "payment_method": payment_method, **extra}
    return client.post('/api/transactions', json=body, headers=headers)
