# Overview: Pytest coverage for app wiring: health, CORS, storage selection and demo seeding.

import pytest

from retailpos import create_app
from retailpos.storage import MemoryStorage, get_storage

from conftest import PASSWORD, get_auth_token, login


class TestHealth:

    def test_health_reports_backend(self, app, client):
        response = client.get('/api/health')
        assert response.status_code == 200
        data = response.json
        assert data['status'] == 'healthy'
        assert data['checks']['storage']['details']['backend'] == app.config['STORAGE_BACKEND']


class TestCors:

    def test_allowed_origin_is_echoed(self, client):
        response = client.get('/api/health', headers={'Origin': 'http://localhost:5173'})
        assert response.headers['Access-Control-Allow-Origin'] == 'http://localhost:5173'
        assert 'Authorization' in response.headers['Access-Control-Allow-Headers']

    def test_unknown_origin_gets_no_header(self, client):
        response = client.get('/api/health', headers={'Origin': 'http://evil.example'})
        assert 'Access-Control-Allow-Origin' not in response.headers


class TestStorageSelection:

    def test_unknown_backend_fails_fast(self):
        with pytest.raises(RuntimeError, match="Unknown STORAGE_BACKEND"):
            create_app({'STORAGE_BACKEND': 'redis', 'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:'})

    def test_demo_seed_on_memory_backend(self):
        app = create_app({
            'TESTING': True,
            'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
            'STORAGE_BACKEND': 'memory',
            'DEMO_SEED_ENABLED': True,
            'BCRYPT_LOG_ROUNDS': 4,
        })
        with app.app_context():
            storage = get_storage()
            assert isinstance(storage, MemoryStorage)
            tenant = storage.get_tenant_by_subdomain('demo')
            assert tenant.name == 'Demo Shop'
            coke = storage.get_product_by_barcode(tenant.id, '123456789')
            assert coke.sku == 'CC-500'
            assert coke.price_cents == 250

        client = app.test_client()
        assert get_auth_token(client, 'demo', 'cashier', PASSWORD)


class TestJsonBodies:

    WRITE_ROUTES = [
        ('post', '/api/transactions'),
        ('post', '/api/returns'),
        ('post', '/api/handovers'),
        ('put', '/api/handovers/1'),
        ('post', '/api/products'),
        ('put', '/api/products/1'),
        ('post', '/api/users'),
        ('put', '/api/users/1'),
    ]

    @pytest.mark.parametrize('method,path', WRITE_ROUTES)
    @pytest.mark.parametrize('body', [[1], [], 'text', 42])
    def test_non_object_body_rejected(self, client, shop_a, method, path, body):
        headers = login(client, shop_a, 'admin')
        response = getattr(client, method)(path, json=body, headers=headers)
        assert response.status_code == 400
        assert response.json == {'error': 'Invalid JSON payload'}

    def test_login_rejects_array_body(self, client, shop_a):
        response = client.post('/api/auth/login', json=[shop_a.subdomain, 'admin', PASSWORD])
        assert response.status_code == 400
        assert response.json == {'error': 'Invalid JSON payload'}

    def test_checkout_without_body_is_a_validation_error(self, client, shop_a):
        headers = login(client, shop_a, 'admin')
        response = client.post('/api/transactions', headers=headers)
        assert response.status_code == 400
        assert response.json['error'] != 'Internal server error'
