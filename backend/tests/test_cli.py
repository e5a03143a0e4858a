# Overview: Pytest coverage for the flask CLI command groups.

from retailpos.storage import get_storage

from conftest import PASSWORD, get_auth_token


class TestSystemInit:

    def test_init_creates_demo_shop(self, app, client):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['system', 'init'])
        assert result.exit_code == 0, result.output
        assert 'Created shop: Demo Shop' in result.output

        storage = get_storage()
        tenant = storage.get_tenant_by_subdomain('demo')
        assert tenant is not None
        assert sorted(u.username for u in storage.list_users(tenant.id)) == ['admin', 'cashier']
        assert sorted(p.sku for p in storage.list_products(tenant.id)) == ['BR-001', 'CC-500']

        assert get_auth_token(client, 'demo', 'admin', PASSWORD)

    def test_init_is_idempotent(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=['system', 'init'])
        result = runner.invoke(args=['system', 'init'])
        assert result.exit_code == 0
        assert 'Using existing shop' in result.output

        storage = get_storage()
        tenant = storage.get_tenant_by_subdomain('demo')
        assert len(storage.list_users(tenant.id)) == 2
        assert len(storage.list_products(tenant.id)) == 2

    def test_init_matches_existing_shop_case_insensitively(self, app):
        runner = app.test_cli_runner()
        runner.invoke(args=['system', 'init'])
        result = runner.invoke(args=['system', 'init', '--subdomain', 'Demo'])
        assert result.exit_code == 0
        assert 'Using existing shop' in result.output
        assert 'FAIL' not in result.output
        assert len(get_storage().list_tenants()) == 1

    def test_init_custom_shop(self, app):
        result = app.test_cli_runner().invoke(args=['system', 'init', '--name', 'Kiosk', '--subdomain', 'kiosk'])
        assert result.exit_code == 0
        assert get_storage().get_tenant_by_subdomain('kiosk').name == 'Kiosk'


class TestTenantCommands:

    def test_create_and_list(self, app):
        runner = app.test_cli_runner()
        result = runner.invoke(args=['tenants', 'create', '--name', 'Corner Shop', '--subdomain', 'corner'])
        assert 'PASS Created shop: Corner Shop' in result.output

        result = runner.invoke(args=['tenants', 'list'])
        assert 'corner' in result.output

    def test_create_rejects_bad_subdomain(self, app):
        result = app.test_cli_runner().invoke(args=['tenants', 'create', '--name', 'X', '--subdomain', 'Bad Name!'])
        assert 'FAIL' in result.output
        assert get_storage().list_tenants() == []

    def test_create_rejects_taken_subdomain(self, app, shop_a):
        result = app.test_cli_runner().invoke(
            args=['tenants', 'create', '--name', 'Again', '--subdomain', shop_a.subdomain]
        )
        assert 'FAIL' in result.output


class TestUserCommands:

    def test_create_and_list(self, app, client, shop_a):
        runner = app.test_cli_runner()
        result = runner.invoke(args=[
            'users', 'create', '--subdomain', shop_a.subdomain,
            '--username', 'ama', '--password', 'Cl1!Password', '--role', 'cashier',
        ])
        assert 'PASS Created user: ama' in result.output, result.output
        assert get_auth_token(client, shop_a.subdomain, 'ama', 'Cl1!Password')

        result = runner.invoke(args=['users', 'list', '--subdomain', shop_a.subdomain])
        assert 'ama' in result.output
        assert 'cashier' in result.output

    def test_weak_password_reported(self, app, shop_a):
        result = app.test_cli_runner().invoke(args=[
            'users', 'create', '--subdomain', shop_a.subdomain,
            '--username', 'weak', '--password', 'weak', '--role', 'staff',
        ])
        assert 'Password validation failed' in result.output

    def test_unknown_shop(self, app):
        result = app.test_cli_runner().invoke(args=['users', 'list', '--subdomain', 'nowhere'])
        assert "FAIL Shop 'nowhere' not found" in result.output
