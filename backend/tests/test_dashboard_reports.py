# Overview: Pytest coverage for dashboard KPIs and the sales report.

from datetime import timedelta

import pytest

from retailpos.services import reporting_service
from retailpos.services.reporting_service import ReportError
from retailpos.time_utils import utcnow

from conftest import checkout, login


@pytest.fixture
def cashier_headers(client, shop_a):
    return login(client, shop_a, 'cashier')


class TestDashboardKpis:

    def test_empty_shop(self, client, shop_a, cashier_headers):
        response = client.get('/api/dashboard/kpis', headers=cashier_headers)
        assert response.status_code == 200
        data = response.json
        assert data['today_sales_cents'] == 0
        assert data['today_transactions'] == 0
        assert data['low_stock_items'] == 0
        assert data['active_staff'] == 3

    def test_counts_todays_completed_sales(self, client, shop_a, cashier_headers):
        tx1 = checkout(client, cashier_headers, [{'product_id': shop_a.coke_id, 'quantity': 2}]).json['transaction']
        tx2 = checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 1}]).json['transaction']

        data = client.get('/api/dashboard/kpis', headers=cashier_headers).json
        assert data['today_sales_cents'] == tx1['total_cents'] + tx2['total_cents']
        assert data['today_transactions'] == 2

    def test_refunded_sales_leave_sales_total_but_stay_counted(self, client, shop_a, cashier_headers):
        tx = checkout(client, cashier_headers, [{'product_id': shop_a.coke_id, 'quantity': 1}]).json['transaction']
        client.post('/api/returns', json={'transaction_id': tx['id'], 'reason': 'other'}, headers=cashier_headers)

        data = client.get('/api/dashboard/kpis', headers=cashier_headers).json
        assert data['today_sales_cents'] == 0
        assert data['today_transactions'] == 1

    def test_low_stock_counts_active_products_at_or_below_minimum(self, client, shop_a, cashier_headers):
        admin = login(client, shop_a, 'admin')
        client.put(f'/api/products/{shop_a.coke_id}', json={'stock': 10}, headers=admin)
        client.put(f'/api/products/{shop_a.bread_id}', json={'stock': 2}, headers=admin)
        client.delete(f'/api/products/{shop_a.bread_id}', headers=admin)

        data = client.get('/api/dashboard/kpis', headers=cashier_headers).json
        assert data['low_stock_items'] == 1

    def test_active_staff_excludes_deactivated(self, client, storage, shop_a, cashier_headers):
        storage.update_user(shop_a.tenant_id, shop_a.attendant_id, {"is_active": False})
        data = client.get('/api/dashboard/kpis', headers=cashier_headers).json
        assert data['active_staff'] == 2


class TestSalesReport:

    def test_default_range_is_last_seven_days(self, client, shop_a, cashier_headers):
        tx = checkout(client, cashier_headers, [{'product_id': shop_a.coke_id, 'quantity': 2}]).json['transaction']

        response = client.get('/api/reports/sales', headers=cashier_headers)
        assert response.status_code == 200
        data = response.json
        today = utcnow().date()
        assert data['end_date'] == today.isoformat()
        assert data['start_date'] == (today - timedelta(days=6)).isoformat()
        assert data['rows'] == [{'date': today.isoformat(), 'total_cents': tx['total_cents'], 'count': 1}]
        assert data['total_cents'] == tx['total_cents']
        assert data['count'] == 1

    def test_end_date_is_inclusive(self, client, shop_a, cashier_headers):
        checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 1}])
        today = utcnow().date().isoformat()
        data = client.get(
            f'/api/reports/sales?start_date={today}&end_date={today}', headers=cashier_headers
        ).json
        assert data['count'] == 1

    def test_range_without_sales(self, client, shop_a, cashier_headers):
        checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 1}])
        data = client.get(
            '/api/reports/sales?start_date=2020-01-01&end_date=2020-01-31', headers=cashier_headers
        ).json
        assert data['rows'] == []
        assert data['total_cents'] == 0

    @pytest.mark.parametrize("query", [
        "start_date=2024-02-10&end_date=2024-02-01",
        "start_date=not-a-date",
        "end_date=2024-13-01",
        "start_date=2020-01-01&end_date=2024-01-01",
    ])
    def test_bad_ranges_rejected(self, client, shop_a, cashier_headers, query):
        response = client.get(f'/api/reports/sales?{query}', headers=cashier_headers)
        assert response.status_code == 400

    def test_service_rejects_reversed_range(self, storage, shop_a):
        with pytest.raises(ReportError):
            reporting_service.sales_report(storage, shop_a.tenant_id, "2024-02-10", "2024-02-01")
