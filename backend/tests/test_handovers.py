# Overview: Pytest coverage for end-of-shift cash handovers.

from types import SimpleNamespace

import pytest

from retailpos.services.handover_service import HandoverError, count_cash
from retailpos.time_utils import parse_iso_datetime, utcnow

from conftest import checkout, login

DENOMINATIONS = [200, 100, 50, 20, 10, 5, 2, 1]


@pytest.fixture
def cashier_headers(client, shop_a):
    return login(client, shop_a, 'cashier')


def _create(client, headers, **body):
    return client.post('/api/handovers', json=body, headers=headers)


class TestCountCash:

    def test_sums_face_value_times_count(self):
        normalized, total = count_cash({"50": 2, "10": 3, 1: 4}, DENOMINATIONS)
        assert total == (100 + 30 + 4) * 100
        assert normalized == {"50": 2, "10": 3, "1": 4}

    def test_empty_count_is_zero(self):
        assert count_cash({}, DENOMINATIONS) == ({}, 0)

    @pytest.mark.parametrize("denominations", [
        {"3": 1},
        {"fifty": 1},
        {"50": -1},
        {"50": 1.5},
        {"50": True},
        [["50", 1]],
    ])
    def test_rejects_bad_counts(self, denominations):
        with pytest.raises((HandoverError, ValueError)):
            count_cash(denominations, DENOMINATIONS)


class TestCreateHandover:

    def test_expected_comes_from_cash_sales(self, client, shop_a, cashier_headers):
        checkout(client, cashier_headers, [{'product_id': shop_a.coke_id, 'quantity': 2}])  # 563 cash
        checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 1}], payment_method='card')

        response = _create(client, cashier_headers, denominations={"50": 2, "10": 3})
        assert response.status_code == 201
        data = response.json
        assert data['cashier_id'] == shop_a.cashier_id
        assert data['actual_cents'] == 13000
        assert data['expected_cents'] == 563
        assert data['difference_cents'] == 13000 - 563
        assert data['is_submitted'] is False
        assert data['submitted_at'] is None

    def test_cash_refunds_reduce_expected(self, client, shop_a, cashier_headers):
        tx = checkout(client, cashier_headers, [{'product_id': shop_a.coke_id, 'quantity': 2}]).json['transaction']
        client.post('/api/returns', json={'transaction_id': tx['id'], 'reason': 'other'}, headers=cashier_headers)

        response = _create(client, cashier_headers, denominations={})
        assert response.json['expected_cents'] == 0
        assert response.json['difference_cents'] == 0

    def test_other_cashiers_sales_not_counted(self, client, shop_a, cashier_headers):
        admin = login(client, shop_a, 'admin')
        checkout(client, admin, [{'product_id': shop_a.coke_id, 'quantity': 2}])
        response = _create(client, cashier_headers, denominations={"5": 1})
        assert response.json['expected_cents'] == 0
        assert response.json['difference_cents'] == 500

    def test_past_shift_date_has_no_sales(self, client, shop_a, cashier_headers):
        checkout(client, cashier_headers, [{'product_id': shop_a.coke_id, 'quantity': 2}])
        response = _create(client, cashier_headers, denominations={"5": 1}, shift_date='2020-01-01')
        assert response.status_code == 201
        assert response.json['expected_cents'] == 0
        assert response.json['shift_date'].startswith('2020-01-01')

    def test_explicit_expected_amount(self, client, shop_a, cashier_headers):
        response = _create(client, cashier_headers, denominations={"100": 1}, expected_cents=12000)
        assert response.json['expected_cents'] == 12000
        assert response.json['difference_cents'] == -2000

    def test_unknown_denomination_rejected(self, client, shop_a, cashier_headers):
        response = _create(client, cashier_headers, denominations={"3": 1})
        assert response.status_code == 400

    @pytest.mark.parametrize('shift_date', ['', '   ', 'yesterday', 20200101])
    def test_bad_shift_date_rejected(self, client, shop_a, cashier_headers, shift_date):
        response = _create(client, cashier_headers, denominations={}, shift_date=shift_date)
        assert response.status_code == 400
        assert response.json['error'] == 'shift_date must be an ISO-8601 date'

    def test_unknown_field_rejected(self, client, shop_a, cashier_headers):
        response = _create(client, cashier_headers, denominations={}, actual_cents=1)
        assert response.status_code == 400

    def test_supervisor_must_be_admin(self, client, shop_a, cashier_headers):
        response = _create(client, cashier_headers, denominations={}, supervisor_id=shop_a.attendant_id)
        assert response.status_code == 400

        response = _create(client, cashier_headers, denominations={}, supervisor_id=shop_a.admin_id)
        assert response.status_code == 201
        assert response.json['supervisor_id'] == shop_a.admin_id

    def test_attendant_cannot_create(self, client, shop_a):
        headers = login(client, shop_a, 'attendant')
        assert _create(client, headers, denominations={}).status_code == 403


class TestUpdateHandover:

    def test_recount_recomputes_amounts(self, client, shop_a, cashier_headers):
        created = _create(client, cashier_headers, denominations={"10": 1}, expected_cents=2000).json
        response = client.put(
            f"/api/handovers/{created['id']}",
            json={'denominations': {"20": 1}},
            headers=cashier_headers,
        )
        assert response.status_code == 200
        assert response.json['actual_cents'] == 2000
        assert response.json['expected_cents'] == 2000
        assert response.json['difference_cents'] == 0

    def test_submitted_handover_is_final(self, client, shop_a, cashier_headers):
        created = _create(client, cashier_headers, denominations={"10": 1}).json
        submitted = client.put(
            f"/api/handovers/{created['id']}",
            json={'is_submitted': True, 'supervisor_id': shop_a.admin_id},
            headers=cashier_headers,
        )
        assert submitted.status_code == 200
        assert submitted.json['is_submitted'] is True
        assert submitted.json['submitted_at'] is not None

        response = client.put(
            f"/api/handovers/{created['id']}",
            json={'notes': 'late change'},
            headers=cashier_headers,
        )
        assert response.status_code == 400

    def test_submission_landing_after_the_read_still_wins(self, client, storage, shop_a, cashier_headers, monkeypatch):
        created = _create(client, cashier_headers, denominations={"10": 1}).json
        stale = SimpleNamespace(
            id=created['id'],
            cashier_id=shop_a.cashier_id,
            is_submitted=False,
            shift_date=parse_iso_datetime(created['shift_date']),
            actual_cents=created['actual_cents'],
            expected_cents=created['expected_cents'],
        )
        storage.update_handover(shop_a.tenant_id, created['id'], {'is_submitted': True, 'submitted_at': utcnow()})
        monkeypatch.setattr(storage, 'get_handover', lambda tenant_id, handover_id: stale)

        response = client.put(
            f"/api/handovers/{created['id']}", json={'notes': 'too late'}, headers=cashier_headers
        )
        assert response.status_code == 400
        assert response.json['error'] == 'Submitted handovers cannot be modified'

    def test_cashier_cannot_touch_someone_elses_handover(self, client, shop_a, cashier_headers):
        admin = login(client, shop_a, 'admin')
        created = _create(client, admin, denominations={}).json
        response = client.put(
            f"/api/handovers/{created['id']}", json={'notes': 'x'}, headers=cashier_headers
        )
        assert response.status_code == 403

    def test_admin_can_update_any_handover(self, client, shop_a, cashier_headers):
        created = _create(client, cashier_headers, denominations={}).json
        admin = login(client, shop_a, 'admin')
        response = client.put(
            f"/api/handovers/{created['id']}", json={'notes': 'checked'}, headers=admin
        )
        assert response.status_code == 200
        assert response.json['notes'] == 'checked'
        assert response.json['cashier_id'] == shop_a.cashier_id

    def test_update_unknown_handover(self, client, shop_a, cashier_headers):
        response = client.put('/api/handovers/99999', json={'notes': 'x'}, headers=cashier_headers)
        assert response.status_code == 404


class TestListHandovers:

    def test_list_newest_first_for_any_role(self, client, shop_a, cashier_headers):
        first = _create(client, cashier_headers, denominations={"1": 1}).json
        second = _create(client, cashier_headers, denominations={"2": 1}).json

        headers = login(client, shop_a, 'attendant')
        listing = client.get('/api/handovers', headers=headers).json
        assert [h['id'] for h in listing['items']] == [second['id'], first['id']]
