# Overview: Pytest coverage for checkout, idempotency and transaction reads.

import re

import pytest

from conftest import checkout, login


@pytest.fixture
def cashier_headers(client, shop_a):
    return login(client, shop_a, 'cashier')


def _stock(client, headers, product_id):
    return client.get(f'/api/products/{product_id}', headers=headers).json['stock']


class TestCheckout:

    def test_checkout_records_completed_transaction(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.coke_id, 'quantity': 2},
            {'product_id': shop_a.bread_id, 'quantity': 1},
        ], customer_name='Ama')
        assert response.status_code == 201
        data = response.json
        tx = data['transaction']
        assert data['replayed'] is False
        assert tx['status'] == 'completed'
        assert tx['cashier_id'] == shop_a.cashier_id
        assert tx['payment_method'] == 'cash'
        assert tx['customer_name'] == 'Ama'
        assert re.fullmatch(r'RCP-\d+(-\d+)?', tx['receipt_number'])
        assert len(data['items']) == 2

    def test_totals_use_stored_prices_and_shop_tax(self, client, shop_a, cashier_headers):
        # 2 x 250 + 1 x 150 = 650; 12.5% tax = 81.25 -> 81
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.coke_id, 'quantity': 2, 'unit_price_cents': 1},
            {'product_id': shop_a.bread_id, 'quantity': 1},
        ], total_cents=1)
        tx = response.json['transaction']
        assert tx['subtotal_cents'] == 650
        assert tx['tax_cents'] == 81
        assert tx['discount_cents'] == 0
        assert tx['total_cents'] == tx['subtotal_cents'] + tx['tax_cents'] - tx['discount_cents']

    def test_tax_rounds_half_up(self, client, shop_a, cashier_headers):
        # 150 x 12.5% = 18.75 -> 19
        response = checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 1}])
        assert response.json['transaction']['tax_cents'] == 19

    def test_discount_reduces_total(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.coke_id, 'quantity': 4},
        ], discount_cents=100)
        tx = response.json['transaction']
        assert tx['subtotal_cents'] == 1000
        assert tx['tax_cents'] == 125
        assert tx['total_cents'] == 1025

    def test_discount_cannot_exceed_total(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.bread_id, 'quantity': 1},
        ], discount_cents=10_000)
        assert response.status_code == 400

    def test_checkout_decrements_stock(self, client, shop_a, cashier_headers):
        checkout(client, cashier_headers, [
            {'product_id': shop_a.coke_id, 'quantity': 3},
            {'product_id': shop_a.coke_id, 'quantity': 2},
        ])
        assert _stock(client, cashier_headers, shop_a.coke_id) == 45

    def test_duplicate_lines_are_merged(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.coke_id, 'quantity': 1},
            {'product_id': shop_a.coke_id, 'quantity': 1},
        ])
        items = response.json['items']
        assert len(items) == 1
        assert items[0]['quantity'] == 2
        assert items[0]['total_cents'] == 500

    def test_attendant_is_recorded(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.bread_id, 'quantity': 1},
        ], attendant_id=shop_a.attendant_id)
        assert response.status_code == 201
        assert response.json['transaction']['attendant_id'] == shop_a.attendant_id

    def test_unknown_attendant_rejected(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.bread_id, 'quantity': 1},
        ], attendant_id=99999)
        assert response.status_code == 400


class TestCheckoutValidation:

    @pytest.mark.parametrize("body", [
        {'items': [], 'payment_method': 'cash'},
        {'payment_method': 'cash'},
        {'items': 'coke', 'payment_method': 'cash'},
        {'items': [{'product_id': 1, 'quantity': 0}], 'payment_method': 'cash'},
        {'items': [{'product_id': 1, 'quantity': 1.5}], 'payment_method': 'cash'},
        {'items': [{'product_id': 1, 'quantity': 1}], 'payment_method': 'cheque'},
        {'items': [{'product_id': 1, 'quantity': 1}]},
    ])
    def test_bad_carts_rejected(self, client, shop_a, cashier_headers, body):
        response = client.post('/api/transactions', json=body, headers=cashier_headers)
        assert response.status_code == 400

    def test_unknown_product_rejected(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [{'product_id': 99999, 'quantity': 1}])
        assert response.status_code == 400
        assert response.json['product_ids'] == [99999]

    def test_inactive_product_rejected(self, client, shop_a, cashier_headers):
        admin = login(client, shop_a, 'admin')
        client.delete(f'/api/products/{shop_a.bread_id}', headers=admin)
        response = checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 1}])
        assert response.status_code == 400

    def test_insufficient_stock_is_atomic(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.coke_id, 'quantity': 5},
            {'product_id': shop_a.bread_id, 'quantity': 26},
        ])
        assert response.status_code == 409
        assert response.json['details'] == [
            {'product_id': shop_a.bread_id, 'requested_quantity': 26, 'on_hand': 25},
        ]
        # Nothing was written: no transaction and the coke line did not decrement stock.
        assert _stock(client, cashier_headers, shop_a.coke_id) == 50
        assert _stock(client, cashier_headers, shop_a.bread_id) == 25
        listing = client.get('/api/transactions', headers=cashier_headers).json
        assert listing['count'] == 0

    def test_selling_exact_stock_leaves_zero(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 25}])
        assert response.status_code == 201
        assert _stock(client, cashier_headers, shop_a.bread_id) == 0
        again = checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 1}])
        assert again.status_code == 409


class TestIdempotency:

    def test_replay_returns_original_and_sells_once(self, client, shop_a, cashier_headers):
        headers = {**cashier_headers, 'Idempotency-Key': 'till-1-0001'}
        items = [{'product_id': shop_a.coke_id, 'quantity': 2}]

        first = checkout(client, headers, items)
        second = checkout(client, headers, items)

        assert first.status_code == 201
        assert second.status_code == 200
        assert second.json['replayed'] is True
        assert second.json['transaction']['id'] == first.json['transaction']['id']
        assert second.json['transaction']['receipt_number'] == first.json['transaction']['receipt_number']
        assert _stock(client, cashier_headers, shop_a.coke_id) == 48
        assert client.get('/api/transactions', headers=cashier_headers).json['count'] == 1

    def test_key_in_body(self, client, shop_a, cashier_headers):
        items = [{'product_id': shop_a.bread_id, 'quantity': 1}]
        first = checkout(client, cashier_headers, items, idempotency_key='abc')
        second = checkout(client, cashier_headers, items, idempotency_key='abc')
        assert second.json['transaction']['id'] == first.json['transaction']['id']

    def test_distinct_keys_make_distinct_sales(self, client, shop_a, cashier_headers):
        items = [{'product_id': shop_a.bread_id, 'quantity': 1}]
        first = checkout(client, cashier_headers, items, idempotency_key='k1')
        second = checkout(client, cashier_headers, items, idempotency_key='k2')
        assert first.json['transaction']['id'] != second.json['transaction']['id']
        assert first.json['transaction']['receipt_number'] != second.json['transaction']['receipt_number']

    def test_oversized_key_rejected(self, client, shop_a, cashier_headers):
        response = checkout(client, cashier_headers, [
            {'product_id': shop_a.bread_id, 'quantity': 1},
        ], idempotency_key='x' * 129)
        assert response.status_code == 400


class TestTransactionReads:

    def test_list_newest_first_with_limit(self, client, shop_a, cashier_headers):
        ids = []
        for _ in range(3):
            response = checkout(client, cashier_headers, [{'product_id': shop_a.bread_id, 'quantity': 1}])
            ids.append(response.json['transaction']['id'])

        listing = client.get('/api/transactions', headers=cashier_headers).json
        assert [t['id'] for t in listing['items']] == list(reversed(ids))

        limited = client.get('/api/transactions?limit=2', headers=cashier_headers).json
        assert [t['id'] for t in limited['items']] == list(reversed(ids))[:2]

    def test_invalid_limit(self, client, shop_a, cashier_headers):
        response = client.get('/api/transactions?limit=0', headers=cashier_headers)
        assert response.status_code == 400

    def test_get_with_items(self, client, shop_a, cashier_headers):
        created = checkout(client, cashier_headers, [
            {'product_id': shop_a.coke_id, 'quantity': 1},
            {'product_id': shop_a.bread_id, 'quantity': 2},
        ]).json['transaction']

        response = client.get(f"/api/transactions/{created['id']}", headers=cashier_headers)
        assert response.status_code == 200
        data = response.json
        assert data['id'] == created['id']
        assert sorted((i['product_id'], i['quantity']) for i in data['items']) == sorted([
            (shop_a.coke_id, 1), (shop_a.bread_id, 2),
        ])
        assert sum(i['total_cents'] for i in data['items']) == data['subtotal_cents']

    def test_get_unknown_transaction(self, client, shop_a, cashier_headers):
        response = client.get('/api/transactions/99999', headers=cashier_headers)
        assert response.status_code == 404
