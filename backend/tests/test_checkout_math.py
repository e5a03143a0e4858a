# Overview: Pytest coverage for money arithmetic used by checkout and returns.

import pytest

from retailpos.services.checkout_service import CheckoutError, compute_totals, ratio_cents
from retailpos.storage import LineInput


def _lines(*totals):
    return [
        LineInput(product_id=i + 1, quantity=1, unit_price_cents=t, total_cents=t)
        for i, t in enumerate(totals)
    ]


@pytest.mark.parametrize("amount,numerator,denominator,expected", [
    (1000, 1250, 10_000, 125),
    (500, 1250, 10_000, 63),     # 62.5 rounds up
    (150, 1250, 10_000, 19),     # 18.75
    (250, 1250, 10_000, 31),     # 31.25
    (0, 1250, 10_000, 0),
    (250, 63, 500, 32),          # 31.5 rounds up
    (100, 1, 0, 0),
])
def test_ratio_cents_rounds_half_up(amount, numerator, denominator, expected):
    assert ratio_cents(amount, numerator, denominator) == expected


def test_totals_add_up():
    totals = compute_totals(_lines(500, 150), tax_rate_bps=1250, discount_cents=50)
    assert totals.subtotal_cents == 650
    assert totals.tax_cents == 81
    assert totals.discount_cents == 50
    assert totals.total_cents == 650 + 81 - 50


def test_zero_tax_rate():
    totals = compute_totals(_lines(999), tax_rate_bps=0)
    assert totals.tax_cents == 0
    assert totals.total_cents == 999


def test_discount_may_equal_total_but_not_exceed_it():
    assert compute_totals(_lines(800), 1250, discount_cents=900).total_cents == 0
    with pytest.raises(CheckoutError):
        compute_totals(_lines(800), 1250, discount_cents=901)
