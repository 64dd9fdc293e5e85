"""Unit tests for order and discount arithmetic."""

from decimal import Decimal

import pytest

from playzone.services.pricing import apply_discount, compute_discount, order_amount, to_money


def test_order_amount_multiplies_price_by_children():
    assert order_amount(Decimal("299.00"), 3) == Decimal("897.00")


def test_flat_priced_order_ignores_children():
    assert order_amount(Decimal("4999.00"), 12, per_child=False) == Decimal("4999.00")


def test_order_amount_requires_a_child():
    with pytest.raises(ValueError):
        order_amount(Decimal("299.00"), 0)


def test_welcome_voucher_is_capped_at_max_discount():
    # 20% of 999.00 is 199.80, capped at 100
    discount = compute_discount("percentage", Decimal("20"), Decimal("999.00"), Decimal("100"))
    assert discount == Decimal("100.00")
    assert apply_discount(Decimal("999.00"), discount) == Decimal("899.00")


def test_percentage_below_cap():
    assert compute_discount("percentage", Decimal("20"), Decimal("299.00"), Decimal("100")) == Decimal("59.80")


def test_percentage_rounds_half_up():
    # 12.5% of 10.10 is 1.2625
    assert compute_discount("percentage", Decimal("12.5"), Decimal("10.10")) == Decimal("1.26")
    # 15% of 0.10 is 0.015
    assert compute_discount("percentage", Decimal("15"), Decimal("0.10")) == Decimal("0.02")


def test_fixed_discount_never_exceeds_order():
    assert compute_discount("fixed", Decimal("500"), Decimal("299.00")) == Decimal("299.00")
    assert apply_discount(Decimal("299.00"), Decimal("299.00")) == Decimal("0.00")


def test_fixed_discount_respects_cap():
    assert compute_discount("fixed", Decimal("150"), Decimal("1000"), Decimal("120")) == Decimal("120.00")


def test_unknown_discount_type_is_rejected():
    with pytest.raises(ValueError):
        compute_discount("bogo", Decimal("10"), Decimal("100"))


def test_to_money_accepts_strings_and_floats():
    assert to_money("10.005") == Decimal("10.01")
    assert to_money(2.5) == Decimal("2.50")
