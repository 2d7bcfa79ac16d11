from decimal import Decimal

import pytest

from souq.services.order_services.commission import compute_line, sum_lines


def test_line_commission_rounds_half_up_to_the_cent():
    line = compute_line(Decimal("33.33"), 3, Decimal("0.05"))
    assert line.line_total == Decimal("99.99")
    assert line.commission_amount == Decimal("5.00")
    assert line.seller_net_amount == Decimal("94.99")


def test_half_cent_commission_rounds_up():
    line = compute_line("0.10", 1, "0.05")
    assert line.commission_amount == Decimal("0.01")
    assert line.seller_net_amount == Decimal("0.09")


@pytest.mark.parametrize("price, qty, rate", [
    ("19.99", 7, "0.05"),
    ("0.01", 1, "0.05"),
    ("1234.56", 13, "0.075"),
    ("5.00", 2, "0"),
    ("99.95", 1, "1"),
])
def test_commission_and_net_always_add_up(price, qty, rate):
    line = compute_line(price, qty, rate)
    assert line.commission_amount + line.seller_net_amount == line.line_total
    assert line.commission_amount >= 0
    assert line.seller_net_amount >= 0


def test_zero_rate_keeps_everything_for_the_seller():
    line = compute_line("12.50", 4, Decimal("0"))
    assert line.commission_amount == Decimal("0.00")
    assert line.seller_net_amount == Decimal("50.00")


def test_float_prices_do_not_leak_binary_error():
    # 0.1 * 3 is 0.30000000000000004 as a float
    line = compute_line(0.1, 3, 0.05)
    assert line.line_total == Decimal("0.30")
    assert line.commission_amount == Decimal("0.02")


def test_order_totals_sum_lines():
    lines = [
        compute_line("33.33", 3, "0.05"),
        compute_line("10.00", 1, "0.05"),
    ]
    totals = sum_lines(lines)
    assert totals.subtotal == Decimal("109.99")
    assert totals.commission_total == Decimal("5.50")
    assert totals.total == totals.subtotal
