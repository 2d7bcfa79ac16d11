"""
Commission arithmetic for checkout.

All amounts are Decimal. Commission is rounded half-up to the cent per line
and the seller's net amount is whatever remains, so for every line
commission_amount + seller_net_amount == line_total exactly.
"""

from dataclasses import dataclass
from decimal import Decimal

from souq.utils.decimal_utils import to_decimal, quantize_money


@dataclass(frozen=True)
class LineAmounts:
    line_total: Decimal
    commission_amount: Decimal
    seller_net_amount: Decimal


@dataclass(frozen=True)
class OrderAmounts:
    subtotal: Decimal
    commission_total: Decimal
    total: Decimal


def compute_line(price, qty: int, rate) -> LineAmounts:
    line_total = quantize_money(to_decimal(price) * qty)
    commission = quantize_money(line_total * to_decimal(rate))
    return LineAmounts(
        line_total=line_total,
        commission_amount=commission,
        seller_net_amount=line_total - commission,
    )


def sum_lines(lines: list[LineAmounts]) -> OrderAmounts:
    subtotal = sum((line.line_total for line in lines), Decimal("0.00"))
    commission_total = sum((line.commission_amount for line in lines), Decimal("0.00"))
    # Cash on delivery, no shipping or discounts: the customer pays the subtotal
    return OrderAmounts(subtotal=subtotal, commission_total=commission_total, total=subtotal)
