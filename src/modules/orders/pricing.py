"""Order charge calculation.

Runs exactly once, when an order is created; the results are stored on
the order and never recomputed.

Policy: the buyer pays ``price + delivery_fee``.  The platform commission
is taken out of the seller's share (``net_seller_payout``), and the rider
receives the whole delivery fee.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

MONEY_QUANTUM = Decimal("0.01")


def to_money(value: Decimal) -> Decimal:
    """Round to the currency's minor unit, half away from zero."""
    return Decimal(value).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class OrderCharges:
    unit_price: Decimal
    quantity: int
    price: Decimal
    delivery_fee: Decimal
    commission: Decimal
    total_amount: Decimal
    net_seller_payout: Decimal


def calculate_charges(
    unit_price: Decimal,
    quantity: int,
    delivery_fee: Decimal,
    commission_rate: Decimal,
) -> OrderCharges:
    """Compute every money field of a new order.

    >>> c = calculate_charges(Decimal("10000"), 1, Decimal("1500"), Decimal("0.10"))
    >>> (c.commission, c.total_amount, c.net_seller_payout)
    (Decimal('1000.00'), Decimal('11500.00'), Decimal('9000.00'))
    """
    if quantity < 1:
        raise ValueError("Quantity must be at least 1.")
    if delivery_fee < 0:
        raise ValueError("Delivery fee cannot be negative.")

    unit_price = to_money(unit_price)
    price = to_money(unit_price * quantity)
    delivery_fee = to_money(delivery_fee)
    commission = to_money(price * commission_rate)

    return OrderCharges(
        unit_price=unit_price,
        quantity=quantity,
        price=price,
        delivery_fee=delivery_fee,
        commission=commission,
        total_amount=price + delivery_fee,
        net_seller_payout=price - commission,
    )
