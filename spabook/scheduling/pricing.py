"""Price calculation with the online payment discount.

All arithmetic is done with Decimal and rounded half-up to cents.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from spabook.config import CURRENCY_QUANTUM, WEB_DISCOUNT_RATE
from spabook.models import PaymentMethod, Service


def to_money(value: Decimal) -> Decimal:
    return value.quantize(CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)


def discount_applies(payment_method: PaymentMethod) -> bool:
    return PaymentMethod(payment_method) == PaymentMethod.WEB


def apply_discount(
    amount: Decimal,
    payment_method: PaymentMethod,
    rate: Decimal = WEB_DISCOUNT_RATE,
) -> Decimal:
    """Price after the web-payment discount, if it applies."""
    if discount_applies(payment_method):
        amount = amount * (Decimal(1) - rate)
    return to_money(amount)


def compute_total(
    services: Iterable[Service],
    payment_method: PaymentMethod,
    rate: Decimal = WEB_DISCOUNT_RATE,
) -> Decimal:
    """Sum service prices, then apply the discount once to the total."""
    subtotal = sum((service.price for service in services), Decimal(0))
    return apply_discount(subtotal, payment_method, rate)
