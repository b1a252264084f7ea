# storefront/services/totals.py
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Mapping, Sequence

from storefront.domain.schemas import CartItem
from storefront.services.price_converter import convert_strict, round_amount
from storefront.utils.settings import DISCOUNT_THRESHOLD, DISCOUNT_RATE


@dataclass(frozen=True)
class LineTotal:
    item: CartItem
    unit_price: Decimal
    line_total: Decimal


@dataclass(frozen=True)
class CheckoutTotals:
    currency: str
    lines: List[LineTotal]
    subtotal: Decimal
    discount: Decimal
    total: Decimal


def calculate_totals(
    items: Sequence[CartItem],
    user_currency: str,
    rates: Mapping[str, Decimal],
    threshold: Decimal = DISCOUNT_THRESHOLD,
    discount_rate: Decimal = DISCOUNT_RATE,
) -> CheckoutTotals:
    """
    Subtotal, discount and total of a cart in the user's currency.

    The discount applies once the rounded subtotal exceeds `threshold` units
    of the user's currency. Stateless: the same items, rates and currency
    always give the same rounded figures. An item without a rate to
    `user_currency` raises CurrencyConversionError; its price is never
    shown under the wrong currency.
    """
    lines = []
    raw_subtotal = Decimal("0")

    for item in items:
        unit = convert_strict(item.price, item.currency, user_currency, rates)
        line = unit * item.quantity
        raw_subtotal += line
        lines.append(
            LineTotal(
                item=item,
                unit_price=round_amount(unit, user_currency),
                line_total=round_amount(line, user_currency),
            )
        )

    subtotal = round_amount(raw_subtotal, user_currency)

    if subtotal > threshold:
        discount = round_amount(subtotal * discount_rate, user_currency)
    else:
        discount = round_amount(0, user_currency)

    return CheckoutTotals(
        currency=user_currency,
        lines=lines,
        subtotal=subtotal,
        discount=discount,
        total=subtotal - discount,
    )
