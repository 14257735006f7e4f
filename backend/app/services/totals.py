"""Document totals.

All money is Decimal, rounded half-up to two places. Tax applies to the
discounted subtotal.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Tuple, Union

Number = Union[Decimal, int, float, str]

TWO_PLACES = Decimal("0.01")


def to_money(value: Number) -> Decimal:
    """Coerce to Decimal (via str for floats) and round to cents."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def line_total(quantity: int, unit_price: Number) -> Decimal:
    return to_money(Decimal(quantity) * to_money(unit_price))


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax_amount: Decimal
    total: Decimal


def calculate_totals(
    lines: Iterable[Tuple[int, Number]],
    tax_rate: Number = Decimal("18"),
    discount: Number = Decimal("0"),
) -> Totals:
    """Compute subtotal, tax and grand total for ``(quantity, unit_price)`` lines.

    subtotal = sum(q * p); tax = (subtotal - discount) * rate / 100;
    total = subtotal - discount + tax.
    """
    subtotal = sum((line_total(q, p) for q, p in lines), Decimal("0"))
    subtotal = to_money(subtotal)
    discount = to_money(discount)
    rate = Decimal(str(tax_rate)) if not isinstance(tax_rate, Decimal) else tax_rate
    tax_amount = to_money((subtotal - discount) * rate / Decimal("100"))
    total = to_money(subtotal - discount + tax_amount)
    return Totals(subtotal=subtotal, discount=discount, tax_amount=tax_amount, total=total)
