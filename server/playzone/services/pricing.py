"""Order amount and discount arithmetic."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

from ..models.voucher import DiscountType

CENTS = Decimal("0.01")
ZERO = Decimal("0.00")

Amount = Union[Decimal, int, float, str]


def to_money(value: Amount) -> Decimal:
    """Coerce a value to a Decimal rounded half-up to two places."""
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def order_amount(package_price: Amount, number_of_children: int, per_child: bool = True) -> Decimal:
    """Price of a booking before any discount; flat-priced packages ignore the child count."""
    if number_of_children < 1:
        raise ValueError("number_of_children must be at least 1")
    if not per_child:
        return to_money(package_price)
    return to_money(to_money(package_price) * number_of_children)


def compute_discount(
    discount_type: str,
    discount_value: Amount,
    amount: Amount,
    max_discount: Amount | None = None,
) -> Decimal:
    """
    Discount a voucher grants on an order.

    Percentage vouchers take ``value`` percent of the order, fixed vouchers
    take ``value`` outright. Either is capped at ``max_discount`` when set and
    never exceeds the order amount.

    Args:
        discount_type: "percentage" or "fixed"
        discount_value: Percent or currency amount, depending on the type
        amount: Order amount before discount
        max_discount: Optional cap on the discount

    Returns:
        Discount rounded half-up to two decimal places
    """
    amount = to_money(amount)
    value = Decimal(str(discount_value))

    if DiscountType(discount_type) is DiscountType.PERCENTAGE:
        discount = amount * value / Decimal(100)
    else:
        discount = value

    if max_discount is not None:
        discount = min(discount, Decimal(str(max_discount)))

    discount = min(discount, amount)
    return max(to_money(discount), ZERO)


def apply_discount(amount: Amount, discount: Amount) -> Decimal:
    """Final amount payable after a discount."""
    return max(to_money(amount) - to_money(discount), ZERO)
