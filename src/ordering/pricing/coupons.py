"""Coupon terms, validation and discount allocation.

Coupons are looked up and counted by the caller; this module only decides
whether a coupon applies to a cart and how much it takes off. The discount is
computed once for the whole cart and then split across seller partitions in
proportion to their subtotals, so a multi-seller cart gets the same total
discount as it would as a single order.
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from ordering.domain import ordering
from ordering.pricing.fees import to_money


class DiscountType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


@ordering.value_object
class CouponTerms:
    code = String(required=True, max_length=50)
    discount_type = String(required=True, choices=DiscountType)
    # Percentage (0-100) or a fixed amount
    discount_value = Float(required=True, min_value=0.0)
    minimum_order_amount = Float(min_value=0.0)
    maximum_discount = Float(min_value=0.0)
    valid_from = DateTime()
    valid_until = DateTime()
    usage_limit = Integer(min_value=0)
    used_count = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)
    restricted_to_customer = Identifier()

    @invariant.post
    def percentage_cannot_exceed_hundred(self):
        if self.discount_type == DiscountType.PERCENTAGE.value and self.discount_value > 100:
            raise ValidationError({"discount_value": ["Percentage discount cannot exceed 100"]})


def validate_coupon(terms: CouponTerms, customer_id: str, order_total, now: datetime | None = None) -> None:
    """Raise ValidationError when the coupon cannot be used for this cart."""
    now = now or datetime.now(UTC)

    if not terms.is_active:
        raise ValidationError({"coupon": ["This coupon is not active"]})
    if terms.valid_from and now < terms.valid_from:
        raise ValidationError({"coupon": ["This coupon is not yet valid"]})
    if terms.valid_until and now > terms.valid_until:
        raise ValidationError({"coupon": ["This coupon has expired"]})
    if terms.usage_limit and (terms.used_count or 0) >= terms.usage_limit:
        raise ValidationError({"coupon": ["This coupon has reached its usage limit"]})
    if terms.restricted_to_customer and str(terms.restricted_to_customer) != str(customer_id):
        raise ValidationError({"coupon": ["This coupon is not available for your account"]})
    if terms.minimum_order_amount and to_money(order_total) < to_money(terms.minimum_order_amount):
        raise ValidationError({"coupon": [f"Minimum order amount of {terms.minimum_order_amount:.2f} required"]})


def calculate_discount(terms: CouponTerms, order_total) -> Decimal:
    """Discount for ``order_total``, capped by the coupon maximum and by the total itself."""
    total = to_money(order_total)
    if terms.discount_type == DiscountType.PERCENTAGE.value:
        discount = to_money(total * Decimal(str(terms.discount_value)) / 100)
        if terms.maximum_discount and discount > to_money(terms.maximum_discount):
            discount = to_money(terms.maximum_discount)
    else:
        discount = to_money(terms.discount_value)

    return min(discount, total)


def allocate_discount(discount, subtotals: dict) -> dict:
    """Split ``discount`` across partitions in proportion to their subtotals.

    Rounding residue lands on the last partition so the parts always add up
    to the whole.
    """
    discount = to_money(discount)
    keys = list(subtotals)
    allocation = {key: Decimal("0.00") for key in keys}

    grand = sum((to_money(v) for v in subtotals.values()), Decimal("0"))
    if discount <= 0 or grand <= 0:
        return allocation

    remaining = discount
    for key in keys[:-1]:
        share = to_money(discount * to_money(subtotals[key]) / grand)
        allocation[key] = share
        remaining -= share
    allocation[keys[-1]] = min(remaining, to_money(subtotals[keys[-1]]))
    return allocation
