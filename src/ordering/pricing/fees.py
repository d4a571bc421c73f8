"""Fee calculation — delivery fee, service fee and the vendor/platform split.

All functions are pure. Amounts are computed in ``Decimal`` and rounded to
cents half-up; they are handed back as floats because that is how the
aggregates store money.

    customer pays   = subtotal + delivery fee + service fee - discount
    vendor receives = (subtotal - discount) * (1 - vendor processing %)
    platform keeps  = service fee + (subtotal - discount) * vendor processing %
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float

from ordering.domain import ordering
from ordering.settings import get_settings

CENT = Decimal("0.01")


class DeliveryOption(Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


def to_money(value) -> Decimal:
    """Round any numeric value to cents, half-up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


@ordering.value_object
class FeeSchedule:
    """The fee configuration in force when an order is priced."""

    delivery_fee = Float(required=True, min_value=0.0)
    free_shipping_threshold = Float(required=True, min_value=0.0)
    service_fee_percent = Float(required=True, min_value=0.0, max_value=1.0)
    vendor_processing_fee_percent = Float(required=True, min_value=0.0, max_value=1.0)

    @classmethod
    def from_settings(cls, settings=None):
        settings = settings or get_settings()
        return cls(
            delivery_fee=settings.delivery_fee,
            free_shipping_threshold=settings.free_shipping_threshold,
            service_fee_percent=settings.service_fee_percent,
            vendor_processing_fee_percent=settings.vendor_processing_fee_percent,
        )


@ordering.value_object(part_of="Order")
class OrderPricing:
    """Money fields of an order, locked at placement.

    Prices never change after the order is created, even if the catalogue or
    the fee schedule changes later.
    """

    subtotal = Float(default=0.0, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    service_fee = Float(default=0.0, min_value=0.0)
    discount_amount = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    vendor_processing_fee = Float(default=0.0, min_value=0.0)

    @invariant.post
    def total_must_reconcile(self):
        expected = (
            to_money(self.subtotal)
            + to_money(self.delivery_fee)
            + to_money(self.service_fee)
            - to_money(self.discount_amount)
        )
        if to_money(self.total) != expected:
            raise ValidationError(
                {"total": [f"Total {self.total} does not equal subtotal + fees - discount ({expected})"]}
            )

    @invariant.post
    def discount_cannot_exceed_subtotal(self):
        if to_money(self.discount_amount) > to_money(self.subtotal):
            raise ValidationError({"discount_amount": ["Discount cannot exceed the subtotal"]})


def subtotal_of(lines) -> Decimal:
    """Sum of unit price x quantity over cart or order lines."""
    return to_money(sum((Decimal(str(line.unit_price)) * line.quantity for line in lines), Decimal("0")))


def delivery_fee(subtotal, schedule: FeeSchedule, delivery_option: str = DeliveryOption.DELIVERY.value) -> Decimal:
    if delivery_option == DeliveryOption.PICKUP.value:
        return to_money(0)
    if to_money(subtotal) >= to_money(schedule.free_shipping_threshold):
        return to_money(0)
    return to_money(schedule.delivery_fee)


def service_fee(subtotal, schedule: FeeSchedule) -> Decimal:
    return to_money(Decimal(str(subtotal)) * Decimal(str(schedule.service_fee_percent)))


def vendor_processing_fee(subtotal, discount, schedule: FeeSchedule) -> Decimal:
    net = max(to_money(subtotal) - to_money(discount), Decimal("0"))
    return to_money(net * Decimal(str(schedule.vendor_processing_fee_percent)))


def vendor_payout(subtotal, discount, schedule: FeeSchedule) -> Decimal:
    net = max(to_money(subtotal) - to_money(discount), Decimal("0"))
    return net - vendor_processing_fee(subtotal, discount, schedule)


def platform_revenue(subtotal, discount, schedule: FeeSchedule) -> Decimal:
    return service_fee(subtotal, schedule) + vendor_processing_fee(subtotal, discount, schedule)


def price_partition(
    lines,
    schedule: FeeSchedule,
    discount=0,
    delivery_option: str = DeliveryOption.DELIVERY.value,
) -> OrderPricing:
    """Price one seller's partition of a cart."""
    subtotal = subtotal_of(lines)
    discount = min(to_money(discount), subtotal)
    delivery = delivery_fee(subtotal, schedule, delivery_option)
    service = service_fee(subtotal, schedule)
    total = subtotal + delivery + service - discount

    return OrderPricing(
        subtotal=float(subtotal),
        delivery_fee=float(delivery),
        service_fee=float(service),
        discount_amount=float(discount),
        total=float(total),
        vendor_processing_fee=float(vendor_processing_fee(subtotal, discount, schedule)),
    )
