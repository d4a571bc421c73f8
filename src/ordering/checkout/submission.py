"""Checkout submission — command and handler.

The handler hands the cart to ``OrderPlacementOrchestrator`` and returns its
``PlacementResult``; each seller partition still commits in its own
transaction.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text

from ordering.checkout.placement import OrderPlacementOrchestrator
from ordering.domain import ordering
from ordering.order.order import ActorRole, Order
from ordering.pricing.coupons import CouponTerms
from ordering.pricing.fees import DeliveryOption


@ordering.command(part_of="Order")
class PlaceOrder:
    """Check out a customer's cart as one order per seller."""

    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of cart line dicts
    shipping_address = Text()  # JSON: address dict; omitted for pickup
    payment_method = String(required=True, max_length=50)
    payment_reference = String(max_length=255)
    delivery_option = String(max_length=20, default=DeliveryOption.DELIVERY.value)
    coupon = Text()  # JSON: coupon terms
    placed_by_role = String(max_length=20, default=ActorRole.CUSTOMER.value)


def _loads(value):
    if value in (None, ""):
        return None
    return json.loads(value) if isinstance(value, str) else value


@ordering.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        coupon = _loads(command.coupon)
        return OrderPlacementOrchestrator().place_order(
            command.customer_id,
            _loads(command.items) or [],
            _loads(command.shipping_address),
            command.payment_method,
            payment_reference=command.payment_reference,
            delivery_option=command.delivery_option,
            coupon=CouponTerms(**coupon) if coupon else None,
            performed_by_role=command.placed_by_role,
        )
