"""Cross-domain event contracts for Ordering domain events.

These classes define the event shape for consumption by other domains
(e.g., a Notifications domain confirming a placed order, or a Fulfillment
domain stopping work when an order is cancelled). Consumers register them as
external events via domain.register_external_event() with matching __type__
strings so Protean's stream deserialization works correctly:

    "Ordering.OrderPlaced.v1"
    "Ordering.OrderStatusChanged.v1"
    "Ordering.StockReleased.v1"

The source-of-truth events are in src/ordering/order/events.py and
src/ordering/inventory/events.py.
"""

from protean.core.event import BaseEvent
from protean.fields import DateTime, Float, Identifier, Integer, String, Text


class OrderPlaced(BaseEvent):
    """One seller's share of a checkout was placed as an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    items = Text(required=True)  # JSON list of line dicts
    subtotal = Float(required=True)
    delivery_fee = Float()
    service_fee = Float()
    discount_amount = Float()
    total = Float(required=True)
    payment_method = String(required=True)
    payment_status = String(required=True)
    placed_at = DateTime(required=True)


class OrderStatusChanged(BaseEvent):
    """An order moved between statuses; ``new_status`` is ``cancelled`` on cancellation."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String()
    customer_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)


class StockReleased(BaseEvent):
    """Stock held by a cancelled order went back to the product."""

    __version__ = 1

    product_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    previous_stock = Integer(required=True)
    new_stock = Integer(required=True)
    released_at = DateTime(required=True)
