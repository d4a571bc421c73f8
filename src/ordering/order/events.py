"""Domain events for the Order aggregate.

These are the facts other subsystems (notifications, dashboards) consume:
one ``OrderPlaced`` per created order, one ``OrderStatusChanged`` per
transition and one ``EstimatedDeliveryUpdated`` per rescheduled delivery.
Events are versioned and immutable, and are written out with the transaction
that produced them.
"""

from protean.fields import DateTime, Float, Identifier, String, Text

from ordering.domain import ordering


@ordering.event(part_of="Order")
class OrderPlaced:
    """A seller partition of a cart was placed as an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line dicts
    subtotal = Float(required=True)
    delivery_fee = Float()
    service_fee = Float()
    discount_amount = Float()
    total = Float(required=True)
    payment_method = String(required=True)
    payment_status = String(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderStatusChanged:
    """The order moved from one status to another."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String()
    customer_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = String()
    changed_at = DateTime(required=True)


@ordering.event(part_of="Order")
class OrderNumberAssigned:
    """A number was assigned to an order that was created without one."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    assigned_at = DateTime(required=True)


@ordering.event(part_of="Order")
class EstimatedDeliveryUpdated:
    """The seller moved the date the order is expected to arrive."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String()
    previous_estimate = DateTime()
    new_estimate = DateTime(required=True)
    updated_by = String()
    updated_at = DateTime(required=True)
