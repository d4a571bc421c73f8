"""Order aggregate — one seller's share of a customer's checkout.

An order always belongs to exactly one seller; a cart spanning several sellers
produces several orders. Lines, address and money fields are frozen copies
taken at placement, so later catalogue edits never alter an order. After
placement only the status changes (plus the restock marker and the activity
log that go with it), and the seller may move the estimated delivery date
until the order is delivered or cancelled.

State Machine:
    PENDING → PROCESSING → SHIPPED → DELIVERED
    PENDING / PROCESSING / SHIPPED → CANCELLED (restocks the order's lines)
    DELIVERED and CANCELLED are terminal.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    ValueObject,
)

from ordering.domain import ordering
from ordering.errors import InvalidTransition, TerminalStateViolation
from ordering.order.events import (
    EstimatedDeliveryUpdated,
    OrderNumberAssigned,
    OrderPlaced,
    OrderStatusChanged,
)
from ordering.pricing.fees import DeliveryOption, OrderPricing


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class ActorRole(Enum):
    CUSTOMER = "customer"
    VENDOR = "vendor"
    ADMIN = "admin"
    ADMIN_MANAGER = "admin-manager"
    SYSTEM = "system"


class ActivityAction(Enum):
    ORDER_CREATED = "order_created"
    STATUS_CHANGED = "status_changed"
    STOCK_RELEASED = "stock_released"
    ORDER_NUMBER_ASSIGNED = "order_number_assigned"
    ESTIMATED_DELIVERY_UPDATED = "estimated_delivery_updated"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

TERMINAL_STATES = frozenset(status for status, targets in _VALID_TRANSITIONS.items() if not targets)


def _as_utc(value):
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingAddress:
    """Where the order goes, as it was at checkout.

    Later changes to the customer's saved addresses do not affect it.
    """

    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    phone_number = String(max_length=30)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class OrderLine:
    """A frozen copy of a product line as it was bought."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    category = String(max_length=100)
    brand = String(max_length=100)

    @property
    def line_total(self):
        return round(self.unit_price * self.quantity, 2)

    def to_dict(self):
        return {
            "product_id": str(self.product_id),
            "product_name": self.product_name,
            "unit_price": self.unit_price,
            "quantity": self.quantity,
            "category": self.category,
            "brand": self.brand,
        }


@ordering.entity(part_of="Order")
class OrderActivity:
    """One entry of the order's audit trail."""

    action = String(required=True, choices=ActivityAction)
    description = String(required=True, max_length=500)
    performed_by = String(required=True, max_length=255)
    performed_by_role = String(required=True, choices=ActorRole)
    previous_value = String(max_length=100)
    new_value = String(max_length=100)
    occurred_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    order_number = String(max_length=30)
    customer_id = Identifier(required=True)
    seller_id = Identifier(required=True)
    items = HasMany(OrderLine)
    pricing = ValueObject(OrderPricing, required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_method = String(required=True, max_length=50)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=255)
    delivery_option = String(choices=DeliveryOption, default=DeliveryOption.DELIVERY.value)
    shipping_address = ValueObject(ShippingAddress)
    coupon_code = String(max_length=50)
    restocked = Boolean(default=False)
    activity_log = HasMany(OrderActivity)
    created_at = DateTime()
    updated_at = DateTime()
    estimated_delivery = DateTime()

    @invariant.post
    def cancelled_orders_must_be_restocked(self):
        if self.status == OrderStatus.CANCELLED.value and not self.restocked:
            raise ValidationError({"restocked": ["A cancelled order must have its stock released"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        seller_id,
        lines_data,
        pricing,
        payment_method,
        payment_status,
        estimated_delivery,
        shipping_address=None,
        payment_reference=None,
        delivery_option=DeliveryOption.DELIVERY.value,
        coupon_code=None,
        placed_by=None,
        placed_by_role=ActorRole.CUSTOMER.value,
        order_id=None,
    ):
        """Create a pending order for one seller partition.

        Args:
            lines_data: List of dicts with product_id, product_name,
                        unit_price, quantity, category, brand.
            pricing: OrderPricing computed for this partition.
            shipping_address: Dict with street, city, state, zip_code,
                              country and optional phone_number, or None for
                              pickup orders.
            order_id: Identity to use, when stock was already reserved
                      against it.
        """
        now = datetime.now(UTC)
        identity = {"id": order_id} if order_id else {}

        order = cls(
            **identity,
            order_number=order_number,
            customer_id=customer_id,
            seller_id=seller_id,
            items=[OrderLine(**line) for line in lines_data],
            pricing=pricing,
            payment_method=payment_method,
            payment_status=payment_status,
            payment_reference=payment_reference,
            delivery_option=delivery_option,
            shipping_address=ShippingAddress(**shipping_address) if shipping_address else None,
            coupon_code=coupon_code,
            created_at=now,
            updated_at=now,
            estimated_delivery=estimated_delivery,
        )
        order.record_activity(
            ActivityAction.ORDER_CREATED,
            f"Order {order_number} placed",
            performed_by=placed_by or str(customer_id),
            performed_by_role=placed_by_role,
            new_value=OrderStatus.PENDING.value,
            occurred_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id),
                seller_id=str(seller_id),
                items=json.dumps([line.to_dict() for line in order.items]),
                subtotal=pricing.subtotal,
                delivery_fee=pricing.delivery_fee,
                service_fee=pricing.service_fee,
                discount_amount=pricing.discount_amount,
                total=pricing.total,
                payment_method=payment_method,
                payment_status=payment_status,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------
    @property
    def is_terminal(self):
        return OrderStatus(self.status) in TERMINAL_STATES

    def can_transition_to(self, target_status):
        return OrderStatus(target_status) in _VALID_TRANSITIONS[OrderStatus(self.status)]

    def assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        target = OrderStatus(target_status)
        if current in TERMINAL_STATES:
            raise TerminalStateViolation(current.value, target.value)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition(current.value, target.value)

    def transition_to(self, target_status, performed_by, performed_by_role, now=None, description=None):
        """Move to ``target_status``. Cancelling requires the lines to be restocked first."""
        self.assert_can_transition(target_status)
        target = OrderStatus(target_status)
        if target == OrderStatus.CANCELLED and not self.restocked:
            raise ValidationError({"restocked": ["Release the order's stock before cancelling it"]})

        now = now or datetime.now(UTC)
        previous = self.status
        self.status = target.value
        self.updated_at = now

        self.record_activity(
            ActivityAction.STATUS_CHANGED,
            description or f"Order status changed to {target.value}",
            performed_by=performed_by,
            performed_by_role=performed_by_role,
            previous_value=previous,
            new_value=target.value,
            occurred_at=now,
        )
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                seller_id=str(self.seller_id),
                previous_status=previous,
                new_status=target.value,
                changed_by=performed_by,
                changed_at=now,
            )
        )

    def mark_restocked(self, performed_by, performed_by_role, now=None):
        """Record that every line has been returned to stock. Happens at most once."""
        if self.restocked:
            raise ValidationError({"restocked": ["Order stock has already been released"]})

        now = now or datetime.now(UTC)
        self.restocked = True
        self.updated_at = now
        self.record_activity(
            ActivityAction.STOCK_RELEASED,
            f"Released stock for {len(self.items)} line(s)",
            performed_by=performed_by,
            performed_by_role=performed_by_role,
            occurred_at=now,
        )

    # -------------------------------------------------------------------
    # Delivery estimate
    # -------------------------------------------------------------------
    def update_estimated_delivery(self, estimated_delivery, performed_by, performed_by_role, now=None):
        """Move the date the order is expected to arrive.

        Only the seller side (vendor, admin, system) may do this, never on a
        delivered or cancelled order, and never to a date before the order was
        placed.
        """
        if self.is_terminal:
            raise TerminalStateViolation(
                self.status,
                None,
                messages={"estimated_delivery": [f"Order is {self.status}; its delivery date can no longer change"]},
            )
        if performed_by_role == ActorRole.CUSTOMER.value:
            raise ValidationError({"performed_by_role": ["Customers cannot change the estimated delivery date"]})

        estimate = _as_utc(estimated_delivery)
        if self.created_at and estimate < _as_utc(self.created_at):
            raise ValidationError({"estimated_delivery": ["Estimated delivery cannot be before the order was placed"]})

        now = now or datetime.now(UTC)
        previous = self.estimated_delivery
        self.estimated_delivery = estimate
        self.updated_at = now
        self.record_activity(
            ActivityAction.ESTIMATED_DELIVERY_UPDATED,
            f"Estimated delivery moved to {estimate.date().isoformat()}",
            performed_by=performed_by,
            performed_by_role=performed_by_role,
            previous_value=_as_utc(previous).isoformat() if previous else None,
            new_value=estimate.isoformat(),
            occurred_at=now,
        )
        self.raise_(
            EstimatedDeliveryUpdated(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_estimate=previous,
                new_estimate=estimate,
                updated_by=str(performed_by),
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Numbering
    # -------------------------------------------------------------------
    def assign_order_number(self, order_number, performed_by="system", performed_by_role=ActorRole.SYSTEM.value):
        """Give a number to an order that has none. Numbers never change once set."""
        if self.order_number:
            raise ValidationError({"order_number": [f"Order already numbered {self.order_number}"]})

        now = datetime.now(UTC)
        self.order_number = order_number
        self.updated_at = now
        self.record_activity(
            ActivityAction.ORDER_NUMBER_ASSIGNED,
            "Order number assigned",
            performed_by=performed_by,
            performed_by_role=performed_by_role,
            new_value=order_number,
            occurred_at=now,
        )
        self.raise_(
            OrderNumberAssigned(
                order_id=str(self.id),
                order_number=order_number,
                assigned_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Activity log
    # -------------------------------------------------------------------
    def record_activity(
        self,
        action,
        description,
        performed_by,
        performed_by_role,
        previous_value=None,
        new_value=None,
        occurred_at=None,
    ):
        action = action.value if isinstance(action, ActivityAction) else action
        self.add_activity_log(
            OrderActivity(
                action=action,
                description=description,
                performed_by=str(performed_by),
                performed_by_role=performed_by_role,
                previous_value=previous_value,
                new_value=new_value,
                occurred_at=occurred_at or datetime.now(UTC),
            )
        )
