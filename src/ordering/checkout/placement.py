"""Checkout — turn a customer's cart into one order per seller.

Every seller partition is placed in a transaction of its own: the order
number, the stock decrements and the order itself commit together or not at
all. Partitions are independent. One seller running out of stock does not
undo the orders already placed for the others; the caller gets a
``PlacementResult`` saying which partitions made it.

Flow for each partition::

    price lines (fees + share of the coupon discount)
      → allocate order number
      → reserve stock (all lines or none)
      → create Order (pending)
      → commit
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import structlog
from protean.exceptions import ValidationError

from ordering.checkout.cart import as_cart_line
from ordering.checkout.partition import partition_cart
from ordering.errors import (
    InsufficientStock,
    OrderingError,
    PartialPlacementFailure,
    PlacementFailed,
    ServiceUnavailable,
)
from ordering.inventory.ledger import InventoryLedger
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.order import ActorRole, Order, PaymentStatus
from ordering.pricing.coupons import allocate_discount, calculate_discount, validate_coupon
from ordering.pricing.fees import DeliveryOption, FeeSchedule, price_partition, subtotal_of, to_money
from ordering.sequence.allocator import SequenceAllocator
from ordering.settings import get_settings
from ordering.transaction import Transaction, retry_on_conflict
from ordering.utils.logging import bind_order_context, clear_order_context

logger = structlog.get_logger(__name__)

ADDRESS_FIELDS = ("street", "city", "state", "zip_code", "country")


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PartitionFailure:
    seller_id: str
    error_code: str
    message: str
    product_id: str | None = None

    @classmethod
    def from_exception(cls, seller_id, exc):
        if isinstance(exc, InsufficientStock):
            return cls(seller_id, "insufficient_stock", _first_message(exc), exc.product_id)
        if isinstance(exc, ServiceUnavailable):
            return cls(seller_id, "service_unavailable", str(exc))
        if isinstance(exc, ValidationError):
            return cls(seller_id, "validation_error", _first_message(exc))
        return cls(seller_id, "placement_failed", str(exc))

    def to_dict(self):
        return {
            "seller_id": self.seller_id,
            "error_code": self.error_code,
            "message": self.message,
            "product_id": self.product_id,
        }


@dataclass(frozen=True)
class PlacementResult:
    orders: tuple = field(default_factory=tuple)
    failures: tuple = field(default_factory=tuple)

    @property
    def succeeded(self) -> bool:
        return not self.failures

    @property
    def is_partial(self) -> bool:
        return bool(self.orders) and bool(self.failures)

    def raise_for_failures(self) -> "PlacementResult":
        """Raise ``PartialPlacementFailure`` if only some partitions were placed,
        ``PlacementFailed`` if none were.
        """
        if self.is_partial:
            raise PartialPlacementFailure(self)
        if self.failures:
            raise PlacementFailed(self)
        return self


def _first_message(exc) -> str:
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        for errors in messages.values():
            if errors:
                return errors[0] if isinstance(errors, list) else str(errors)
    return str(exc)


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------
class OrderPlacementOrchestrator:
    def __init__(self, allocator: SequenceAllocator | None = None, ledger: InventoryLedger | None = None):
        self.allocator = allocator or SequenceAllocator()
        self.ledger = ledger or InventoryLedger()
        self.lifecycle = OrderLifecycle(self.ledger)

    def change_status(self, order_id, new_status, performed_by, performed_by_role):
        return self.lifecycle.change_status(order_id, new_status, performed_by, performed_by_role)

    def cancel_order(self, order_id, performed_by, performed_by_role, reason=None):
        return self.lifecycle.cancel_order(order_id, performed_by, performed_by_role, reason=reason)

    def place_order(
        self,
        customer_id,
        cart_lines,
        address,
        payment_method,
        *,
        payment_reference=None,
        delivery_option=DeliveryOption.DELIVERY.value,
        coupon=None,
        performed_by_role=ActorRole.CUSTOMER.value,
    ) -> PlacementResult:
        """Place one order per seller in the cart.

        Input problems raise ``ValidationError`` before anything is written.
        Problems with a single partition (stock, contention) are reported in
        the returned result instead of raised.
        """
        settings = get_settings()
        bind_order_context(customer_id=str(customer_id))
        try:
            lines = self._validate(
                customer_id, cart_lines, address, payment_method, payment_reference, delivery_option
            )
            payment_method = payment_method.lower()
            partitions = partition_cart(lines)

            discounts = {}
            if coupon is not None:
                cart_subtotal = subtotal_of(lines)
                validate_coupon(coupon, customer_id, cart_subtotal)
                discounts = allocate_discount(
                    calculate_discount(coupon, cart_subtotal),
                    {seller_id: subtotal_of(partition) for seller_id, partition in partitions.items()},
                )

            schedule = FeeSchedule.from_settings(settings)
            placed_at = datetime.now(UTC)
            order_fields = {
                "customer_id": str(customer_id),
                "payment_method": payment_method,
                "payment_status": (
                    PaymentStatus.COMPLETED.value
                    if payment_method in settings.confirmed_payment_methods
                    else PaymentStatus.PENDING.value
                ),
                "payment_reference": payment_reference,
                "delivery_option": delivery_option,
                "shipping_address": (
                    _clean_address(address) if delivery_option == DeliveryOption.DELIVERY.value else None
                ),
                "coupon_code": coupon.code if coupon is not None else None,
                "estimated_delivery": placed_at + timedelta(days=settings.delivery_lead_days),
                "placed_by_role": performed_by_role,
            }

            orders, failures = [], []
            for seller_id, partition in partitions.items():
                pricing = price_partition(
                    partition,
                    schedule,
                    discount=discounts.get(seller_id, to_money(0)),
                    delivery_option=delivery_option,
                )
                try:
                    order = retry_on_conflict(
                        lambda seller_id=seller_id, partition=partition, pricing=pricing: self._place_partition(
                            seller_id, partition, pricing, order_fields
                        ),
                        resource=f"partition for seller {seller_id}",
                    )
                except (ValidationError, OrderingError) as exc:
                    failure = PartitionFailure.from_exception(seller_id, exc)
                    logger.warning(
                        "partition_failed",
                        seller_id=seller_id,
                        error_code=failure.error_code,
                        product_id=failure.product_id,
                        error=failure.message,
                    )
                    failures.append(failure)
                    continue

                orders.append(order)
                logger.info(
                    "order_placed",
                    order_id=str(order.id),
                    order_number=order.order_number,
                    seller_id=seller_id,
                    total=order.pricing.total,
                )

            result = PlacementResult(orders=tuple(orders), failures=tuple(failures))
            logger.info("checkout_completed", placed=len(orders), failed=len(failures))
            return result
        finally:
            clear_order_context()

    def _place_partition(self, seller_id, lines, pricing, order_fields):
        order_id = str(uuid4())
        with Transaction() as tx:
            order_number = self.allocator.allocate(tx)
            products = {str(p.id): p for p in self.ledger.reserve(tx, seller_id, lines, order_id)}

            lines_data = []
            for line in lines:
                product = products[str(line.product_id)]
                lines_data.append(
                    {
                        "product_id": str(line.product_id),
                        "product_name": line.product_name or product.name,
                        "unit_price": line.unit_price,
                        "quantity": line.quantity,
                        "category": product.category,
                        "brand": product.brand,
                    }
                )

            order = Order.place(
                order_number=order_number,
                customer_id=order_fields["customer_id"],
                seller_id=seller_id,
                lines_data=lines_data,
                pricing=pricing,
                payment_method=order_fields["payment_method"],
                payment_status=order_fields["payment_status"],
                estimated_delivery=order_fields["estimated_delivery"],
                shipping_address=order_fields["shipping_address"],
                payment_reference=order_fields["payment_reference"],
                delivery_option=order_fields["delivery_option"],
                coupon_code=order_fields["coupon_code"],
                placed_by_role=order_fields["placed_by_role"],
                order_id=order_id,
            )
            tx.save(order)
        return order

    # -------------------------------------------------------------------
    # Validation
    # -------------------------------------------------------------------
    def _validate(self, customer_id, cart_lines, address, payment_method, payment_reference, delivery_option):
        settings = get_settings()
        errors = {}

        if not customer_id:
            errors["customer_id"] = ["Customer is required"]
        if not cart_lines:
            errors["cart"] = ["Cart is empty"]

        if delivery_option not in {option.value for option in DeliveryOption}:
            errors["delivery_option"] = [f"Unknown delivery option {delivery_option}"]
        elif delivery_option == DeliveryOption.DELIVERY.value:
            cleaned = _clean_address(address)
            missing = [name for name in ADDRESS_FIELDS if not cleaned.get(name)]
            if missing:
                errors["shipping_address"] = [f"Missing {', '.join(missing)}"]

        method = (payment_method or "").lower()
        if method not in settings.supported_payment_methods:
            errors["payment_method"] = [f"Unsupported payment method {payment_method}"]
        elif method in settings.confirmed_payment_methods and not payment_reference:
            errors["payment_reference"] = [f"Payment confirmation is required for {method}"]

        if errors:
            raise ValidationError(errors)

        # Field-level checks (seller present, quantity >= 1, price >= 0)
        return [as_cart_line(line) for line in cart_lines]


def _clean_address(address) -> dict:
    if address is None:
        return {}
    if not isinstance(address, dict):
        address = address.to_dict()
    return {
        name: address.get(name)
        for name in (*ADDRESS_FIELDS, "phone_number")
        if address.get(name) not in (None, "")
    }
