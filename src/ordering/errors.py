"""Error taxonomy for order placement and fulfillment.

Rule violations are Protean ``ValidationError`` subclasses carrying a
``messages`` dict keyed by the offending field, so callers can treat them the
same way as any other domain validation failure. Concurrency outcomes are
plain exceptions: ``AllocationConflict`` is transient and retried by the
component that owns the contended resource, ``ServiceUnavailable`` is what the
caller sees once those retries are exhausted.
"""

from protean.exceptions import ValidationError

__all__ = [
    "AllocationConflict",
    "InsufficientStock",
    "InvalidTransition",
    "OrderingError",
    "PartialPlacementFailure",
    "PlacementFailed",
    "ServiceUnavailable",
    "TerminalStateViolation",
    "ValidationError",
]


class InvalidTransition(ValidationError):
    """The requested status is not reachable from the order's current status."""

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__({"status": [f"Cannot transition from {current} to {target}"]})


class TerminalStateViolation(InvalidTransition):
    """The order is delivered or cancelled; no further transitions exist."""

    def __init__(self, current: str, target: str | None, messages: dict | None = None):
        super().__init__(current, target)
        self.messages = messages or {"status": [f"Order is {current}, a terminal state; cannot move to {target}"]}


class InsufficientStock(ValidationError):
    def __init__(self, product_id: str, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            {"stock": [f"Insufficient stock for product {product_id}: {available} available, {requested} requested"]}
        )


class OrderingError(Exception):
    """Base class for non-validation failures raised by the ordering core."""


class AllocationConflict(OrderingError):
    """Transient contention on a shared counter (order sequence or product stock)."""


class ServiceUnavailable(OrderingError):
    """A contended resource stayed unavailable after the bounded retries."""


class PartialPlacementFailure(OrderingError):
    """Some, but not all, seller partitions of a cart were placed."""

    def __init__(self, result):
        self.result = result
        failed = ", ".join(f.seller_id for f in result.failures)
        super().__init__(f"{len(result.orders)} order(s) placed; partitions for seller(s) {failed} failed")


class PlacementFailed(OrderingError):
    """No seller partition of the cart was placed."""

    def __init__(self, result):
        self.result = result
        failed = ", ".join(f.seller_id for f in result.failures)
        super().__init__(f"No order placed; partitions for seller(s) {failed} failed")
