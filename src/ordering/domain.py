"""Ordering bounded context — multi-seller order placement and fulfillment.

Splits a customer's cart into one order per seller, numbers each order from a
shared sequence, prices it, reserves stock for it atomically, and drives it
through its status lifecycle (restocking on cancellation).
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging, get_logger

configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
ordering = Domain(name="ordering")
