"""Assign numbers to orders that were imported without one."""

import structlog
from protean.utils.globals import current_domain

from ordering.order.order import ActorRole, Order
from ordering.sequence.allocator import SequenceAllocator
from ordering.transaction import Transaction, retry_on_conflict

logger = structlog.get_logger(__name__)


def backfill_order_numbers(allocator: SequenceAllocator | None = None) -> list[tuple[str, str]]:
    """Number every unnumbered order, oldest first.

    Each assignment commits together with its counter increment, so an
    interrupted run can simply be started again. Returns ``(order_id,
    order_number)`` pairs for the orders numbered by this run.
    """
    allocator = allocator or SequenceAllocator()
    pending = current_domain.repository_for(Order).unnumbered()
    logger.info("backfill_started", pending=len(pending))

    assigned = []
    for order_id in [str(order.id) for order in pending]:

        def _assign(order_id=order_id):
            with Transaction() as tx:
                order = tx.load(Order, order_id)
                if order.order_number:
                    return None
                number = allocator.allocate(tx)
                order.assign_order_number(number, performed_by="system", performed_by_role=ActorRole.SYSTEM.value)
                tx.save(order)
                return number

        number = retry_on_conflict(_assign, resource=f"order {order_id}")
        if number:
            assigned.append((order_id, number))
            logger.info("order_number_backfilled", order_id=order_id, order_number=number)

    logger.info("backfill_finished", assigned=len(assigned))
    return assigned
