"""Order status changes after placement.

A status change, like a rescheduled delivery, is one transaction. Cancelling
also returns the order's lines to stock in that same transaction: the restock
and the ``cancelled`` status commit together, or neither does.
"""

import structlog
from protean.exceptions import ValidationError

from ordering.inventory.ledger import InventoryLedger
from ordering.order.order import Order, OrderStatus
from ordering.transaction import Transaction, retry_on_conflict

logger = structlog.get_logger(__name__)


def _parse_status(value) -> OrderStatus:
    try:
        return OrderStatus(value)
    except ValueError:
        raise ValidationError({"status": [f"Unknown order status {value}"]}) from None


class OrderLifecycle:
    def __init__(self, ledger: InventoryLedger | None = None):
        self.ledger = ledger or InventoryLedger()

    def change_status(self, order_id, new_status, performed_by, performed_by_role):
        """Move an order to ``new_status``.

        Raises ``TerminalStateViolation`` for delivered or cancelled orders and
        ``InvalidTransition`` for any other move the state machine does not
        allow. In both cases nothing is written.
        """
        target = _parse_status(new_status)
        return retry_on_conflict(
            lambda: self._apply(order_id, target, performed_by, performed_by_role),
            resource=f"order {order_id}",
        )

    def cancel_order(self, order_id, performed_by, performed_by_role, reason=None):
        """Cancel an order and restock its lines.

        Safe to repeat: an order that is already cancelled comes back as it is,
        without being restocked a second time.
        """
        return retry_on_conflict(
            lambda: self._apply(
                order_id,
                OrderStatus.CANCELLED,
                performed_by,
                performed_by_role,
                reason=reason,
                already_done_ok=True,
            ),
            resource=f"order {order_id}",
        )

    def update_estimated_delivery(self, order_id, estimated_delivery, performed_by, performed_by_role):
        """Reschedule an order's delivery. Delivered and cancelled orders keep their date."""
        return retry_on_conflict(
            lambda: self._reschedule(order_id, estimated_delivery, performed_by, performed_by_role),
            resource=f"order {order_id}",
        )

    def _reschedule(self, order_id, estimated_delivery, performed_by, performed_by_role):
        with Transaction() as tx:
            order = tx.load(Order, order_id)
            order.update_estimated_delivery(estimated_delivery, performed_by, performed_by_role)
            tx.save(order)

        logger.info(
            "estimated_delivery_updated",
            order_id=str(order_id),
            order_number=order.order_number,
            estimated_delivery=order.estimated_delivery.isoformat(),
            performed_by=str(performed_by),
            performed_by_role=performed_by_role,
        )
        return order

    def _apply(self, order_id, target, performed_by, performed_by_role, reason=None, already_done_ok=False):
        with Transaction() as tx:
            order = tx.load(Order, order_id)
            if already_done_ok and order.status == target.value:
                logger.info("order_status_unchanged", order_id=str(order_id), status=order.status)
                return order

            previous = order.status
            order.assert_can_transition(target.value)
            if target == OrderStatus.CANCELLED:
                self.ledger.release(tx, order, performed_by, performed_by_role)

            order.transition_to(
                target.value,
                performed_by=performed_by,
                performed_by_role=performed_by_role,
                description=f"Order cancelled: {reason}" if reason else None,
            )
            tx.save(order)

        logger.info(
            "order_status_changed",
            order_id=str(order_id),
            order_number=order.order_number,
            previous_status=previous,
            new_status=target.value,
            performed_by=str(performed_by),
            performed_by_role=performed_by_role,
        )
        return order
