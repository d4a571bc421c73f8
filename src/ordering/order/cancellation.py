"""Order cancellation — command and handler."""

from protean import handle
from protean.fields import Identifier, String

from ordering.domain import ordering
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.order import Order


@ordering.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    performed_by = String(required=True, max_length=255)
    performed_by_role = String(required=True, max_length=20)
    reason = String(max_length=500)


@ordering.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        return OrderLifecycle().cancel_order(
            command.order_id,
            command.performed_by,
            command.performed_by_role,
            reason=command.reason,
        )
