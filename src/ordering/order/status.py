"""Order status and delivery estimate — commands and handler."""

from protean import handle
from protean.fields import DateTime, Identifier, String

from ordering.domain import ordering
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.order import Order


@ordering.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    performed_by = String(required=True, max_length=255)
    performed_by_role = String(required=True, max_length=20)


@ordering.command(part_of="Order")
class UpdateEstimatedDelivery:
    order_id = Identifier(required=True)
    estimated_delivery = DateTime(required=True)
    performed_by = String(required=True, max_length=255)
    performed_by_role = String(required=True, max_length=20)


@ordering.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        return OrderLifecycle().change_status(
            command.order_id,
            command.status,
            command.performed_by,
            command.performed_by_role,
        )

    @handle(UpdateEstimatedDelivery)
    def update_estimated_delivery(self, command):
        return OrderLifecycle().update_estimated_delivery(
            command.order_id,
            command.estimated_delivery,
            command.performed_by,
            command.performed_by_role,
        )
