"""Application tests for the checkout, status, delivery-estimate and cancellation commands."""

import json
from datetime import UTC, datetime, timedelta

import pytest
from ordering.checkout.placement import PlacementResult
from ordering.checkout.submission import PlaceOrder
from ordering.errors import TerminalStateViolation
from ordering.order.cancellation import CancelOrder
from ordering.order.order import Order
from ordering.order.status import ChangeOrderStatus, UpdateEstimatedDelivery
from protean import current_domain
from protean.exceptions import ValidationError

ADDRESS = {
    "street": "12 Market Rd",
    "city": "Pune",
    "state": "MH",
    "zip_code": "411001",
    "country": "IN",
}


@pytest.fixture(autouse=True)
def _fees(fee_settings):
    return fee_settings


def _place_order(items, **overrides):
    values = {
        "customer_id": "cust-001",
        "items": json.dumps(items),
        "shipping_address": json.dumps(ADDRESS),
        "payment_method": "cod",
    }
    values.update(overrides)
    return current_domain.process(PlaceOrder(**values), asynchronous=False)


def _item(product_id, seller_id, price=10.0, quantity=2):
    return {"product_id": product_id, "seller_id": seller_id, "unit_price": price, "quantity": quantity}


def _change_status(order_id, status, performed_by="vendor-1", performed_by_role="vendor"):
    return current_domain.process(
        ChangeOrderStatus(
            order_id=order_id,
            status=status,
            performed_by=performed_by,
            performed_by_role=performed_by_role,
        ),
        asynchronous=False,
    )


def _stored(order_id):
    return current_domain.repository_for(Order).get(order_id)


@pytest.fixture()
def order_id(add_product):
    add_product("A", "S1", stock=5)
    return str(_place_order([_item("A", "S1")]).orders[0].id)


class TestPlaceOrderCommand:
    def test_returns_placement_result(self, add_product, stock_of):
        add_product("A", "S1", stock=5)
        add_product("B", "S2", stock=5)

        result = _place_order([_item("A", "S1"), _item("B", "S2", price=30.0)])

        assert isinstance(result, PlacementResult)
        assert result.succeeded
        assert [order.seller_id for order in result.orders] == ["S1", "S2"]
        assert stock_of("A") == 3
        assert stock_of("B") == 3

    def test_persists_priced_order(self, add_product):
        add_product("A", "S1", stock=5)

        result = _place_order([_item("A", "S1")])

        order = _stored(result.orders[0].id)
        assert order.order_number == "ORD-2024-0001"
        assert order.pricing.total == 25.4
        assert order.shipping_address.city == "Pune"

    def test_coupon_travels_as_json(self, add_product):
        add_product("A", "S1", stock=5)

        result = _place_order(
            [_item("A", "S1")],
            coupon=json.dumps({"code": "FLAT5", "discount_type": "fixed", "discount_value": 5.0}),
        )

        order = _stored(result.orders[0].id)
        assert order.coupon_code == "FLAT5"
        assert order.pricing.discount_amount == 5.0
        assert order.pricing.total == 20.4

    def test_pickup_without_address(self, add_product):
        add_product("A", "S1", stock=5)

        result = _place_order([_item("A", "S1")], shipping_address=None, delivery_option="pickup")

        order = _stored(result.orders[0].id)
        assert order.shipping_address is None
        assert order.pricing.delivery_fee == 0.0

    def test_partition_failures_are_reported(self, add_product):
        add_product("A", "S1", stock=5)
        add_product("B", "S2", stock=1)

        result = _place_order([_item("A", "S1"), _item("B", "S2")])

        assert result.is_partial
        assert result.failures[0].error_code == "insufficient_stock"

    def test_invalid_checkout_is_rejected(self, add_product, stock_of):
        add_product("A", "S1", stock=5)

        with pytest.raises(ValidationError) as exc:
            _place_order([_item("A", "S1")], payment_method="card")

        assert "payment_reference" in exc.value.messages
        assert stock_of("A") == 5


class TestChangeOrderStatusCommand:
    def test_advances_order(self, order_id):
        order = _change_status(order_id, "processing")

        assert order.status == "processing"
        assert _stored(order_id).status == "processing"

    def test_terminal_order_is_rejected(self, order_id):
        for status in ("processing", "shipped", "delivered"):
            _change_status(order_id, status)

        with pytest.raises(TerminalStateViolation):
            _change_status(order_id, "cancelled", performed_by="admin-1", performed_by_role="admin")
        assert _stored(order_id).status == "delivered"


class TestUpdateEstimatedDeliveryCommand:
    def test_reschedules(self, order_id):
        new_date = datetime.now(UTC) + timedelta(days=10)

        current_domain.process(
            UpdateEstimatedDelivery(
                order_id=order_id,
                estimated_delivery=new_date,
                performed_by="vendor-1",
                performed_by_role="vendor",
            ),
            asynchronous=False,
        )

        stored = _stored(order_id)
        assert stored.estimated_delivery == new_date
        assert stored.activity_log[-1].action == "estimated_delivery_updated"


class TestCancelOrderCommand:
    def test_cancel_restocks(self, order_id, stock_of):
        order = current_domain.process(
            CancelOrder(order_id=order_id, performed_by="cust-001", performed_by_role="customer", reason="Too slow"),
            asynchronous=False,
        )

        assert order.status == "cancelled"
        assert stock_of("A") == 5
        assert _stored(order_id).activity_log[-1].description == "Order cancelled: Too slow"

    def test_repeat_cancel_restocks_once(self, order_id, stock_of):
        for _ in range(2):
            current_domain.process(
                CancelOrder(order_id=order_id, performed_by="cust-001", performed_by_role="customer"),
                asynchronous=False,
            )

        assert _stored(order_id).status == "cancelled"
        assert stock_of("A") == 5
