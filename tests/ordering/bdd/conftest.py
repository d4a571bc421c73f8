"""Shared BDD fixtures and step definitions for the Ordering domain."""

import pytest
from ordering.checkout.placement import OrderPlacementOrchestrator
from ordering.errors import TerminalStateViolation
from ordering.inventory.product import Product
from ordering.order.lifecycle import OrderLifecycle
from ordering.order.order import Order
from ordering.settings import OrderingSettings, set_settings
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then, when

ADDRESS = {
    "street": "12 Market Rd",
    "city": "Pune",
    "state": "MH",
    "zip_code": "411001",
    "country": "IN",
}


def _order_for(result, seller_id):
    order = next(order for order in result.orders if order.seller_id == seller_id)
    return current_domain.repository_for(Order).get(order.id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse(
        "the fee schedule charges {fee:f} delivery below {threshold:f} and a {percent:f}% service fee"
    )
)
def _(fee, threshold, percent):
    set_settings(
        OrderingSettings(
            delivery_fee=fee,
            free_shipping_threshold=threshold,
            service_fee_percent=percent / 100,
            order_number_tag="2024",
            retry_backoff=0.0,
        )
    )


@given(parsers.cfparse('seller "{seller_id}" lists product "{product_id}" with {stock:d} in stock'))
def _(seller_id, product_id, stock):
    current_domain.repository_for(Product).add(
        Product.list_for_sale(product_id=product_id, seller_id=seller_id, name=f"Product {product_id}", stock=stock)
    )


@given("an empty cart", target_fixture="cart")
def _():
    return []


@given(parsers.cfparse('the cart holds {quantity:d} x "{product_id}" from seller "{seller_id}" at {price:f}'))
def _(cart, quantity, product_id, seller_id, price):
    cart.append({"product_id": product_id, "seller_id": seller_id, "unit_price": price, "quantity": quantity})


@given("the customer has checked out", target_fixture="result")
def _(cart):
    return OrderPlacementOrchestrator().place_order("cust-bdd", cart, ADDRESS, "cod")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the customer checks out", target_fixture="result")
def _(cart):
    return OrderPlacementOrchestrator().place_order("cust-bdd", cart, ADDRESS, "cod")


@when(parsers.cfparse('the order for seller "{seller_id}" is cancelled'))
def _(result, seller_id):
    OrderLifecycle().cancel_order(_order_for(result, seller_id).id, "cust-bdd", "customer")


@when(parsers.cfparse('the order for seller "{seller_id}" moves to "{status}"'))
def _(result, seller_id, status):
    OrderLifecycle().change_status(_order_for(result, seller_id).id, status, "vendor-bdd", "vendor")


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the checkout places {count:d} orders"))
def _(result, count):
    assert len(result.orders) == count


@then(
    parsers.cfparse(
        'the order for seller "{seller_id}" has subtotal {subtotal:f}, '
        "delivery fee {delivery:f} and service fee {service:f}"
    )
)
def _(result, seller_id, subtotal, delivery, service):
    pricing = _order_for(result, seller_id).pricing
    assert pricing.subtotal == pytest.approx(subtotal)
    assert pricing.delivery_fee == pytest.approx(delivery)
    assert pricing.service_fee == pytest.approx(service)


@then(parsers.cfparse('the order for seller "{seller_id}" totals {total:f}'))
def _(result, seller_id, total):
    assert _order_for(result, seller_id).pricing.total == pytest.approx(total)


@then(parsers.cfparse('the order for seller "{seller_id}" is "{status}"'))
def _(result, seller_id, status):
    assert _order_for(result, seller_id).status == status


@then(parsers.cfparse('seller "{seller_id}" is reported as failed with "{error_code}"'))
def _(result, seller_id, error_code):
    failure = next(failure for failure in result.failures if failure.seller_id == seller_id)
    assert failure.error_code == error_code


@then(parsers.cfparse('product "{product_id}" has {stock:d} in stock'))
def _(product_id, stock):
    assert current_domain.repository_for(Product).get(product_id).stock == stock


@then(parsers.cfparse('cancelling the order for seller "{seller_id}" is rejected'))
def _(result, seller_id):
    with pytest.raises(TerminalStateViolation):
        OrderLifecycle().cancel_order(_order_for(result, seller_id).id, "cust-bdd", "customer")
