"""FastAPI routes for the Ordering domain — checkout and order status."""

import json

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    BreakdownResponse,
    CancelOrderRequest,
    ChangeStatusRequest,
    CheckoutRequest,
    CheckoutResponse,
    EstimatedDeliveryResponse,
    OrderResponse,
    StatusResponse,
    UpdateEstimatedDeliveryRequest,
)
from ordering.checkout.submission import PlaceOrder
from ordering.order.cancellation import CancelOrder
from ordering.order.order import Order
from ordering.order.status import ChangeOrderStatus, UpdateEstimatedDelivery
from ordering.pricing.breakdown import payment_breakdown

order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        customer_id=str(order.customer_id),
        seller_id=str(order.seller_id),
        status=order.status,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        delivery_option=order.delivery_option,
        coupon_code=order.coupon_code,
        items=[{**line.to_dict(), "line_total": line.line_total} for line in order.items],
        pricing={
            "subtotal": order.pricing.subtotal,
            "delivery_fee": order.pricing.delivery_fee,
            "service_fee": order.pricing.service_fee,
            "discount_amount": order.pricing.discount_amount,
            "total": order.pricing.total,
        },
        shipping_address=order.shipping_address.to_dict() if order.shipping_address else None,
        created_at=order.created_at,
        estimated_delivery=order.estimated_delivery,
    )


@order_router.post("/checkout", status_code=201, response_model=CheckoutResponse)
async def checkout(body: CheckoutRequest):
    """Place one order per seller in the cart.

    201 when every partition was placed, 207 when only some were, and 409
    (503 if every failure was contention) when none were.
    """
    command = PlaceOrder(
        customer_id=body.customer_id,
        items=json.dumps([line.model_dump(exclude_none=True) for line in body.items]),
        shipping_address=body.shipping_address.model_dump_json(exclude_none=True) if body.shipping_address else None,
        payment_method=body.payment_method,
        payment_reference=body.payment_reference,
        delivery_option=body.delivery_option,
        coupon=body.coupon.model_dump_json(exclude_none=True) if body.coupon else None,
    )
    result = current_domain.process(command, asynchronous=False)

    response = CheckoutResponse(
        orders=[
            {
                "order_id": str(order.id),
                "order_number": order.order_number,
                "seller_id": str(order.seller_id),
                "status": order.status,
                "total": order.pricing.total,
            }
            for order in result.orders
        ],
        failures=[failure.to_dict() for failure in result.failures],
    )

    if result.succeeded:
        status_code = 201
    elif result.is_partial:
        status_code = 207
    elif all(failure.error_code == "service_unavailable" for failure in result.failures):
        status_code = 503
    else:
        status_code = 409
    return JSONResponse(status_code=status_code, content=response.model_dump(mode="json"))


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return _order_response(order)


@order_router.get("/{order_id}/breakdown", response_model=BreakdownResponse)
async def get_payment_breakdown(order_id: str) -> BreakdownResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return BreakdownResponse(**payment_breakdown(order).to_dict())


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def change_status(order_id: str, body: ChangeStatusRequest) -> StatusResponse:
    command = ChangeOrderStatus(
        order_id=order_id,
        status=body.status,
        performed_by=body.performed_by,
        performed_by_role=body.performed_by_role,
    )
    order = current_domain.process(command, asynchronous=False)
    return StatusResponse(order_id=str(order.id), status=order.status)


@order_router.put("/{order_id}/estimated-delivery", response_model=EstimatedDeliveryResponse)
async def update_estimated_delivery(order_id: str, body: UpdateEstimatedDeliveryRequest) -> EstimatedDeliveryResponse:
    command = UpdateEstimatedDelivery(
        order_id=order_id,
        estimated_delivery=body.estimated_delivery,
        performed_by=body.performed_by,
        performed_by_role=body.performed_by_role,
    )
    order = current_domain.process(command, asynchronous=False)
    return EstimatedDeliveryResponse(order_id=str(order.id), estimated_delivery=order.estimated_delivery)


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    command = CancelOrder(
        order_id=order_id,
        performed_by=body.performed_by,
        performed_by_role=body.performed_by_role,
        reason=body.reason,
    )
    order = current_domain.process(command, asynchronous=False)
    return StatusResponse(order_id=str(order.id), status=order.status)
