"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer) — separate from the
internal Protean aggregates and value objects.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    street: str | None = None
    city: str | None = None
    state: str | None = None
    zip_code: str | None = None
    country: str | None = None
    phone_number: str | None = None


class CartLineSchema(BaseModel):
    product_id: str
    seller_id: str | None = None
    unit_price: float = Field(ge=0)
    quantity: int = Field(ge=1)
    stock_snapshot: int | None = Field(default=None, ge=0)
    product_name: str | None = None


class CouponSchema(BaseModel):
    code: str
    discount_type: str = Field(pattern="^(percentage|fixed)$")
    discount_value: float = Field(ge=0)
    minimum_order_amount: float | None = Field(default=None, ge=0)
    maximum_discount: float | None = Field(default=None, ge=0)
    valid_from: datetime | None = None
    valid_until: datetime | None = None
    usage_limit: int | None = Field(default=None, ge=0)
    used_count: int = Field(default=0, ge=0)
    is_active: bool = True
    restricted_to_customer: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CheckoutRequest(BaseModel):
    customer_id: str
    items: list[CartLineSchema]
    shipping_address: AddressSchema | None = None
    payment_method: str
    payment_reference: str | None = None
    delivery_option: str = "delivery"
    coupon: CouponSchema | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "cust-001",
                    "items": [
                        {
                            "product_id": "prod-001",
                            "seller_id": "seller-001",
                            "unit_price": 10.0,
                            "quantity": 2,
                            "stock_snapshot": 5,
                            "product_name": "Widget",
                        }
                    ],
                    "shipping_address": {
                        "street": "12 Market Rd",
                        "city": "Pune",
                        "state": "MH",
                        "zip_code": "411001",
                        "country": "IN",
                    },
                    "payment_method": "cod",
                }
            ]
        }
    }


class ChangeStatusRequest(BaseModel):
    status: str
    performed_by: str
    performed_by_role: str = "vendor"


class UpdateEstimatedDeliveryRequest(BaseModel):
    estimated_delivery: datetime
    performed_by: str
    performed_by_role: str = "vendor"


class CancelOrderRequest(BaseModel):
    performed_by: str
    performed_by_role: str = "customer"
    reason: str | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class PlacedOrderSchema(BaseModel):
    order_id: str
    order_number: str
    seller_id: str
    status: str
    total: float


class PartitionFailureSchema(BaseModel):
    seller_id: str
    error_code: str
    message: str
    product_id: str | None = None


class CheckoutResponse(BaseModel):
    orders: list[PlacedOrderSchema]
    failures: list[PartitionFailureSchema]


class OrderLineSchema(BaseModel):
    product_id: str
    product_name: str
    unit_price: float
    quantity: int
    line_total: float
    category: str | None = None
    brand: str | None = None


class PricingSchema(BaseModel):
    subtotal: float
    delivery_fee: float
    service_fee: float
    discount_amount: float
    total: float


class OrderResponse(BaseModel):
    order_id: str
    order_number: str | None
    customer_id: str
    seller_id: str
    status: str
    payment_method: str
    payment_status: str
    delivery_option: str
    coupon_code: str | None = None
    items: list[OrderLineSchema]
    pricing: PricingSchema
    shipping_address: AddressSchema | None = None
    created_at: datetime | None = None
    estimated_delivery: datetime | None = None


class BreakdownResponse(BaseModel):
    subtotal: float
    delivery_fee: float
    customer_service_fee: float
    vendor_processing_fee: float
    discount_amount: float
    total_charged_to_customer: float
    vendor_payout_amount: float
    platform_revenue: float


class StatusResponse(BaseModel):
    order_id: str
    status: str


class EstimatedDeliveryResponse(BaseModel):
    order_id: str
    estimated_delivery: datetime
