"""Three-way money split of an order, derived on demand from its pricing."""

from dataclasses import asdict, dataclass

from ordering.pricing.fees import to_money


@dataclass(frozen=True)
class PaymentBreakdown:
    subtotal: float
    delivery_fee: float
    customer_service_fee: float
    vendor_processing_fee: float
    discount_amount: float
    total_charged_to_customer: float
    vendor_payout_amount: float
    platform_revenue: float

    def to_dict(self) -> dict:
        return asdict(self)


def payment_breakdown(order) -> PaymentBreakdown:
    """What the customer paid, what the seller nets and what the platform keeps.

    Uses the processing fee recorded on the order at placement so that later
    fee-schedule changes never rewrite the economics of an existing order.
    """
    pricing = order.pricing
    subtotal = to_money(pricing.subtotal)
    discount = to_money(pricing.discount_amount)
    service = to_money(pricing.service_fee)
    processing = to_money(pricing.vendor_processing_fee)
    net = max(subtotal - discount, to_money(0))

    return PaymentBreakdown(
        subtotal=float(subtotal),
        delivery_fee=float(to_money(pricing.delivery_fee)),
        customer_service_fee=float(service),
        vendor_processing_fee=float(processing),
        discount_amount=float(discount),
        total_charged_to_customer=float(to_money(pricing.total)),
        vendor_payout_amount=float(net - processing),
        platform_revenue=float(service + processing),
    )
