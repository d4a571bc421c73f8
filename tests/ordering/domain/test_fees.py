"""Domain tests for fee calculation and partition pricing."""

from decimal import Decimal

import pytest
from ordering.checkout.cart import CartLine
from ordering.pricing.fees import (
    FeeSchedule,
    OrderPricing,
    delivery_fee,
    platform_revenue,
    price_partition,
    service_fee,
    vendor_payout,
    vendor_processing_fee,
)
from protean.exceptions import ValidationError


@pytest.fixture()
def schedule():
    return FeeSchedule(
        delivery_fee=5.0,
        free_shipping_threshold=50.0,
        service_fee_percent=0.02,
        vendor_processing_fee_percent=0.10,
    )


def _line(price, quantity, product_id="A", seller_id="S1"):
    return CartLine(product_id=product_id, seller_id=seller_id, unit_price=price, quantity=quantity)


class TestDeliveryFee:
    @pytest.mark.parametrize("subtotal", [0, 0.01, 20, 49.99])
    def test_flat_fee_below_threshold(self, schedule, subtotal):
        assert delivery_fee(subtotal, schedule) == Decimal("5.00")

    @pytest.mark.parametrize("subtotal", [50, 50.01, 60, 10_000])
    def test_free_at_or_above_threshold(self, schedule, subtotal):
        assert delivery_fee(subtotal, schedule) == Decimal("0.00")

    def test_pickup_never_pays_delivery(self, schedule):
        assert delivery_fee(10, schedule, delivery_option="pickup") == Decimal("0.00")


class TestServiceFee:
    def test_two_percent_of_subtotal(self, schedule):
        assert service_fee(20, schedule) == Decimal("0.40")

    def test_rounds_half_up_to_cents(self, schedule):
        # 0.25 * 2% = 0.005
        assert service_fee(0.25, schedule) == Decimal("0.01")

    def test_zero_subtotal(self, schedule):
        assert service_fee(0, schedule) == Decimal("0.00")


class TestVendorSplit:
    def test_processing_fee_is_charged_on_discounted_subtotal(self, schedule):
        assert vendor_processing_fee(100, 10, schedule) == Decimal("9.00")

    def test_vendor_payout(self, schedule):
        assert vendor_payout(100, 10, schedule) == Decimal("81.00")

    def test_platform_revenue_is_service_plus_processing(self, schedule):
        assert platform_revenue(100, 10, schedule) == Decimal("11.00")


class TestPricePartition:
    def test_single_seller_worked_example(self, schedule):
        pricing = price_partition([_line(10.0, 2)], schedule)

        assert pricing.subtotal == 20.0
        assert pricing.delivery_fee == 5.0
        assert pricing.service_fee == 0.4
        assert pricing.discount_amount == 0.0
        assert pricing.total == 25.4

    def test_free_shipping_at_sixty(self, schedule):
        pricing = price_partition([_line(30.0, 2)], schedule)

        assert pricing.subtotal == 60.0
        assert pricing.delivery_fee == 0.0
        assert pricing.service_fee == 1.2
        assert pricing.total == 61.2

    def test_discount_reduces_total(self, schedule):
        pricing = price_partition([_line(10.0, 2)], schedule, discount=Decimal("4.00"))

        assert pricing.discount_amount == 4.0
        assert pricing.total == 21.4
        assert pricing.vendor_processing_fee == 1.6

    def test_discount_is_capped_at_subtotal(self, schedule):
        pricing = price_partition([_line(10.0, 1)], schedule, discount=25)

        assert pricing.discount_amount == 10.0
        assert pricing.total == 5.2

    def test_multiple_lines_are_summed(self, schedule):
        pricing = price_partition([_line(9.99, 3), _line(0.5, 1, product_id="B")], schedule)

        assert pricing.subtotal == 30.47
        assert pricing.service_fee == 0.61
        assert pricing.total == 36.08

    @pytest.mark.parametrize(
        "price,quantity",
        [(0.01, 1), (3.33, 3), (19.99, 2), (49.99, 1), (125.5, 4)],
    )
    def test_total_always_reconciles(self, schedule, price, quantity):
        pricing = price_partition([_line(price, quantity)], schedule)

        reconstructed = (
            Decimal(str(pricing.subtotal))
            + Decimal(str(pricing.delivery_fee))
            + Decimal(str(pricing.service_fee))
            - Decimal(str(pricing.discount_amount))
        )
        assert Decimal(str(pricing.total)) == reconstructed


class TestOrderPricingInvariants:
    def test_mismatched_total_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            OrderPricing(subtotal=20.0, delivery_fee=5.0, service_fee=0.4, discount_amount=0.0, total=30.0)
        assert "total" in exc.value.messages

    def test_discount_above_subtotal_is_rejected(self):
        with pytest.raises(ValidationError) as exc:
            OrderPricing(subtotal=10.0, delivery_fee=5.0, service_fee=0.2, discount_amount=20.0, total=0.0)
        assert "discount_amount" in exc.value.messages

    def test_negative_amounts_are_rejected(self):
        with pytest.raises(ValidationError):
            OrderPricing(subtotal=-1.0, delivery_fee=0.0, service_fee=0.0, discount_amount=0.0, total=-1.0)


class TestFeeSchedule:
    def test_from_settings_uses_defaults(self):
        schedule = FeeSchedule.from_settings()

        assert schedule.delivery_fee == 30.0
        assert schedule.free_shipping_threshold == 1000.0
        assert schedule.service_fee_percent == 0.02
        assert schedule.vendor_processing_fee_percent == 0.10

    def test_percentages_must_be_fractions(self):
        with pytest.raises(ValidationError):
            FeeSchedule(
                delivery_fee=5.0,
                free_shipping_threshold=50.0,
                service_fee_percent=2.0,
                vendor_processing_fee_percent=0.1,
            )
