"""Tests for delivery fee, tax and grand total computation."""

from decimal import Decimal

from ordering.checkout.fulfillment import FulfillmentMode
from ordering.checkout.pricing import (
    FLAT_DELIVERY_FEE,
    FREE_DELIVERY_THRESHOLD,
    PriceBreakdown,
    delivery_fee_for,
    price,
    to_minor_units,
)


class TestDeliveryFee:
    def test_pickup_is_free(self):
        assert delivery_fee_for(Decimal("100"), FulfillmentMode.PICKUP) == 0

    def test_delivery_below_threshold_pays_flat_fee(self):
        assert delivery_fee_for(Decimal("10000"), FulfillmentMode.DELIVERY) == FLAT_DELIVERY_FEE

    def test_delivery_at_threshold_still_pays(self):
        assert delivery_fee_for(FREE_DELIVERY_THRESHOLD, FulfillmentMode.DELIVERY) == FLAT_DELIVERY_FEE

    def test_delivery_above_threshold_is_free(self):
        assert delivery_fee_for(Decimal("50000.01"), FulfillmentMode.DELIVERY) == 0


class TestPrice:
    def test_pickup_breakdown(self):
        amounts = price(Decimal("10000"), FulfillmentMode.PICKUP)
        assert amounts == PriceBreakdown(
            subtotal=Decimal("10000"),
            delivery_fee=Decimal("0"),
            tax=Decimal("750"),
            grand_total=Decimal("10750"),
        )

    def test_delivery_breakdown_below_threshold(self):
        amounts = price(Decimal("10000"), FulfillmentMode.DELIVERY)
        assert amounts.delivery_fee == Decimal("5000")
        assert amounts.tax == Decimal("750")
        assert amounts.grand_total == Decimal("15750")

    def test_delivery_breakdown_above_threshold(self):
        amounts = price(Decimal("60000"), FulfillmentMode.DELIVERY)
        assert amounts.delivery_fee == 0
        assert amounts.grand_total == Decimal("64500")

    def test_accepts_plain_numbers(self):
        amounts = price(1000, FulfillmentMode.PICKUP)
        assert amounts.subtotal == Decimal("1000")
        assert amounts.grand_total == Decimal("1075")

    def test_keeps_full_precision(self):
        amounts = price(Decimal("333.33"), FulfillmentMode.PICKUP)
        assert amounts.tax == Decimal("24.99975")
        assert amounts.grand_total == Decimal("358.32975")

    def test_as_dict_serializes_strings(self):
        amounts = price(Decimal("10000"), FulfillmentMode.PICKUP)
        assert amounts.as_dict() == {
            "subtotal": "10000",
            "delivery_fee": "0",
            "tax": "750.000",
            "grand_total": "10750.000",
        }


class TestMinorUnits:
    def test_whole_amount(self):
        assert to_minor_units(Decimal("10750")) == 1075000

    def test_rounds_half_up(self):
        assert to_minor_units(Decimal("358.32975")) == 35833
        assert to_minor_units(Decimal("0.005")) == 1

    def test_rounds_down_below_half(self):
        assert to_minor_units(Decimal("0.004")) == 0
