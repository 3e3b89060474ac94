"""Order pricing — delivery fee, tax and grand total for a cart subtotal.

All amounts are full-precision ``Decimal`` values. Rounding to the gateway's
minor currency unit happens only in ``to_minor_units``, at the moment a
payment request is built.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from ordering.checkout.fulfillment import FulfillmentMode

FREE_DELIVERY_THRESHOLD = Decimal("50000")
FLAT_DELIVERY_FEE = Decimal("5000")
TAX_RATE = Decimal("0.075")
MINOR_UNITS_PER_MAJOR = 100


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: Decimal
    delivery_fee: Decimal
    tax: Decimal
    grand_total: Decimal

    def as_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "delivery_fee": str(self.delivery_fee),
            "tax": str(self.tax),
            "grand_total": str(self.grand_total),
        }


def delivery_fee_for(subtotal: Decimal, mode: FulfillmentMode) -> Decimal:
    if mode is FulfillmentMode.PICKUP:
        return Decimal("0")
    if subtotal > FREE_DELIVERY_THRESHOLD:
        return Decimal("0")
    return FLAT_DELIVERY_FEE


def price(subtotal, mode: FulfillmentMode) -> PriceBreakdown:
    if not isinstance(subtotal, Decimal):
        subtotal = Decimal(str(subtotal))
    delivery_fee = delivery_fee_for(subtotal, mode)
    tax = subtotal * TAX_RATE
    return PriceBreakdown(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        tax=tax,
        grand_total=subtotal + delivery_fee + tax,
    )


def to_minor_units(amount: Decimal) -> int:
    """Round a major-unit amount half-up to an integer count of minor units."""
    return int((amount * MINOR_UNITS_PER_MAJOR).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
