"""Order snapshots exchanged with the storefront backend.

An ``OrderDraft`` freezes the cart lines and amounts at the moment the
shopper places the order. The backend answers with an order id, and the
resulting ``Order`` is never mutated afterwards: payment events refer to it
by ``order_id`` only.
"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum

from ordering.cart.cart import ShoppingCart, to_decimal
from ordering.checkout.fulfillment import FulfillmentSelection, Pickup
from ordering.checkout.pricing import PriceBreakdown


class PaymentMethod(Enum):
    GATEWAY = "card"
    TRANSFER = "transfer"


@dataclass(frozen=True)
class OrderLine:
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int


@dataclass(frozen=True)
class OrderDraft:
    destination: str  # saved address id, or the pickup sentinel
    fulfillment: FulfillmentSelection
    payment_method: PaymentMethod
    lines: tuple[OrderLine, ...]
    amounts: PriceBreakdown
    notes: str = ""

    @classmethod
    def from_cart(cls, cart: ShoppingCart, destination, fulfillment, payment_method, amounts, notes=""):
        lines = tuple(
            OrderLine(
                product_id=str(line.product_id),
                name=line.name or "",
                unit_price=to_decimal(line.unit_price),
                quantity=line.quantity,
            )
            for line in cart.lines
        )
        return cls(
            destination=destination,
            fulfillment=fulfillment,
            payment_method=payment_method,
            lines=lines,
            amounts=amounts,
            notes=notes or "",
        )

    @property
    def pickup_time(self) -> str | None:
        if isinstance(self.fulfillment, Pickup):
            return self.fulfillment.requested_time
        return None

    def to_payload(self) -> dict:
        """Request body for ``POST /orders/create``."""
        payload = {
            "delivery_address": self.destination,
            "payment_method": self.payment_method.value,
            "notes": self.notes,
            "cartItems": [
                {
                    "productId": line.product_id,
                    "quantity": line.quantity,
                    "name": line.name,
                    "price": float(line.unit_price),
                }
                for line in self.lines
            ],
        }
        if self.pickup_time is not None:
            payload["pickup_time"] = self.pickup_time
        return payload


@dataclass(frozen=True)
class Order:
    order_id: str
    destination: str
    fulfillment: FulfillmentSelection
    payment_method: PaymentMethod
    lines: tuple[OrderLine, ...]
    amounts: PriceBreakdown
    notes: str = ""

    @classmethod
    def from_draft(cls, order_id: str, draft: OrderDraft) -> "Order":
        return cls(
            order_id=order_id,
            destination=draft.destination,
            fulfillment=draft.fulfillment,
            payment_method=draft.payment_method,
            lines=draft.lines,
            amounts=draft.amounts,
            notes=draft.notes,
        )
