"""Domain events for the CheckoutSession aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from ordering.domain import ordering


@ordering.event(part_of="CheckoutSession")
class OrderPlaced:
    """The storefront backend accepted the order."""

    __version__ = 1

    session_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    payment_method = String(max_length=20, required=True)
    fulfillment_mode = String(max_length=20, required=True)
    grand_total = Float(required=True)
    placed_at = DateTime(required=True)


@ordering.event(part_of="CheckoutSession")
class CheckoutSettled:
    """The gateway payment was verified and the cart finalized."""

    __version__ = 1

    session_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    payment_reference = String(max_length=255, required=True)
    settled_at = DateTime(required=True)


@ordering.event(part_of="CheckoutSession")
class TransferRequested:
    """The shopper was handed bank-transfer instructions for the order."""

    __version__ = 1

    session_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    requested_at = DateTime(required=True)


@ordering.event(part_of="CheckoutSession")
class CheckoutCancelled:
    """The shopper closed the payment surface."""

    __version__ = 1

    session_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    order_id = Identifier()
    payment_reference = String(max_length=255)
    cancelled_at = DateTime(required=True)


@ordering.event(part_of="CheckoutSession")
class CheckoutFailed:
    """Checkout stopped with a failure reason."""

    __version__ = 1

    session_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    order_id = Identifier()
    reason = String(max_length=50, required=True)
    message = String(max_length=500)
    failed_at = DateTime(required=True)
