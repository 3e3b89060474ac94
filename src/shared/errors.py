"""Checkout failure taxonomy shared by the ordering and payments contexts.

Every failure carries a stable ``reason`` code (used in checkout state and
API payloads) and a ``message`` that is safe to show to the shopper as-is.
"""

from enum import Enum


class FailureReason(Enum):
    NOT_AUTHENTICATED = "NotAuthenticated"
    CART_EMPTY = "CartEmpty"
    CONTACT_INCOMPLETE = "ContactIncomplete"
    ADDRESS_INCOMPLETE = "AddressIncomplete"
    INVALID_TIME_SLOT = "InvalidTimeSlot"
    ADDRESS_SAVE_FAILED = "AddressSaveFailed"
    ORDER_CREATION_FAILED = "OrderCreationFailed"
    GATEWAY_NOT_READY = "GatewayNotReady"
    GATEWAY_TIMEOUT = "GatewayTimeout"
    GATEWAY_ERROR = "GatewayError"
    VERIFICATION_FAILED = "VerificationFailed"
    AUTHENTICATION_EXPIRED = "AuthenticationExpired"
    UNEXPECTED = "Unexpected"


class CheckoutError(Exception):
    """Base class for every failure the checkout flow reports to the shopper."""

    reason = FailureReason.UNEXPECTED
    default_message = "Checkout failed. Please try again."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------------------------------------------------------------------------
# Caller-correctable input problems (raised before any network call)
# ---------------------------------------------------------------------------
class CheckoutValidationError(CheckoutError):
    def __init__(self, message: str | None = None, reason: FailureReason | None = None) -> None:
        super().__init__(message)
        if reason is not None:
            self.reason = reason


class AddressIncomplete(CheckoutValidationError):
    reason = FailureReason.ADDRESS_INCOMPLETE
    default_message = "Please fill in all required address fields"


class InvalidTimeSlot(CheckoutValidationError):
    reason = FailureReason.INVALID_TIME_SLOT
    default_message = "Please choose a valid pickup time"


# ---------------------------------------------------------------------------
# Backend failures
# ---------------------------------------------------------------------------
class AddressSaveFailed(CheckoutError):
    reason = FailureReason.ADDRESS_SAVE_FAILED
    default_message = "Failed to save address"


class OrderCreationFailed(CheckoutError):
    """The backend refused to create the order.

    ``message`` is the backend's own explanation when it sent one; ``code``
    classifies the known refusals.
    """

    reason = FailureReason.ORDER_CREATION_FAILED
    default_message = "Failed to create order"

    CART_EMPTY = "CartEmpty"
    PRODUCT_UNAVAILABLE = "ProductUnavailable"
    UNKNOWN = "Unknown"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message)
        self.code = self.classify(self.message)

    @classmethod
    def classify(cls, message: str) -> str:
        lowered = message.lower()
        if "cart is empty" in lowered:
            return cls.CART_EMPTY
        if "product not found" in lowered or "unavailable" in lowered:
            return cls.PRODUCT_UNAVAILABLE
        return cls.UNKNOWN


class VerificationFailed(CheckoutError):
    reason = FailureReason.VERIFICATION_FAILED
    default_message = (
        "We could not confirm your payment. If you were charged, please contact support "
        "with your order number instead of paying again."
    )


class AuthenticationExpired(CheckoutError):
    reason = FailureReason.AUTHENTICATION_EXPIRED
    default_message = "Session expired. Please log in again."


# ---------------------------------------------------------------------------
# Payment gateway failures
# ---------------------------------------------------------------------------
class GatewayError(CheckoutError):
    reason = FailureReason.GATEWAY_ERROR
    default_message = "Payment initialization failed"


class GatewayNotReady(GatewayError):
    reason = FailureReason.GATEWAY_NOT_READY
    default_message = "Payment system is still loading. Please try again in a moment."

    def __init__(self, state: str, message: str | None = None) -> None:
        super().__init__(message)
        self.state = state


class GatewayTimeout(GatewayError):
    reason = FailureReason.GATEWAY_TIMEOUT
    default_message = "Payment system loading timeout. Please try bank transfer."


# ---------------------------------------------------------------------------
# Orchestration guard
# ---------------------------------------------------------------------------
class CheckoutInProgress(CheckoutError):
    default_message = "Your order is already being processed"
