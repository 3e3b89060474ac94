"""Checkout Orchestrator — drives one "place order" run end to end.

Flow:
    1. Validate locally (signed in, cart not empty, contact and fulfillment
       fields complete). Nothing touches the network before this passes.
    2. Resolve the destination: an address id for delivery, the pickup
       sentinel for pickup.
    3. Create the order on the storefront backend (exactly once per run).
    4a. Bank transfer: hand the order id to the transfer instructions view.
    4b. Gateway: open the payment surface and wait for success/cancellation.
    5. Verify the payment with the backend. Only then is the cart cleared.

Every step's outcome is recorded on a ``CheckoutSession`` aggregate. Any
``CheckoutError`` ends the run in ``Failed`` with a shopper-facing message;
the cart is only cleared on settlement.
"""

import asyncio
import os
from dataclasses import dataclass, replace
from enum import Enum

import structlog
from protean.exceptions import ValidationError

from ordering.backend.port import OrderServicePort
from ordering.backend.session import LOGIN_REDIRECT, AuthSession
from ordering.cart.cart import ShoppingCart
from ordering.checkout.address import AddressResolver
from ordering.checkout.fulfillment import Delivery, FulfillmentMode, FulfillmentSelection
from ordering.checkout.order import Order, OrderDraft, PaymentMethod
from ordering.checkout.pricing import PriceBreakdown, price, to_minor_units
from ordering.checkout.session import CheckoutSession, CheckoutStatus
from ordering.checkout.transfer import BankAccount, TransferInstructions
from payments.gateway.port import PaymentGateway, PaymentRequest, PaymentSurface
from shared.errors import (
    AuthenticationExpired,
    CheckoutError,
    CheckoutInProgress,
    CheckoutValidationError,
    FailureReason,
    GatewayError,
    VerificationFailed,
)

logger = structlog.get_logger(__name__)

DEFAULT_CURRENCY = "NGN"
SUCCESS_REDIRECT = "/checkout/success?order="
TRANSFER_REDIRECT = "/checkout/transfer?order="

SETTLED_MESSAGE = "Payment successful!"
CANCELLED_MESSAGE = "Payment cancelled"
TRANSFER_MESSAGE = "Order placed. Please complete your bank transfer."

# Failures after which the existing order may still be paid by bank transfer.
# A failed verification is excluded: the shopper may already have been charged.
_TRANSFER_RETRY_REASONS = {
    FailureReason.GATEWAY_NOT_READY.value,
    FailureReason.GATEWAY_TIMEOUT.value,
    FailureReason.GATEWAY_ERROR.value,
}


@dataclass(frozen=True)
class Contact:
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""

    REQUIRED_FIELDS = ("first_name", "email", "phone")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def missing_fields(self) -> list[str]:
        return [name for name in self.REQUIRED_FIELDS if not (getattr(self, name) or "").strip()]


@dataclass(frozen=True)
class CheckoutRequest:
    contact: Contact
    fulfillment: FulfillmentSelection
    payment_method: PaymentMethod = PaymentMethod.GATEWAY
    notes: str = ""


class AttemptStatus(Enum):
    PENDING = "Pending"
    SUCCEEDED = "Succeeded"
    CANCELLED = "Cancelled"
    FAILED = "Failed"


@dataclass
class PaymentAttempt:
    """The gateway attempt of the current run. Never persisted."""

    order_id: str
    reference: str
    status: AttemptStatus = AttemptStatus.PENDING


class CheckoutOrchestrator:
    """Runs checkout for one cart. At most one run is in flight at a time."""

    def __init__(
        self,
        cart: ShoppingCart,
        orders: OrderServicePort,
        resolver: AddressResolver,
        gateway: PaymentGateway,
        auth: AuthSession,
        cart_repository=None,
        currency: str | None = None,
        bank_account: BankAccount | None = None,
    ) -> None:
        self.cart = cart
        self._orders = orders
        self._resolver = resolver
        self._gateway = gateway
        self._auth = auth
        self._cart_repository = cart_repository
        self.currency = currency or os.environ.get("PAYMENT_CURRENCY", DEFAULT_CURRENCY)
        self._bank_account = bank_account

        self.checkout: CheckoutSession | None = None
        self.order: Order | None = None
        self.attempt: PaymentAttempt | None = None
        self.transfer: TransferInstructions | None = None
        self.saved_address_id: str | None = None
        self._running = False
        self._task: asyncio.Task | None = None
        self._actionable = asyncio.Event()

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def in_flight(self) -> bool:
        return self._running

    def quote(self, mode: FulfillmentMode) -> PriceBreakdown:
        """Price the cart as it stands now."""
        return price(self.cart.subtotal(), mode)

    # -------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------
    async def place_order(self, request: CheckoutRequest) -> CheckoutSession:
        """Run checkout to its end and return the session record."""
        self._claim(request)
        await self._run(request)
        return self.checkout

    def start(self, request: CheckoutRequest) -> asyncio.Task:
        """Run checkout in the background. Use ``until_actionable()`` to follow it."""
        self._claim(request)
        self._task = asyncio.ensure_future(self._run(request))
        return self._task

    async def until_actionable(self) -> CheckoutSession:
        """Wait until the run finishes or the shopper has a payment surface to act on."""
        await self._actionable.wait()
        return self.checkout

    async def wait(self) -> CheckoutSession:
        if self._task is not None:
            await asyncio.shield(self._task)
        return self.checkout

    def retry_with_transfer(self) -> TransferInstructions:
        """Pay the already-created order by bank transfer instead of the gateway."""
        if self._running:
            raise CheckoutInProgress()

        session = self.checkout
        if session is None or self.order is None:
            raise ValidationError({"order_id": ["There is no order to pay by transfer"]})
        if session.current_status is CheckoutStatus.FAILED and session.failure_reason not in _TRANSFER_RETRY_REASONS:
            raise ValidationError({"status": [f"Cannot switch to bank transfer after {session.failure_reason}"]})

        self._hand_off_to_transfer()
        return self.transfer

    # -------------------------------------------------------------------
    # The run
    # -------------------------------------------------------------------
    def _claim(self, request: CheckoutRequest) -> None:
        if self._running:
            logger.warning("checkout_already_in_progress", cart_id=str(self.cart.id))
            raise CheckoutInProgress()

        self._running = True
        self._actionable = asyncio.Event()
        self.order = None
        self.attempt = None
        self.transfer = None
        self.saved_address_id = None
        self.checkout = CheckoutSession.start(
            cart_id=str(self.cart.id),
            fulfillment_mode=request.fulfillment.mode.value,
            payment_method=request.payment_method.value,
        )

    async def _run(self, request: CheckoutRequest) -> None:
        session = self.checkout
        log = logger.bind(cart_id=str(self.cart.id), checkout_id=str(session.id))
        log.info("checkout_started", payment_method=request.payment_method.value)

        try:
            session.begin_validation()
            self._validate(request)

            if isinstance(request.fulfillment, Delivery):
                session.begin_address_resolution()
            destination = await self._resolver.resolve(self._fulfillment_with_phone(request))

            session.begin_order_creation()
            self.order = await self._create_order(request, destination)
            log = log.bind(order_id=self.order.order_id)
            log.info("order_created", grand_total=str(self.order.amounts.grand_total))

            if request.payment_method is PaymentMethod.TRANSFER:
                self._hand_off_to_transfer()
                return

            await self._collect_payment(request)
        except CheckoutError as exc:
            self._fail(exc)
            log.warning("checkout_failed", reason=exc.reason.value, error=exc.message)
        except Exception:
            log.exception("checkout_crashed", status=session.status)
            if not session.is_finished:
                session.fail(FailureReason.UNEXPECTED.value, CheckoutError.default_message)
            raise
        finally:
            self._running = False
            self._actionable.set()
            log.info("checkout_finished", status=session.status)

    def _validate(self, request: CheckoutRequest) -> None:
        if not self._auth.is_authenticated:
            raise CheckoutValidationError("Please log in to place your order", FailureReason.NOT_AUTHENTICATED)
        if self.cart.is_empty:
            raise CheckoutValidationError("Your cart is empty", FailureReason.CART_EMPTY)

        missing = request.contact.missing_fields()
        if missing:
            raise CheckoutValidationError(
                f"Please fill in all required contact fields: {', '.join(missing)}",
                FailureReason.CONTACT_INCOMPLETE,
            )

        self._resolver.validate(request.fulfillment)

    @staticmethod
    def _fulfillment_with_phone(request: CheckoutRequest) -> FulfillmentSelection:
        """A delivery address without its own phone takes the contact phone."""
        fulfillment = request.fulfillment
        if isinstance(fulfillment, Delivery) and not (fulfillment.address.phone or "").strip():
            return Delivery(address=replace(fulfillment.address, phone=request.contact.phone))
        return fulfillment

    async def _create_order(self, request: CheckoutRequest, destination: str) -> Order:
        amounts = price(self.cart.subtotal(), request.fulfillment.mode)
        draft = OrderDraft.from_cart(
            self.cart,
            destination=destination,
            fulfillment=request.fulfillment,
            payment_method=request.payment_method,
            amounts=amounts,
            notes=request.notes,
        )
        order = await self._orders.create_order(draft)
        self.checkout.record_order(order.order_id, float(amounts.grand_total))
        return order

    async def _collect_payment(self, request: CheckoutRequest) -> None:
        session = self.checkout
        order = self.order
        self.attempt = PaymentAttempt(order_id=order.order_id, reference=order.order_id)
        session.await_payment(self.attempt.reference)

        payment_request = PaymentRequest(
            amount_minor_units=to_minor_units(order.amounts.grand_total),
            currency=self.currency,
            reference=self.attempt.reference,
            payer_email=request.contact.email,
            metadata={
                "customer_name": request.contact.full_name,
                "customer_phone": request.contact.phone,
                "order_type": request.fulfillment.mode.value,
                "order_id": order.order_id,
            },
        )

        try:
            outcome = await self._gateway.initiate(payment_request, on_open=self._on_surface_open)
        except GatewayError:
            self.attempt.status = AttemptStatus.FAILED
            raise

        if outcome.is_cancelled:
            self.attempt.status = AttemptStatus.CANCELLED
            session.cancel_by_user(CANCELLED_MESSAGE)
            logger.info("payment_cancelled", order_id=order.order_id)
            return

        self.attempt.status = AttemptStatus.SUCCEEDED
        session.begin_verification()
        failed_message = f"{VerificationFailed.default_message} Order number: {order.order_id}"
        try:
            result = await self._orders.verify_payment(outcome.provider_reference or outcome.reference)
        except CheckoutError as exc:
            # Payment was already taken, so any backend error here is a verification failure.
            logger.error(
                "payment_verification_failed",
                order_id=order.order_id,
                reference=outcome.reference,
                reason=exc.reason.value,
                backend_message=exc.message,
            )
            raise VerificationFailed(failed_message) from exc
        if not result.success:
            logger.error(
                "payment_verification_failed",
                order_id=order.order_id,
                reference=outcome.reference,
                backend_message=result.message,
            )
            raise VerificationFailed(failed_message)

        self._finalize_cart()
        session.settle(f"{SUCCESS_REDIRECT}{order.order_id}", SETTLED_MESSAGE)

    def _on_surface_open(self, surface: PaymentSurface) -> None:
        self.checkout.payment_surface_opened(surface.url)
        self._actionable.set()

    def _finalize_cart(self) -> None:
        if self._cart_repository is None:
            self.cart.clear()
            return

        cart = self._cart_repository.get(self.cart.id)
        cart.clear()
        self._cart_repository.add(cart)
        self.cart = cart

    def _hand_off_to_transfer(self) -> None:
        instructions = TransferInstructions.for_order(self.order, self._bank_account)
        self.checkout.hand_off_to_transfer(f"{TRANSFER_REDIRECT}{self.order.order_id}", TRANSFER_MESSAGE)
        self.transfer = instructions
        logger.info("transfer_requested", order_id=self.order.order_id)

    def _fail(self, exc: CheckoutError) -> None:
        if self.attempt is not None and self.attempt.status is AttemptStatus.PENDING:
            self.attempt.status = AttemptStatus.FAILED

        redirect_to = self._auth.redirect_to
        if isinstance(exc, AuthenticationExpired) or exc.reason is FailureReason.NOT_AUTHENTICATED:
            redirect_to = LOGIN_REDIRECT
        self.checkout.fail(exc.reason.value, exc.message, redirect_to)
