"""CheckoutSession aggregate: the state record of one checkout run.

State Machine:
    IDLE → VALIDATING → RESOLVING_ADDRESS → CREATING_ORDER
    VALIDATING → CREATING_ORDER (pickup)
    CREATING_ORDER → AWAITING_PAYMENT → VERIFYING_PAYMENT → SETTLED
    CREATING_ORDER → TRANSFER_PENDING (bank transfer)
    AWAITING_PAYMENT → CANCELLED_BY_USER
    any non-terminal state → FAILED
    CANCELLED_BY_USER / FAILED (with an order) → TRANSFER_PENDING (retry by transfer)

The session lives in memory next to the orchestrator driving it; it is
never persisted. Terminal transitions raise domain events.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String

from ordering.checkout.events import (
    CheckoutCancelled,
    CheckoutFailed,
    CheckoutSettled,
    OrderPlaced,
    TransferRequested,
)
from ordering.domain import ordering


class CheckoutStatus(Enum):
    IDLE = "Idle"
    VALIDATING = "Validating"
    RESOLVING_ADDRESS = "ResolvingAddress"
    CREATING_ORDER = "CreatingOrder"
    AWAITING_PAYMENT = "AwaitingPayment"
    VERIFYING_PAYMENT = "VerifyingPayment"
    SETTLED = "Settled"
    TRANSFER_PENDING = "TransferPending"
    CANCELLED_BY_USER = "CancelledByUser"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    CheckoutStatus.IDLE: {CheckoutStatus.VALIDATING, CheckoutStatus.FAILED},
    CheckoutStatus.VALIDATING: {
        CheckoutStatus.RESOLVING_ADDRESS,
        CheckoutStatus.CREATING_ORDER,
        CheckoutStatus.FAILED,
    },
    CheckoutStatus.RESOLVING_ADDRESS: {CheckoutStatus.CREATING_ORDER, CheckoutStatus.FAILED},
    CheckoutStatus.CREATING_ORDER: {
        CheckoutStatus.AWAITING_PAYMENT,
        CheckoutStatus.TRANSFER_PENDING,
        CheckoutStatus.FAILED,
    },
    CheckoutStatus.AWAITING_PAYMENT: {
        CheckoutStatus.VERIFYING_PAYMENT,
        CheckoutStatus.CANCELLED_BY_USER,
        CheckoutStatus.FAILED,
    },
    CheckoutStatus.VERIFYING_PAYMENT: {CheckoutStatus.SETTLED, CheckoutStatus.FAILED},
    CheckoutStatus.SETTLED: set(),  # Terminal
    CheckoutStatus.TRANSFER_PENDING: set(),  # Terminal
    CheckoutStatus.CANCELLED_BY_USER: {CheckoutStatus.TRANSFER_PENDING},
    CheckoutStatus.FAILED: {CheckoutStatus.TRANSFER_PENDING},
}

_FINISHED = {
    CheckoutStatus.SETTLED,
    CheckoutStatus.TRANSFER_PENDING,
    CheckoutStatus.CANCELLED_BY_USER,
    CheckoutStatus.FAILED,
}


@ordering.aggregate
class CheckoutSession:
    cart_id = Identifier(required=True)
    status = String(choices=CheckoutStatus, default=CheckoutStatus.IDLE.value)
    fulfillment_mode = String(max_length=20)
    payment_method = String(max_length=20)
    order_id = Identifier()
    payment_reference = String(max_length=255)
    payment_url = String(max_length=1000)
    failure_reason = String(max_length=50)
    message = String(max_length=500)
    redirect_to = String(max_length=500)
    started_at = DateTime()
    finished_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def start(cls, cart_id: str, fulfillment_mode: str, payment_method: str):
        return cls(
            cart_id=cart_id,
            fulfillment_mode=fulfillment_mode,
            payment_method=payment_method,
            started_at=datetime.now(UTC),
        )

    # -------------------------------------------------------------------
    # State transition helper
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> CheckoutStatus:
        return CheckoutStatus(self.status)

    @property
    def is_finished(self) -> bool:
        return self.current_status in _FINISHED

    def _assert_can_transition(self, target_status: CheckoutStatus) -> None:
        current = self.current_status
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _move_to(self, target_status: CheckoutStatus) -> None:
        self._assert_can_transition(target_status)
        self.status = target_status.value
        if target_status in _FINISHED:
            self.finished_at = datetime.now(UTC)

    # -------------------------------------------------------------------
    # Happy path
    # -------------------------------------------------------------------
    def begin_validation(self) -> None:
        self._move_to(CheckoutStatus.VALIDATING)

    def begin_address_resolution(self) -> None:
        self._move_to(CheckoutStatus.RESOLVING_ADDRESS)

    def begin_order_creation(self) -> None:
        self._move_to(CheckoutStatus.CREATING_ORDER)

    def record_order(self, order_id: str, grand_total: float) -> None:
        """Remember the backend's order id. Only valid while creating the order."""
        if self.current_status is not CheckoutStatus.CREATING_ORDER:
            raise ValidationError({"order_id": ["An order can only be recorded while it is being created"]})

        self.order_id = order_id
        self.raise_(
            OrderPlaced(
                session_id=str(self.id),
                cart_id=str(self.cart_id),
                order_id=order_id,
                payment_method=self.payment_method,
                fulfillment_mode=self.fulfillment_mode,
                grand_total=grand_total,
                placed_at=datetime.now(UTC),
            )
        )

    def await_payment(self, reference: str) -> None:
        self._move_to(CheckoutStatus.AWAITING_PAYMENT)
        self.payment_reference = reference

    def payment_surface_opened(self, url: str | None) -> None:
        if self.current_status is CheckoutStatus.AWAITING_PAYMENT:
            self.payment_url = url

    def begin_verification(self) -> None:
        self._move_to(CheckoutStatus.VERIFYING_PAYMENT)

    def settle(self, redirect_to: str, message: str) -> None:
        self._move_to(CheckoutStatus.SETTLED)
        self.message = message
        self.redirect_to = redirect_to
        self.raise_(
            CheckoutSettled(
                session_id=str(self.id),
                cart_id=str(self.cart_id),
                order_id=str(self.order_id),
                payment_reference=self.payment_reference,
                settled_at=self.finished_at,
            )
        )

    # -------------------------------------------------------------------
    # Alternative endings
    # -------------------------------------------------------------------
    def hand_off_to_transfer(self, redirect_to: str, message: str) -> None:
        if not self.order_id:
            raise ValidationError({"order_id": ["A bank transfer needs an existing order"]})

        self._move_to(CheckoutStatus.TRANSFER_PENDING)
        self.payment_method = "transfer"
        self.failure_reason = None
        self.message = message
        self.redirect_to = redirect_to
        self.raise_(
            TransferRequested(
                session_id=str(self.id),
                cart_id=str(self.cart_id),
                order_id=str(self.order_id),
                requested_at=self.finished_at,
            )
        )

    def cancel_by_user(self, message: str) -> None:
        self._move_to(CheckoutStatus.CANCELLED_BY_USER)
        self.message = message
        self.raise_(
            CheckoutCancelled(
                session_id=str(self.id),
                cart_id=str(self.cart_id),
                order_id=self.order_id,
                payment_reference=self.payment_reference,
                cancelled_at=self.finished_at,
            )
        )

    def fail(self, reason: str, message: str, redirect_to: str | None = None) -> None:
        self._move_to(CheckoutStatus.FAILED)
        self.failure_reason = reason
        self.message = message
        self.redirect_to = redirect_to
        self.raise_(
            CheckoutFailed(
                session_id=str(self.id),
                cart_id=str(self.cart_id),
                order_id=self.order_id,
                reason=reason,
                message=message,
                failed_at=self.finished_at,
            )
        )
