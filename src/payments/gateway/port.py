"""Payment gateway port (abstract adapter with a shared lifecycle).

A gateway has to be bootstrapped before it can take payments, the way the
storefront's checkout page loads the gateway's inline script. The adapter
owns that lifecycle explicitly:

    Unloaded → Loading → Ready | LoadFailed

``load()`` starts the bootstrap once; every other caller awaits the same
in-flight task. Readiness (the adapter's entry point being installed)
races a timer, so a gateway that never comes up ends in ``LoadFailed``
with ``GatewayTimeout`` instead of hanging checkout.

Once ready, ``initiate()`` opens the interactive payment surface and waits
for exactly one terminal signal: ``complete()`` (the provider's success
callback) or ``cancel()`` (the shopper closed the surface). Both collapse
into a single awaited ``PaymentOutcome``. A surface left open past the
payment window resolves as cancelled, so an abandoned payment never holds
the checkout forever.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog

from shared.errors import GatewayError, GatewayNotReady, GatewayTimeout

logger = structlog.get_logger(__name__)

DEFAULT_LOAD_TIMEOUT = 5.0
DEFAULT_POLL_INTERVAL = 0.1
DEFAULT_PAYMENT_WINDOW = 1800.0
LOAD_FAILED_MESSAGE = "Failed to load payment system. Please try bank transfer."


class GatewayState(Enum):
    UNLOADED = "Unloaded"
    LOADING = "Loading"
    READY = "Ready"
    LOAD_FAILED = "LoadFailed"


class OutcomeStatus(Enum):
    SUCCEEDED = "Succeeded"
    CANCELLED = "Cancelled"


@dataclass(frozen=True)
class PaymentRequest:
    amount_minor_units: int
    currency: str
    reference: str
    payer_email: str
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class PaymentSurface:
    """Where the shopper completes payment (e.g. a hosted checkout page)."""

    reference: str
    url: str | None = None


@dataclass(frozen=True)
class PaymentOutcome:
    status: OutcomeStatus
    reference: str
    provider_reference: str | None = None

    @property
    def is_cancelled(self) -> bool:
        return self.status is OutcomeStatus.CANCELLED


class PaymentGateway(ABC):
    """Abstract payment gateway with bootstrap and handoff lifecycle."""

    def __init__(
        self,
        load_timeout: float = DEFAULT_LOAD_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        timer: Callable[[float], Awaitable[None]] = asyncio.sleep,
        payment_window: float | None = DEFAULT_PAYMENT_WINDOW,
    ) -> None:
        self.load_timeout = load_timeout
        self.poll_interval = poll_interval
        self.payment_window = payment_window
        self._timer = timer
        self._state = GatewayState.UNLOADED
        self.failure_reason: str | None = None
        self._load_task: asyncio.Future | None = None
        self._pending: dict[str, asyncio.Future] = {}

    # -------------------------------------------------------------------
    # Adapter hooks
    # -------------------------------------------------------------------
    @abstractmethod
    async def _bootstrap(self) -> None:
        """Fetch/initialize whatever the gateway needs before taking payments."""
        ...

    @abstractmethod
    def _entry_point(self) -> object | None:
        """Return the installed handle used to open payments, or None if absent."""
        ...

    @abstractmethod
    async def _open_surface(self, request: PaymentRequest) -> PaymentSurface:
        """Start the provider-side payment and return where the shopper pays."""
        ...

    @abstractmethod
    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Check that a webhook body was signed by the provider."""
        ...

    async def aclose(self) -> None:
        """Release adapter resources (HTTP clients)."""

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    @property
    def state(self) -> GatewayState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is GatewayState.READY

    async def load(self) -> GatewayState:
        """Bootstrap the gateway. Idempotent; concurrent callers share one load."""
        if self._load_task is None:
            self._state = GatewayState.LOADING
            self._load_task = asyncio.ensure_future(self._run_load())
        await asyncio.shield(self._load_task)
        return self._state

    async def _run_load(self) -> None:
        ready = asyncio.ensure_future(self._await_entry_point())
        timeout = asyncio.ensure_future(self._timer(self.load_timeout))
        try:
            done, _ = await asyncio.wait({ready, timeout}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for task in (ready, timeout):
                if not task.done():
                    task.cancel()

        if ready in done and ready.exception() is None:
            self._state = GatewayState.READY
            logger.info("gateway_ready", gateway=type(self).__name__)
        elif ready in done:
            self._state = GatewayState.LOAD_FAILED
            self.failure_reason = str(ready.exception()) or GatewayError.default_message
            logger.error("gateway_load_failed", gateway=type(self).__name__, reason=self.failure_reason)
        else:
            self._state = GatewayState.LOAD_FAILED
            self.failure_reason = GatewayTimeout.reason.value
            logger.error("gateway_load_timeout", gateway=type(self).__name__, timeout=self.load_timeout)

    async def _await_entry_point(self) -> None:
        await self._bootstrap()
        while self._entry_point() is None:
            await asyncio.sleep(self.poll_interval)

    # -------------------------------------------------------------------
    # Payment handoff
    # -------------------------------------------------------------------
    async def initiate(
        self,
        request: PaymentRequest,
        on_open: Callable[[PaymentSurface], None] | None = None,
    ) -> PaymentOutcome:
        """Open the payment surface and wait for success or cancellation."""
        if self._state is not GatewayState.READY:
            if self._state is GatewayState.LOAD_FAILED:
                if self.failure_reason == GatewayTimeout.reason.value:
                    raise GatewayTimeout()
                raise GatewayNotReady(self._state.value, LOAD_FAILED_MESSAGE)
            raise GatewayNotReady(self._state.value)
        if request.reference in self._pending:
            raise GatewayError(f"Payment {request.reference} is already in progress")

        future = asyncio.get_running_loop().create_future()
        self._pending[request.reference] = future
        try:
            surface = await self._open_surface(request)
            logger.info("payment_surface_opened", reference=request.reference, url=surface.url)
            if on_open is not None:
                on_open(surface)
            return await self._await_outcome(request.reference, future)
        finally:
            self._pending.pop(request.reference, None)

    def payment_window_seconds(self) -> float | None:
        """How long an opened surface may wait for a signal. None waits forever."""
        return self.payment_window

    async def _await_outcome(self, reference: str, future: asyncio.Future) -> PaymentOutcome:
        window = self.payment_window_seconds()
        if not window:
            return await future

        expiry = asyncio.ensure_future(self._timer(window))
        try:
            await asyncio.wait({future, expiry}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not expiry.done():
                expiry.cancel()

        if future.done():
            return future.result()

        logger.warning("payment_window_expired", reference=reference, window=window)
        outcome = PaymentOutcome(status=OutcomeStatus.CANCELLED, reference=reference)
        future.set_result(outcome)
        return outcome

    def complete(self, reference: str, provider_reference: str | None = None) -> bool:
        """Deliver the provider's success signal. Returns False if it was ignored."""
        return self._resolve(
            reference,
            PaymentOutcome(
                status=OutcomeStatus.SUCCEEDED,
                reference=reference,
                provider_reference=provider_reference or reference,
            ),
        )

    def cancel(self, reference: str) -> bool:
        """Deliver the shopper-closed-the-surface signal."""
        return self._resolve(reference, PaymentOutcome(status=OutcomeStatus.CANCELLED, reference=reference))

    def _resolve(self, reference: str, outcome: PaymentOutcome) -> bool:
        future = self._pending.get(reference)
        if future is None or future.done():
            logger.warning("payment_signal_ignored", reference=reference, status=outcome.status.value)
            return False
        future.set_result(outcome)
        return True
