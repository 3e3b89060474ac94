"""Configurable fake payment gateway for development and testing.

This adapter simulates the gateway's whole lifecycle without any external
calls. It can be configured at runtime to:
- succeed or cancel automatically once the payment surface opens
- hold the bootstrap until ``release()`` is called (to observe ``Loading``)
- fail the bootstrap, or never install its entry point (load timeout)
- fail when opening the payment surface

With no automatic outcome the payment stays pending until ``complete()``
or ``cancel()`` is called, e.g. through /payments/gateway/callback.
"""

import asyncio
from uuid import uuid4

from payments.gateway.port import (
    DEFAULT_LOAD_TIMEOUT,
    DEFAULT_PAYMENT_WINDOW,
    OutcomeStatus,
    PaymentGateway,
    PaymentRequest,
    PaymentSurface,
)
from shared.errors import GatewayError

FAKE_CHECKOUT_URL = "https://checkout.fake.local/pay"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(
        self,
        load_timeout: float = DEFAULT_LOAD_TIMEOUT,
        poll_interval: float = 0.01,
        timer=asyncio.sleep,
        payment_window: float | None = DEFAULT_PAYMENT_WINDOW,
    ):
        super().__init__(
            load_timeout=load_timeout,
            poll_interval=poll_interval,
            timer=timer,
            payment_window=payment_window,
        )
        self.auto_outcome: OutcomeStatus | None = None
        self.fail_bootstrap: bool = False
        self.install_entry_point: bool = True
        self.fail_open: bool = False
        self.hold_bootstrap: bool = False
        self.bootstrap_count: int = 0
        self.calls: list[dict] = []
        self._installed: object | None = None
        self._released = asyncio.Event()

    def configure(
        self,
        auto_outcome: OutcomeStatus | None = None,
        fail_bootstrap: bool = False,
        install_entry_point: bool = True,
        fail_open: bool = False,
        hold_bootstrap: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.auto_outcome = auto_outcome
        self.fail_bootstrap = fail_bootstrap
        self.install_entry_point = install_entry_point
        self.fail_open = fail_open
        self.hold_bootstrap = hold_bootstrap

    def release(self) -> None:
        """Let a held bootstrap finish."""
        self._released.set()

    async def _bootstrap(self) -> None:
        self.bootstrap_count += 1
        self.calls.append({"method": "bootstrap"})

        if self.hold_bootstrap:
            await self._released.wait()
        if self.fail_bootstrap:
            raise GatewayError("Failed to load payment system")
        if self.install_entry_point:
            self._installed = object()

    def _entry_point(self) -> object | None:
        return self._installed

    async def _open_surface(self, request: PaymentRequest) -> PaymentSurface:
        self.calls.append(
            {
                "method": "open",
                "amount_minor_units": request.amount_minor_units,
                "currency": request.currency,
                "reference": request.reference,
                "payer_email": request.payer_email,
                "metadata": dict(request.metadata),
            }
        )

        if self.fail_open:
            raise GatewayError()

        loop = asyncio.get_running_loop()
        if self.auto_outcome is OutcomeStatus.SUCCEEDED:
            loop.call_soon(self.complete, request.reference, f"fake_txn_{uuid4().hex[:12]}")
        elif self.auto_outcome is OutcomeStatus.CANCELLED:
            loop.call_soon(self.cancel, request.reference)

        return PaymentSurface(reference=request.reference, url=f"{FAKE_CHECKOUT_URL}/{request.reference}")

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:  # noqa: ARG002
        return signature == "test-signature"
