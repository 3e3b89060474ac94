"""Paystack payment gateway adapter.

Bootstrap checks the secret key against the integration settings endpoint;
the handoff initializes a transaction and hands the shopper the hosted
authorization URL. Paystack reports the result twice: the browser returns
to ``callback_url`` and a signed ``charge.success`` webhook arrives. Both
are routed into ``complete()``; whichever comes second is ignored.
"""

import hashlib
import hmac

import httpx
import structlog

from payments.gateway.port import PaymentGateway, PaymentRequest, PaymentSurface
from shared.errors import GatewayError

logger = structlog.get_logger(__name__)

DEFAULT_BASE_URL = "https://api.paystack.co"
REQUEST_TIMEOUT = 10.0


class PaystackGateway(PaymentGateway):
    """Production Paystack adapter over its REST API."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = DEFAULT_BASE_URL,
        callback_url: str | None = None,
        cancel_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        **lifecycle,
    ) -> None:
        super().__init__(**lifecycle)
        self._secret_key = secret_key
        self.callback_url = callback_url
        self.cancel_url = cancel_url
        self.session_timeout: int | None = None
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=REQUEST_TIMEOUT,
            transport=transport,
        )
        self._authorized = False

    async def _bootstrap(self) -> None:
        if not self._secret_key:
            raise GatewayError("Paystack secret key is not configured")

        response = await self._client.get("/integration/payment_session_timeout")
        body = self._json(response)
        if response.status_code != 200 or not body.get("status"):
            raise GatewayError(body.get("message") or f"Paystack bootstrap failed ({response.status_code})")

        self.session_timeout = (body.get("data") or {}).get("payment_session_timeout")
        self._authorized = True

    def _entry_point(self) -> object | None:
        return self._client if self._authorized else None

    def payment_window_seconds(self) -> float | None:
        """Paystack's own payment session timeout wins when the integration sets one."""
        if self.session_timeout:
            return float(self.session_timeout)
        return super().payment_window_seconds()

    async def _open_surface(self, request: PaymentRequest) -> PaymentSurface:
        metadata = dict(request.metadata)
        if self.cancel_url:
            metadata["cancel_action"] = f"{self.cancel_url}?reference={request.reference}"

        payload = {
            "amount": request.amount_minor_units,
            "currency": request.currency,
            "email": request.payer_email,
            "reference": request.reference,
            "metadata": metadata,
        }
        if self.callback_url:
            payload["callback_url"] = self.callback_url

        try:
            response = await self._client.post("/transaction/initialize", json=payload)
        except httpx.HTTPError as exc:
            logger.error("paystack_initialize_unreachable", reference=request.reference, error=str(exc))
            raise GatewayError() from exc

        body = self._json(response)
        url = (body.get("data") or {}).get("authorization_url")
        if not body.get("status") or not url:
            raise GatewayError(body.get("message"))

        return PaymentSurface(reference=request.reference, url=url)

    def verify_webhook_signature(self, payload: bytes, signature: str) -> bool:
        """Paystack signs the raw body with HMAC-SHA512 of the secret key."""
        expected = hmac.new(self._secret_key.encode(), payload, hashlib.sha512).hexdigest()
        return hmac.compare_digest(expected, signature or "")

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def aclose(self) -> None:
        await self._client.aclose()
