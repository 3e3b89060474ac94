"""HTTP adapters for the storefront backend REST API.

Every call carries the shopper's bearer credential. A 401 answer
invalidates the session and surfaces ``AuthenticationExpired``; nothing is
retried silently except payment verification, which is idempotent and gets
one more attempt on a transport timeout or connection error. Order creation
is never retried, so a slow backend cannot produce duplicate orders.
"""

import httpx
import structlog

from ordering.backend.port import AddressBookPort, OrderServicePort, VerificationResult
from ordering.backend.session import AuthSession
from ordering.checkout.fulfillment import AddressEntry
from ordering.checkout.order import Order, OrderDraft
from shared.errors import AddressSaveFailed, AuthenticationExpired, OrderCreationFailed

logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT = 10.0
VERIFY_RETRIES = 1


class StorefrontApiClient:
    """Thin async JSON client bound to one shopper session."""

    def __init__(
        self,
        session: AuthSession,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.session = session
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def request(self, method: str, path: str, payload: dict | None = None, retries: int = 0) -> tuple[int, dict]:
        if not self.session.is_authenticated:
            raise AuthenticationExpired()

        attempt = 0
        while True:
            try:
                response = await self._client.request(
                    method,
                    path,
                    json=payload,
                    headers=self.session.auth_headers(),
                )
                break
            except httpx.TransportError as exc:
                if attempt >= retries:
                    raise
                attempt += 1
                logger.warning("storefront_api_retry", method=method, path=path, attempt=attempt, error=str(exc))

        if response.status_code == 401:
            self.session.invalidate()
            raise AuthenticationExpired()

        return response.status_code, self._json(response)

    @staticmethod
    def _json(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def aclose(self) -> None:
        await self._client.aclose()


class HttpOrderService(OrderServicePort):
    def __init__(self, api: StorefrontApiClient) -> None:
        self._api = api

    async def create_order(self, draft: OrderDraft) -> Order:
        try:
            _, body = await self._api.request("POST", "/orders/create", draft.to_payload())
        except httpx.HTTPError as exc:
            logger.error("order_creation_unreachable", error=str(exc))
            raise OrderCreationFailed() from exc

        order_id = (body.get("data") or {}).get("orderId")
        if not body.get("success") or not order_id:
            logger.warning("order_creation_refused", backend_message=body.get("message"))
            raise OrderCreationFailed(body.get("message"))

        return Order.from_draft(str(order_id), draft)

    async def verify_payment(self, reference: str) -> VerificationResult:
        try:
            _, body = await self._api.request(
                "POST",
                "/orders/verify-payment",
                {"reference": reference},
                retries=VERIFY_RETRIES,
            )
        except httpx.HTTPError as exc:
            logger.error("payment_verification_unreachable", reference=reference, error=str(exc))
            return VerificationResult(success=False, message=str(exc))

        if body.get("success"):
            data = body.get("data") or {}
            return VerificationResult(success=True, order_id=data.get("orderId"))
        return VerificationResult(success=False, message=body.get("message"))


class HttpAddressBook(AddressBookPort):
    def __init__(self, api: StorefrontApiClient) -> None:
        self._api = api

    async def create_address(self, entry: AddressEntry) -> str:
        payload = {
            "address_line": entry.line1,
            "city": entry.city,
            "state": entry.region,
            "pincode": entry.postal_code,
            "country": entry.country,
            "mobile": entry.phone,
        }
        try:
            _, body = await self._api.request("POST", "/addresses", payload)
        except httpx.HTTPError as exc:
            logger.error("address_save_unreachable", error=str(exc))
            raise AddressSaveFailed() from exc

        data = body.get("data") or {}
        address_id = data.get("addressId") or data.get("_id")
        if not body.get("success") or not address_id:
            raise AddressSaveFailed(body.get("message"))
        return str(address_id)

    async def set_default_address(self, address_id: str) -> None:
        try:
            status, body = await self._api.request("PATCH", f"/addresses/{address_id}/default")
        except httpx.HTTPError as exc:
            raise AddressSaveFailed("Failed to set default address") from exc

        if status >= 400 or body.get("success") is False:
            raise AddressSaveFailed(body.get("message") or "Failed to set default address")
