"""Configurable in-memory storefront backend for development and testing.

Mirrors the backend's answers without any network traffic and records
every call, so tests can assert both outcomes and call counts.
"""

from uuid import uuid4

from ordering.backend.port import AddressBookPort, OrderServicePort, VerificationResult
from ordering.checkout.fulfillment import AddressEntry
from ordering.checkout.order import Order, OrderDraft
from shared.errors import AddressSaveFailed, OrderCreationFailed


class FakeOrderService(OrderServicePort):
    """Fake order service that accepts every order by default."""

    def __init__(self) -> None:
        self.create_succeeds: bool = True
        self.failure_message: str | None = "Failed to create order"
        self.verify_succeeds: bool = True
        self.calls: list[dict] = []
        self.orders: dict[str, Order] = {}

    def configure(
        self,
        create_succeeds: bool = True,
        failure_message: str | None = "Failed to create order",
        verify_succeeds: bool = True,
    ) -> None:
        """Configure backend behavior at runtime."""
        self.create_succeeds = create_succeeds
        self.failure_message = failure_message
        self.verify_succeeds = verify_succeeds

    def calls_to(self, method: str) -> list[dict]:
        return [call for call in self.calls if call["method"] == method]

    async def create_order(self, draft: OrderDraft) -> Order:
        self.calls.append({"method": "create_order", "payload": draft.to_payload()})

        if not self.create_succeeds:
            raise OrderCreationFailed(self.failure_message)

        order = Order.from_draft(f"fake_ord_{uuid4().hex[:12]}", draft)
        self.orders[order.order_id] = order
        return order

    async def verify_payment(self, reference: str) -> VerificationResult:
        self.calls.append({"method": "verify_payment", "reference": reference})

        if self.verify_succeeds:
            return VerificationResult(success=True, order_id=reference)
        return VerificationResult(success=False, message="Payment verification failed")


class FakeAddressBook(AddressBookPort):
    """Fake address book keeping saved addresses in a dict."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.default_succeeds: bool = True
        self.addresses: dict[str, AddressEntry] = {}
        self.default_address_id: str | None = None
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool = True, default_succeeds: bool = True) -> None:
        self.should_succeed = should_succeed
        self.default_succeeds = default_succeeds

    async def create_address(self, entry: AddressEntry) -> str:
        self.calls.append({"method": "create_address", "city": entry.city})

        if not self.should_succeed:
            raise AddressSaveFailed()

        address_id = f"fake_addr_{uuid4().hex[:8]}"
        self.addresses[address_id] = entry
        return address_id

    async def set_default_address(self, address_id: str) -> None:
        self.calls.append({"method": "set_default_address", "address_id": address_id})

        if not self.default_succeeds:
            raise AddressSaveFailed("Failed to set default address")
        self.default_address_id = address_id
