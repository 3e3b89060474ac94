"""Storefront backend ports (abstract interfaces).

The checkout flow talks to two backend collaborators: the order service
(create orders, verify payments) and the shopper's address book. Adapters
are swapped between the HTTP client (production) and in-memory fakes
(development and tests) without touching the orchestrator.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ordering.checkout.fulfillment import AddressEntry
from ordering.checkout.order import Order, OrderDraft


@dataclass(frozen=True)
class VerificationResult:
    """Backend answer to a payment verification request."""

    success: bool
    order_id: str | None = None
    message: str | None = None


class OrderServicePort(ABC):
    @abstractmethod
    async def create_order(self, draft: OrderDraft) -> Order:
        """Create the order record. Raises ``OrderCreationFailed`` on refusal."""
        ...

    @abstractmethod
    async def verify_payment(self, reference: str) -> VerificationResult:
        """Ask the backend whether funds for ``reference`` were captured.

        Safe to call repeatedly with the same reference.
        """
        ...


class AddressBookPort(ABC):
    @abstractmethod
    async def create_address(self, entry: AddressEntry) -> str:
        """Persist a new address and return its id. Raises ``AddressSaveFailed``."""
        ...

    @abstractmethod
    async def set_default_address(self, address_id: str) -> None:
        """Mark an existing address as the shopper's default."""
        ...
