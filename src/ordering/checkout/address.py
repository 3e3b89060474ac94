"""Address resolution — turn the shopper's fulfillment choice into a destination id."""

from collections.abc import Awaitable, Callable

import structlog

from ordering.backend.port import AddressBookPort
from ordering.checkout.fulfillment import PICKUP_SENTINEL, Delivery, FulfillmentSelection, Pickup
from shared.errors import AddressIncomplete, AddressSaveFailed, InvalidTimeSlot

logger = structlog.get_logger(__name__)


class AddressResolver:
    """Resolve a delivery address id, persisting a new address when needed.

    Creating an address and marking it default are two separate backend
    calls. If the second one fails, the order still ships to the new address
    and the default flag catches up on the shopper's next address edit.
    """

    def __init__(
        self,
        address_book: AddressBookPort,
        on_saved: Callable[[str], Awaitable[None]] | None = None,
    ) -> None:
        self._address_book = address_book
        self._on_saved = on_saved

    @staticmethod
    def validate(fulfillment: FulfillmentSelection) -> None:
        """Check the selection locally. Raises before any network call."""
        if isinstance(fulfillment, Pickup):
            if not fulfillment.is_valid_slot:
                raise InvalidTimeSlot()
            return

        missing = fulfillment.address.missing_fields()
        if missing:
            raise AddressIncomplete(f"Please fill in all required address fields: {', '.join(missing)}")

    async def resolve(self, fulfillment: FulfillmentSelection) -> str:
        self.validate(fulfillment)

        if isinstance(fulfillment, Pickup):
            return PICKUP_SENTINEL

        return await self._resolve_delivery(fulfillment)

    async def _resolve_delivery(self, fulfillment: Delivery) -> str:
        entry = fulfillment.address
        if not entry.needs_persisting:
            return entry.selected_address_id

        address_id = await self._address_book.create_address(entry)
        logger.info("address_saved", address_id=address_id, city=entry.city)

        if entry.make_default:
            try:
                await self._address_book.set_default_address(address_id)
            except AddressSaveFailed as exc:
                logger.warning("default_address_not_set", address_id=address_id, error=exc.message)

        if self._on_saved is not None:
            await self._on_saved(address_id)

        return address_id
