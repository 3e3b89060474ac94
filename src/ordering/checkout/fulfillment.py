"""Fulfillment selection — delivery to an address or pickup at a time slot.

Exactly one of ``Delivery`` or ``Pickup`` is chosen per checkout.
"""

from dataclasses import dataclass
from enum import Enum

PICKUP_SENTINEL = "pickup"

# Pickup slot value -> label shown to the shopper
PICKUP_TIME_SLOTS = {
    "asap": "ASAP (15-20 minutes)",
    "30min": "30 minutes from now",
    "1hour": "1 hour from now",
    "2hours": "2 hours from now",
}

DEFAULT_COUNTRY = "Nigeria"


class FulfillmentMode(Enum):
    DELIVERY = "delivery"
    PICKUP = "pickup"


@dataclass(frozen=True)
class AddressEntry:
    """Address fields as entered (or pre-filled from a saved address) at checkout."""

    line1: str = ""
    city: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = DEFAULT_COUNTRY
    phone: str = ""
    selected_address_id: str | None = None
    save_as_new: bool = True
    make_default: bool = False

    REQUIRED_FIELDS = ("line1", "city", "region", "postal_code")

    def missing_fields(self) -> list[str]:
        return [name for name in self.REQUIRED_FIELDS if not (getattr(self, name) or "").strip()]

    @property
    def needs_persisting(self) -> bool:
        return self.save_as_new or not self.selected_address_id


@dataclass(frozen=True)
class Delivery:
    address: AddressEntry

    mode = FulfillmentMode.DELIVERY


@dataclass(frozen=True)
class Pickup:
    requested_time: str

    mode = FulfillmentMode.PICKUP

    @property
    def is_valid_slot(self) -> bool:
        return self.requested_time in PICKUP_TIME_SLOTS


FulfillmentSelection = Delivery | Pickup
