"""Tests for fulfillment selection and order snapshots."""

from dataclasses import FrozenInstanceError
from decimal import Decimal

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.checkout.fulfillment import (
    PICKUP_SENTINEL,
    AddressEntry,
    Delivery,
    FulfillmentMode,
    Pickup,
)
from ordering.checkout.order import Order, OrderDraft, PaymentMethod
from ordering.checkout.pricing import price
from ordering.checkout.transfer import BankAccount, TransferInstructions


def _cart():
    cart = ShoppingCart.create(customer_id="cust-001")
    cart.add_item("P1", "Jollof Rice", 5000, 2)
    cart.add_item("P2", "Chapman", 1500, 1)
    return cart


def _address(**overrides):
    fields = {
        "line1": "12 Admiralty Way",
        "city": "Lekki",
        "region": "Lagos",
        "postal_code": "105102",
        "phone": "08012345678",
    }
    fields.update(overrides)
    return AddressEntry(**fields)


class TestAddressEntry:
    def test_complete_address_has_no_missing_fields(self):
        assert _address().missing_fields() == []

    def test_blank_fields_are_missing(self):
        entry = _address(city="  ", postal_code="")
        assert entry.missing_fields() == ["city", "postal_code"]

    def test_country_defaults_to_nigeria(self):
        assert _address().country == "Nigeria"

    def test_new_entry_needs_persisting(self):
        assert _address().needs_persisting is True

    def test_selected_address_does_not_need_persisting(self):
        entry = _address(selected_address_id="addr-1", save_as_new=False)
        assert entry.needs_persisting is False

    def test_selected_address_saved_as_new_needs_persisting(self):
        entry = _address(selected_address_id="addr-1", save_as_new=True)
        assert entry.needs_persisting is True


class TestFulfillmentSelection:
    def test_modes(self):
        assert Delivery(address=_address()).mode is FulfillmentMode.DELIVERY
        assert Pickup(requested_time="asap").mode is FulfillmentMode.PICKUP

    @pytest.mark.parametrize("slot", ["asap", "30min", "1hour", "2hours"])
    def test_known_pickup_slots(self, slot):
        assert Pickup(requested_time=slot).is_valid_slot

    @pytest.mark.parametrize("slot", ["", "tomorrow", "3hours", "ASAP"])
    def test_unknown_pickup_slots(self, slot):
        assert not Pickup(requested_time=slot).is_valid_slot


class TestOrderDraft:
    def test_snapshot_copies_cart_lines(self):
        cart = _cart()
        draft = OrderDraft.from_cart(
            cart,
            destination="addr-1",
            fulfillment=Delivery(address=_address()),
            payment_method=PaymentMethod.GATEWAY,
            amounts=price(cart.subtotal(), FulfillmentMode.DELIVERY),
        )
        assert [(line.product_id, line.quantity) for line in draft.lines] == [("P1", 2), ("P2", 1)]
        assert draft.lines[0].unit_price == Decimal("5000")

        cart.add_item("P1", "Jollof Rice", 5000, 5)
        assert draft.lines[0].quantity == 2

    def test_delivery_payload(self):
        cart = _cart()
        draft = OrderDraft.from_cart(
            cart,
            destination="addr-1",
            fulfillment=Delivery(address=_address()),
            payment_method=PaymentMethod.GATEWAY,
            amounts=price(cart.subtotal(), FulfillmentMode.DELIVERY),
            notes="No onions",
        )
        assert draft.to_payload() == {
            "delivery_address": "addr-1",
            "payment_method": "card",
            "notes": "No onions",
            "cartItems": [
                {"productId": "P1", "quantity": 2, "name": "Jollof Rice", "price": 5000.0},
                {"productId": "P2", "quantity": 1, "name": "Chapman", "price": 1500.0},
            ],
        }

    def test_pickup_payload_carries_pickup_time(self):
        cart = _cart()
        draft = OrderDraft.from_cart(
            cart,
            destination=PICKUP_SENTINEL,
            fulfillment=Pickup(requested_time="30min"),
            payment_method=PaymentMethod.TRANSFER,
            amounts=price(cart.subtotal(), FulfillmentMode.PICKUP),
        )
        payload = draft.to_payload()
        assert payload["delivery_address"] == "pickup"
        assert payload["payment_method"] == "transfer"
        assert payload["pickup_time"] == "30min"
        assert payload["notes"] == ""

    def test_order_is_immutable(self):
        cart = _cart()
        draft = OrderDraft.from_cart(
            cart,
            destination=PICKUP_SENTINEL,
            fulfillment=Pickup(requested_time="asap"),
            payment_method=PaymentMethod.GATEWAY,
            amounts=price(cart.subtotal(), FulfillmentMode.PICKUP),
        )
        order = Order.from_draft("ord-001", draft)
        assert order.order_id == "ord-001"
        assert order.lines == draft.lines
        with pytest.raises(FrozenInstanceError):
            order.order_id = "ord-002"


class TestTransferInstructions:
    def test_defaults(self, monkeypatch):
        for name in ("TRANSFER_BANK_NAME", "TRANSFER_ACCOUNT_NAME", "TRANSFER_ACCOUNT_NUMBER", "TRANSFER_BANK_CODE"):
            monkeypatch.delenv(name, raising=False)
        account = BankAccount.from_env()
        assert account.bank_name == "First Bank Nigeria"
        assert account.account_number == "3081234567"
        assert account.bank_code == "011"

    def test_configured_from_environment(self, monkeypatch):
        monkeypatch.setenv("TRANSFER_BANK_NAME", "GTBank")
        monkeypatch.setenv("TRANSFER_ACCOUNT_NUMBER", "0123456789")
        account = BankAccount.from_env()
        assert account.bank_name == "GTBank"
        assert account.account_number == "0123456789"

    def test_instructions_for_order(self):
        cart = _cart()
        draft = OrderDraft.from_cart(
            cart,
            destination=PICKUP_SENTINEL,
            fulfillment=Pickup(requested_time="asap"),
            payment_method=PaymentMethod.TRANSFER,
            amounts=price(cart.subtotal(), FulfillmentMode.PICKUP),
        )
        account = BankAccount("First Bank Nigeria", "Pepe's Brunch & Cafe", "3081234567", "011")
        instructions = TransferInstructions.for_order(Order.from_draft("ord-9", draft), account)
        payload = instructions.as_dict()
        assert payload["order_id"] == "ord-9"
        assert payload["account_name"] == "Pepe's Brunch & Cafe"
        assert payload["bank_code"] == "011"
        assert Decimal(payload["amount"]) == Decimal("12362.5")
        assert payload["narration"] == "Order ord-9"
