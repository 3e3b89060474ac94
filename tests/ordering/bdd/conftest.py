"""Shared BDD fixtures and step definitions for the Ordering domain."""

from decimal import Decimal

import pytest
from ordering.cart.cart import ShoppingCart
from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_CART_EVENT_CLASSES = {
    "CartItemAdded": CartItemAdded,
    "CartQuantityUpdated": CartQuantityUpdated,
    "CartItemRemoved": CartItemRemoved,
    "CartCleared": CartCleared,
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer_id():
    return "cust-001"


@pytest.fixture()
def error():
    """Container for captured validation errors (used by cart tests)."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps — Shopping Cart
# ---------------------------------------------------------------------------
@given("an active cart", target_fixture="cart")
def active_cart(customer_id):
    cart = ShoppingCart.create(customer_id=customer_id)
    cart._events.clear()
    return cart


@given("a guest cart", target_fixture="cart")
def guest_cart():
    cart = ShoppingCart.create()
    cart._events.clear()
    return cart


@given("the cart has an item", target_fixture="cart")
def cart_with_item(cart):
    cart.add_item(product_id="prod-001", name="Jollof Rice", unit_price=5000, quantity=2)
    cart._events.clear()
    return cart


@given("the cart has 2 items", target_fixture="cart")
def cart_with_two_items(cart):
    cart.add_item(product_id="prod-001", name="Jollof Rice", unit_price=5000, quantity=2)
    cart.add_item(product_id="prod-002", name="Chapman", unit_price=1500, quantity=1)
    cart._events.clear()
    return cart


# ---------------------------------------------------------------------------
# Then steps — Cart
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the cart has {count:d} item"))
def cart_has_n_items_singular(cart, count):
    assert len(cart.lines) == count


@then(parsers.cfparse("the cart has {count:d} items"))
def cart_has_n_items(cart, count):
    assert len(cart.lines) == count


@then(parsers.cfparse("the cart subtotal is {amount}"))
def cart_subtotal_is(cart, amount):
    assert cart.subtotal() == Decimal(amount)


@then("the cart action fails with a validation error")
def cart_action_fails(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then(parsers.cfparse("a {event_type} cart event is raised"))
def cart_event_raised(cart, event_type):
    event_cls = _CART_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in cart._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in cart._events]}"


@then("no cart event is raised")
def no_cart_event_raised(cart):
    assert cart._events == []
