"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Float, Identifier, Integer, String

from ordering.domain import ordering


@ordering.event(part_of="ShoppingCart")
class CartItemAdded:
    """A product was added to the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    name = String(max_length=255)
    unit_price = Float(required=True)
    quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartQuantityUpdated:
    """The quantity of a cart line was changed."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@ordering.event(part_of="ShoppingCart")
class CartItemRemoved:
    """A line was removed from the shopping cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)


@ordering.event(part_of="ShoppingCart")
class CartCleared:
    """All lines were removed, either explicitly or after a settled checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    lines_removed = Integer(required=True)
