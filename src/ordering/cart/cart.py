"""Shopping Cart aggregate (CQRS) — the single source of truth for what is being bought.

Lines are unique per product and keep insertion order. Totals are never
stored: ``subtotal()`` walks the current lines on every read.
"""

from datetime import UTC, datetime
from decimal import Decimal

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from ordering.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from ordering.domain import ordering


class InvalidQuantity(ValidationError):
    """A cart line quantity below zero was requested."""


def to_decimal(value) -> Decimal:
    """Convert a stored price to Decimal without inheriting binary float noise."""
    return Decimal(str(value))


@ordering.entity(part_of="ShoppingCart")
class CartLine:
    product_id = Identifier(required=True)
    name = String(max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()

    @property
    def line_total(self) -> Decimal:
        return to_decimal(self.unit_price) * self.quantity


@ordering.aggregate
class ShoppingCart:
    customer_id = Identifier()  # Nullable for guest carts
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_for(self, product_id):
        return next((line for line in self.lines if str(line.product_id) == str(product_id)), None)

    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_item(self, product_id, name, unit_price, quantity=1):
        """Add a product, or bump the quantity of its existing line."""
        existing = self.line_for(product_id)
        now = datetime.now(UTC)

        if existing:
            existing.quantity += quantity
            existing.unit_price = unit_price
        else:
            self.add_lines(
                CartLine(
                    product_id=product_id,
                    name=name,
                    unit_price=unit_price,
                    quantity=quantity,
                    added_at=now,
                )
            )

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                product_id=str(product_id),
                name=name,
                unit_price=unit_price,
                quantity=quantity,
            )
        )

    def set_quantity(self, product_id, new_quantity):
        """Replace a line's quantity. Zero removes the line."""
        if new_quantity < 0:
            raise InvalidQuantity({"quantity": ["Quantity must be at least 1"]})

        line = self.line_for(product_id)
        if line is None:
            return

        if new_quantity == 0:
            self.remove_item(product_id)
            return

        previous_quantity = line.quantity
        line.quantity = new_quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                product_id=str(product_id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
            )
        )

    def remove_item(self, product_id):
        line = self.line_for(product_id)
        if line is None:
            return

        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartItemRemoved(cart_id=str(self.id), product_id=str(product_id)))

    def clear(self):
        lines = list(self.lines)
        if not lines:
            return

        for line in lines:
            self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), lines_removed=len(lines)))
