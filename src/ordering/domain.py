"""Ordering bounded context — Shopping Cart and Checkout.

Holds the shopper's cart (CQRS aggregate) and the checkout flow that turns
it into a backend order and drives payment to settlement.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
