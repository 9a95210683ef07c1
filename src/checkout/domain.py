"""Checkout bounded context — carts, quotes and the order lifecycle.

Converts a customer's cart into a committed order: prices it through a
time-bounded quote, reserves stock in the inventory ledger, settles payment
through a pluggable provider and drives the order's status machine.
"""

import structlog
from protean.domain import Domain

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
