"""Order creation — command and handler.

Creation is all-or-nothing: every quote line is reserved in the inventory
ledger, and if any reservation fails the ones already taken are released
before ``InsufficientStock`` is raised. The cart is not touched.

While a customer has a PENDING order for the exact cart contents, creating
another one from a fresh quote is rejected with ``InvalidState``.
"""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from checkout.cart.store import find_cart
from checkout.catalogue.product import load_product
from checkout.domain import checkout
from checkout.errors import InvalidState, QuoteExpired
from checkout.inventory import get_ledger
from checkout.order.order import Order
from checkout.quote.quote import CheckoutQuote, QuoteStatus, load_quote
from checkout.utils.timestamps import as_utc

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class CreateOrder:
    customer_id = Identifier(required=True)
    quote_id = Identifier(required=True)


def _reserve_all(quote):
    """Reserve every quote line or none of them. Returns {product_id: reservation_id}."""
    ledger = get_ledger()
    expires_at = as_utc(quote.expires_at)
    acquired = []
    try:
        for line in quote.ordered_lines:
            acquired.append(ledger.reserve(str(line.product_id), line.quantity, expires_at=expires_at))
    except Exception:
        for token in reversed(acquired):
            ledger.release(token.reservation_id)
        logger.info(
            "Order reservation rolled back",
            quote_id=str(quote.id),
            released_count=len(acquired),
        )
        raise
    return {token.product_id: token.reservation_id for token in acquired}


@checkout.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        quote = load_quote(command.customer_id, command.quote_id)

        if quote.status == QuoteStatus.ACCEPTED.value:
            raise InvalidState(
                f"Quote {quote.id} was already used for order {quote.order_id}",
                details={"quote_id": str(quote.id), "order_id": str(quote.order_id)},
            )
        if quote.is_expired():
            raise QuoteExpired(f"Quote {quote.id} has expired", details={"quote_id": str(quote.id)})

        cart = find_cart(command.customer_id)
        cart_quantities = {str(item.product_id): item.quantity for item in cart.items} if cart else {}
        live_prices = {pid: load_product(pid).price.amount for pid in cart_quantities}
        problems = quote.mismatches(cart_quantities, live_prices)
        if problems:
            raise QuoteExpired(
                f"Quote {quote.id} no longer matches the cart: {'; '.join(problems)}",
                details={"quote_id": str(quote.id)},
            )

        duplicate = next(
            (
                order
                for order in current_domain.repository_for(Order).find_pending_for_customer(command.customer_id)
                if order.quantities == cart_quantities and not order.is_expired()
            ),
            None,
        )
        if duplicate is not None:
            raise InvalidState(
                f"Order {duplicate.id} for these cart contents is still pending",
                details={"order_id": str(duplicate.id), "quote_id": str(quote.id)},
            )

        reservations = _reserve_all(quote)
        try:
            order = Order.place(quote, reservations)
            quote.accept(order.id)
        except Exception:
            ledger = get_ledger()
            for reservation_id in reservations.values():
                ledger.release(reservation_id)
            raise

        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(CheckoutQuote).add(quote)

        logger.info(
            "Order created",
            order_id=str(order.id),
            customer_id=str(order.customer_id),
            quote_id=str(quote.id),
            total=order.total,
        )
        return str(order.id)
