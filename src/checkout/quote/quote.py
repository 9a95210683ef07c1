"""CheckoutQuote aggregate — a priced, time-bounded offer for a cart.

The quote snapshots each cart line with the unit price at quote time. It is
only honoured while unexpired and while that snapshot still matches the live
cart and live prices; anything else is a stale quote and must be re-quoted.
"""

import json
from datetime import timedelta
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import NotFound
from checkout.quote.events import QuoteAccepted, QuoteIssued
from checkout.utils.timestamps import as_utc, utc_now


class QuoteStatus(Enum):
    OPEN = "Open"
    ACCEPTED = "Accepted"


@checkout.entity(part_of="CheckoutQuote")
class QuoteLine:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    line_total = Integer(required=True, min_value=0)
    position = Integer(default=0)


@checkout.aggregate
class CheckoutQuote:
    customer_id = Identifier(required=True)
    lines = HasMany(QuoteLine)
    payment_provider_id = String(required=True, max_length=100)
    shipping_provider_id = String(required=True, max_length=100)
    shipping_data = Text()  # JSON: validated shipping input (the destination)
    shipping_display = String(max_length=500)
    subtotal = Integer(required=True, min_value=0)
    shipping_cost = Integer(required=True, min_value=0)
    tax = Integer(required=True, min_value=0)
    total = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="USD")
    status = String(choices=QuoteStatus, default=QuoteStatus.OPEN.value)
    order_id = Identifier()
    issued_at = DateTime(required=True)
    expires_at = DateTime(required=True)

    @invariant.post
    def total_is_sum_of_parts(self):
        if self.total != self.subtotal + self.shipping_cost + self.tax:
            raise ValidationError({"total": ["Total must equal subtotal + shipping + tax"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def issue(
        cls,
        customer_id,
        lines,
        payment_provider_id,
        shipping_provider_id,
        destination,
        shipping_display,
        shipping_cost,
        tax,
        currency,
        ttl_seconds,
    ):
        """Build a quote from priced lines.

        Args:
            lines: List of dicts with product_id, product_name, quantity, unit_price.
            destination: The shipping provider's validated input.
        """
        now = utc_now()
        subtotal = sum(line["unit_price"] * line["quantity"] for line in lines)

        quote = cls(
            customer_id=customer_id,
            payment_provider_id=payment_provider_id,
            shipping_provider_id=shipping_provider_id,
            shipping_data=json.dumps(destination, sort_keys=True),
            shipping_display=shipping_display,
            subtotal=subtotal,
            shipping_cost=shipping_cost,
            tax=tax,
            total=subtotal + shipping_cost + tax,
            currency=currency,
            status=QuoteStatus.OPEN.value,
            issued_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        for position, line in enumerate(lines):
            quote.add_lines(
                QuoteLine(
                    product_id=line["product_id"],
                    product_name=line["product_name"],
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                    line_total=line["unit_price"] * line["quantity"],
                    position=position,
                )
            )

        quote.raise_(
            QuoteIssued(
                quote_id=str(quote.id),
                customer_id=str(customer_id),
                payment_provider_id=payment_provider_id,
                shipping_provider_id=shipping_provider_id,
                subtotal=quote.subtotal,
                shipping_cost=shipping_cost,
                tax=tax,
                total=quote.total,
                currency=currency,
                expires_at=quote.expires_at,
            )
        )
        return quote

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def ordered_lines(self):
        return sorted(self.lines, key=lambda line: line.position or 0)

    @property
    def destination(self) -> dict:
        return json.loads(self.shipping_data) if self.shipping_data else {}

    def is_expired(self, now=None) -> bool:
        return (now or utc_now()) >= as_utc(self.expires_at)

    def mismatches(self, cart_quantities, live_prices) -> list[str]:
        """Describe how the snapshot differs from the live cart and prices. Empty when it still matches.

        Args:
            cart_quantities: {product_id: quantity} of the live cart.
            live_prices: {product_id: current unit price}.
        """
        problems = []
        snapshot = {str(line.product_id): line for line in self.lines}
        if set(snapshot) != set(cart_quantities):
            problems.append("cart products changed")
        for product_id, line in snapshot.items():
            if product_id in cart_quantities and cart_quantities[product_id] != line.quantity:
                problems.append(f"quantity of {product_id} changed")
            if product_id in live_prices and live_prices[product_id] != line.unit_price:
                problems.append(f"price of {product_id} changed")
        return problems

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def accept(self, order_id):
        if self.status != QuoteStatus.OPEN.value:
            raise ValidationError({"quote": ["Quote was already used to place an order"]})
        self.status = QuoteStatus.ACCEPTED.value
        self.order_id = order_id
        self.raise_(QuoteAccepted(quote_id=str(self.id), order_id=str(order_id)))


@checkout.repository(part_of=CheckoutQuote)
class CheckoutQuoteRepository:
    def find_for_customer(self, customer_id) -> list[CheckoutQuote]:
        return self._dao.query.filter(customer_id=str(customer_id)).all().items

    def find_expired_open(self, now) -> list[CheckoutQuote]:
        open_quotes = self._dao.query.filter(status=QuoteStatus.OPEN.value).all().items
        return [quote for quote in open_quotes if quote.is_expired(now)]


def load_quote(customer_id, quote_id) -> CheckoutQuote:
    """Fetch a customer's quote. Other customers' quotes are reported as not found."""
    try:
        quote = current_domain.repository_for(CheckoutQuote).get(str(quote_id))
    except ObjectNotFoundError as exc:
        raise NotFound(f"Quote {quote_id} not found", details={"quote_id": str(quote_id)}) from exc
    if str(quote.customer_id) != str(customer_id):
        raise NotFound(f"Quote {quote_id} not found", details={"quote_id": str(quote_id)})
    return quote
