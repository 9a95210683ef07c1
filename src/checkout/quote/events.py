"""Domain events for the CheckoutQuote aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="CheckoutQuote")
class QuoteIssued:
    """A priced, time-bounded checkout offer was computed for a cart."""

    __version__ = 1

    quote_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    payment_provider_id = String(required=True)
    shipping_provider_id = String(required=True)
    subtotal = Integer(required=True)
    shipping_cost = Integer(required=True)
    tax = Integer(required=True)
    total = Integer(required=True)
    currency = String(required=True)
    expires_at = DateTime(required=True)


@checkout.event(part_of="CheckoutQuote")
class QuoteAccepted:
    """An order was created from the quote. A quote is accepted at most once."""

    __version__ = 1

    quote_id = Identifier(required=True)
    order_id = Identifier(required=True)
