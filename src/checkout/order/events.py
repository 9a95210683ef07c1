"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderCreated:
    """An order was created from an accepted quote and its stock reserved."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    quote_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, quantity, unit_price, reservation_id}
    total = Integer(required=True)
    currency = String(required=True)
    expires_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaid:
    """Settlement succeeded and the reserved stock was committed."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    total = Integer(required=True)
    settlement_reference = String()
    payment_display = String()
    paid_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderFailed:
    """Settlement was declined, timed out, or the quote lapsed. Stock was released."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    failure_kind = String(required=True)
    failure_reason = String()
    failed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderCancelled:
    """The customer cancelled a pending order. Stock was released."""

    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)
