"""Order aggregate — the committed result of an accepted quote.

State Machine:
    PENDING → PAID                     settlement succeeded
    PENDING → FAILED                   declined, timed out or quote lapsed
    PENDING → CANCELLED                customer cancelled

PAID, FAILED and CANCELLED are terminal. CANCELLED reports as a variant of
FAILED. Lines and money fields never change after creation.
"""

import json
from enum import Enum

from protean import invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import InvalidState, NotFound
from checkout.order.events import OrderCancelled, OrderCreated, OrderFailed, OrderPaid
from checkout.utils.timestamps import as_utc, utc_now


class OrderStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    FAILED = "Failed"
    CANCELLED = "Cancelled"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PAID, OrderStatus.FAILED, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),  # Terminal
    OrderStatus.FAILED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}


@checkout.entity(part_of="Order")
class OrderLine:
    """A purchased product at the price the customer accepted."""

    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Integer(required=True, min_value=0)
    line_total = Integer(required=True, min_value=0)
    reservation_id = String(required=True, max_length=64)
    position = Integer(default=0)


@checkout.aggregate
class Order:
    customer_id = Identifier(required=True)
    quote_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    lines = HasMany(OrderLine)
    subtotal = Integer(required=True, min_value=0)
    shipping_cost = Integer(required=True, min_value=0)
    tax = Integer(required=True, min_value=0)
    total = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="USD")
    payment_provider_id = String(required=True, max_length=100)
    shipping_provider_id = String(required=True, max_length=100)
    shipping_data = Text()  # JSON: destination accepted at quote time
    payment_display = String(max_length=255)
    shipping_display = String(max_length=500)
    settlement_reference = String(max_length=255)
    failure_kind = String(max_length=50)
    failure_reason = String(max_length=500)
    expires_at = DateTime(required=True)
    created_at = DateTime()
    updated_at = DateTime()
    settled_at = DateTime()

    @invariant.post
    def total_is_sum_of_parts(self):
        if self.total != self.subtotal + self.shipping_cost + self.tax:
            raise ValidationError({"total": ["Total must equal subtotal + shipping + tax"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, quote, reservations):
        """Create a PENDING order copying the quote's snapshot.

        Args:
            quote: The accepted CheckoutQuote.
            reservations: {product_id: reservation_id} for every quote line.
        """
        now = utc_now()
        order = cls(
            customer_id=quote.customer_id,
            quote_id=str(quote.id),
            status=OrderStatus.PENDING.value,
            subtotal=quote.subtotal,
            shipping_cost=quote.shipping_cost,
            tax=quote.tax,
            total=quote.total,
            currency=quote.currency,
            payment_provider_id=quote.payment_provider_id,
            shipping_provider_id=quote.shipping_provider_id,
            shipping_data=quote.shipping_data,
            shipping_display=quote.shipping_display,
            expires_at=as_utc(quote.expires_at),
            created_at=now,
            updated_at=now,
        )
        items = []
        for position, line in enumerate(quote.ordered_lines):
            reservation_id = reservations[str(line.product_id)]
            order.add_lines(
                OrderLine(
                    product_id=line.product_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    line_total=line.line_total,
                    reservation_id=reservation_id,
                    position=position,
                )
            )
            items.append(
                {
                    "product_id": str(line.product_id),
                    "quantity": line.quantity,
                    "unit_price": line.unit_price,
                    "reservation_id": reservation_id,
                }
            )

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                customer_id=str(order.customer_id),
                quote_id=str(quote.id),
                items=json.dumps(items),
                total=order.total,
                currency=order.currency,
                expires_at=order.expires_at,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def ordered_lines(self):
        return sorted(self.lines, key=lambda line: line.position or 0)

    @property
    def reservation_ids(self):
        return [line.reservation_id for line in self.ordered_lines]

    @property
    def quantities(self):
        return {str(line.product_id): line.quantity for line in self.lines}

    @property
    def destination(self) -> dict:
        return json.loads(self.shipping_data) if self.shipping_data else {}

    @property
    def is_terminal(self) -> bool:
        return not _VALID_TRANSITIONS[OrderStatus(self.status)]

    @property
    def is_failed(self) -> bool:
        """FAILED, or CANCELLED which reports as a failure variant."""
        return self.status in (OrderStatus.FAILED.value, OrderStatus.CANCELLED.value)

    @property
    def can_cancel(self) -> bool:
        return self.status == OrderStatus.PENDING.value

    def is_expired(self, now=None) -> bool:
        return (now or utc_now()) >= as_utc(self.expires_at)

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status, action):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidState(
                f"Cannot {action} an order in {current.value} state",
                details={"order_id": str(self.id), "status": current.value},
            )

    def mark_paid(self, settlement_reference, payment_display):
        self._assert_can_transition(OrderStatus.PAID, "settle")

        now = utc_now()
        self.status = OrderStatus.PAID.value
        self.settlement_reference = settlement_reference
        self.payment_display = payment_display
        self.settled_at = now
        self.updated_at = now

        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                total=self.total,
                settlement_reference=settlement_reference,
                payment_display=payment_display,
                paid_at=now,
            )
        )

    def mark_failed(self, failure_kind, failure_reason):
        self._assert_can_transition(OrderStatus.FAILED, "fail")

        now = utc_now()
        self.status = OrderStatus.FAILED.value
        self.failure_kind = failure_kind
        self.failure_reason = (failure_reason or "")[:500]
        self.settled_at = now
        self.updated_at = now

        self.raise_(
            OrderFailed(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                failure_kind=failure_kind,
                failure_reason=self.failure_reason,
                failed_at=now,
            )
        )

    def cancel(self, reason=None):
        self._assert_can_transition(OrderStatus.CANCELLED, "cancel")

        now = utc_now()
        self.status = OrderStatus.CANCELLED.value
        self.failure_reason = reason
        self.updated_at = now

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                reason=reason,
                cancelled_at=now,
            )
        )


def load_order(order_id, customer_id=None) -> Order:
    """Fetch an order. With ``customer_id``, other customers' orders are reported as not found."""
    try:
        order = current_domain.repository_for(Order).get(str(order_id))
    except ObjectNotFoundError as exc:
        raise NotFound(f"Order {order_id} not found", details={"order_id": str(order_id)}) from exc
    if customer_id is not None and str(order.customer_id) != str(customer_id):
        raise NotFound(f"Order {order_id} not found", details={"order_id": str(order_id)})
    return order
