"""Order engine — the entry points for placing and managing orders.

Locking:
    create              serialized per customer (reserve + persist)
    settle/cancel/expire serialized per order, status re-checked under the lock

A FAILED order is reported by raising the error recorded on it, the same way
on the first settle call and on every retry.
"""

import json
import math
from dataclasses import dataclass
from datetime import UTC, datetime, time

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from checkout.cart.store import remove_ordered_items
from checkout.errors import CheckoutError, ProviderDeclined, ProviderTimeout, QuoteExpired
from checkout.order.cancellation import CancelOrder
from checkout.order.creation import CreateOrder
from checkout.order.expiry import ExpireOrder
from checkout.order.order import Order, OrderStatus, load_order
from checkout.order.settlement import SettleOrder
from checkout.utils.locks import KeyedLocks
from checkout.utils.logging import order_log_context
from checkout.utils.timestamps import utc_now

logger = structlog.get_logger(__name__)

customer_locks = KeyedLocks()
order_locks = KeyedLocks()

_FAILURE_ERRORS = {
    QuoteExpired.kind: QuoteExpired,
    ProviderDeclined.kind: ProviderDeclined,
    ProviderTimeout.kind: ProviderTimeout,
}


def failure_error(order) -> CheckoutError:
    """The error a FAILED order reports."""
    error_class = _FAILURE_ERRORS.get(order.failure_kind, ProviderDeclined)
    return error_class(
        order.failure_reason or f"Order {order.id} failed",
        details={"order_id": str(order.id), "status": order.status},
    )


def create_order(customer_id, quote_id) -> Order:
    with order_log_context(customer_id=customer_id, quote_id=quote_id), customer_locks.hold(customer_id):
        order_id = current_domain.process(
            CreateOrder(customer_id=customer_id, quote_id=quote_id),
            asynchronous=False,
        )
    return load_order(order_id, customer_id=customer_id)


def settle_order(customer_id, order_id, payment_data=None, payment_method_id=None, shipping_data=None) -> Order:
    """Settle a PENDING order, or report the outcome of an already settled one."""
    with order_log_context(customer_id=customer_id, order_id=order_id), order_locks.hold(order_id):
        outcome = current_domain.process(
            SettleOrder(
                customer_id=customer_id,
                order_id=order_id,
                payment_data=json.dumps(payment_data or {}),
                payment_method_id=payment_method_id,
                shipping_data=json.dumps(shipping_data) if shipping_data else None,
            ),
            asynchronous=False,
        )

    order = load_order(order_id, customer_id=customer_id)
    if outcome["transitioned"] and order.status == OrderStatus.PAID.value:
        remove_ordered_items(customer_id, order.id, json.dumps(order.quantities))
    if order.status == OrderStatus.FAILED.value:
        raise failure_error(order)
    return order


def place_order(customer_id, quote_id, payment_data=None, payment_method_id=None) -> Order:
    """Create and settle in one call."""
    order = create_order(customer_id, quote_id)
    return settle_order(customer_id, order.id, payment_data=payment_data, payment_method_id=payment_method_id)


def cancel_order(customer_id, order_id, reason=None) -> Order:
    with order_log_context(customer_id=customer_id, order_id=order_id), order_locks.hold(order_id):
        current_domain.process(
            CancelOrder(customer_id=customer_id, order_id=order_id, reason=reason),
            asynchronous=False,
        )
    return load_order(order_id, customer_id=customer_id)


def get_order(customer_id, order_id) -> Order:
    return load_order(order_id, customer_id=customer_id)


DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100


@dataclass(frozen=True)
class OrderPage:
    orders: list[Order]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


def _parse_status(status) -> OrderStatus | None:
    if status is None or status == "":
        return None
    for candidate in OrderStatus:
        if candidate.value.lower() == str(status).lower():
            return candidate
    allowed = ", ".join(s.value for s in OrderStatus)
    raise ValidationError({"status": [f"Unknown order status '{status}'; expected one of {allowed}"]})


def list_orders(customer_id, status=None, start_date=None, end_date=None, page=1, limit=DEFAULT_PAGE_SIZE) -> OrderPage:
    """One page of a customer's orders, newest first.

    ``start_date`` and ``end_date`` are calendar days (UTC), both inclusive.
    A page below 1 reads as 1; a limit below 1 reads as the default and is
    capped at ``MAX_PAGE_SIZE``.
    """
    wanted = _parse_status(status)
    created_from = datetime.combine(start_date, time.min, tzinfo=UTC) if start_date else None
    created_to = datetime.combine(end_date, time.max, tzinfo=UTC) if end_date else None
    if created_from and created_to and created_to < created_from:
        raise ValidationError({"end_date": ["end_date must not be before start_date"]})

    page = max(int(page or 1), 1)
    limit = int(limit or 0)
    limit = DEFAULT_PAGE_SIZE if limit < 1 else min(limit, MAX_PAGE_SIZE)

    orders = current_domain.repository_for(Order).find_for_customer(
        customer_id, status=wanted, created_from=created_from, created_to=created_to
    )
    offset = (page - 1) * limit
    return OrderPage(orders=orders[offset : offset + limit], page=page, limit=limit, total=len(orders))


def expire_pending_orders(as_of=None) -> int:
    """Fail every PENDING order whose quote window has passed. Returns how many were expired."""
    as_of = as_of or utc_now()
    candidates = current_domain.repository_for(Order).find_expired_pending(as_of)
    if not candidates:
        logger.info("No lapsed pending orders found")
        return 0

    expired_count = 0
    for order in candidates:
        try:
            with order_locks.hold(order.id):
                expired = current_domain.process(ExpireOrder(order_id=str(order.id), as_of=as_of), asynchronous=False)
            expired_count += int(bool(expired))
        except (ValidationError, CheckoutError) as exc:
            logger.warning("Failed to expire pending order", order_id=str(order.id), error=str(exc))

    logger.info("Pending order expiry complete", expired_count=expired_count)
    return expired_count
