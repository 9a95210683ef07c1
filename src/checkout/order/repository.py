"""Repository for the Order aggregate."""

from checkout.domain import checkout
from checkout.order.order import Order, OrderStatus
from checkout.utils.timestamps import as_utc


@checkout.repository(part_of=Order)
class OrderRepository:
    def find_for_customer(self, customer_id, status=None, created_from=None, created_to=None) -> list[Order]:
        """A customer's orders, newest first.

        Args:
            status: Only orders in this ``OrderStatus``.
            created_from: Inclusive lower bound on ``created_at``.
            created_to: Inclusive upper bound on ``created_at``.
        """
        filters = {"customer_id": str(customer_id)}
        if status is not None:
            filters["status"] = status.value
        orders = self._dao.query.filter(**filters).all().items
        if created_from is not None:
            orders = [order for order in orders if as_utc(order.created_at) >= created_from]
        if created_to is not None:
            orders = [order for order in orders if as_utc(order.created_at) <= created_to]
        return sorted(orders, key=lambda order: as_utc(order.created_at), reverse=True)

    def find_pending_for_customer(self, customer_id) -> list[Order]:
        return self._dao.query.filter(customer_id=str(customer_id), status=OrderStatus.PENDING.value).all().items

    def find_by_quote(self, quote_id) -> Order | None:
        results = self._dao.query.filter(quote_id=str(quote_id)).all().items
        return results[0] if results else None

    def find_expired_pending(self, now) -> list[Order]:
        pending = self._dao.query.filter(status=OrderStatus.PENDING.value).all().items
        return [order for order in pending if order.is_expired(now)]
