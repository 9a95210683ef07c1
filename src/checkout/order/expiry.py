"""Pending order expiry — command and handler for failing lapsed orders.

Designed to be triggered periodically by an external scheduler (cron, K8s
CronJob) through the maintenance endpoint. A PENDING order whose quote window has
passed is failed with ``QuoteExpired`` and its reservations are released.
"""

import structlog
from protean import handle
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import QuoteExpired
from checkout.inventory import get_ledger
from checkout.order.order import Order, OrderStatus, load_order
from checkout.utils.timestamps import as_utc

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class ExpireOrder:
    order_id = Identifier(required=True)
    as_of = DateTime()  # Optional: defaults to now


@checkout.command_handler(part_of=Order)
class ExpireOrderHandler:
    @handle(ExpireOrder)
    def expire_order(self, command):
        order = load_order(command.order_id)
        if order.status != OrderStatus.PENDING.value or not order.is_expired(as_utc(command.as_of)):
            return False

        ledger = get_ledger()
        for reservation_id in order.reservation_ids:
            ledger.release(reservation_id)
        order.mark_failed(QuoteExpired.kind, "Quote expired before settlement")
        current_domain.repository_for(Order).add(order)

        logger.info(
            "Expired pending order",
            order_id=str(order.id),
            expired_at=as_utc(order.expires_at).isoformat(),
        )
        return True
