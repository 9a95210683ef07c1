"""Order cancellation — command and handler.

Only PENDING orders can be cancelled. Reservations go back to stock and the
cart is left as it was.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.inventory import get_ledger
from checkout.order.order import Order, load_order

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Order")
class CancelOrder:
    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(max_length=500)


@checkout.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = load_order(command.order_id, customer_id=command.customer_id)
        order.cancel(reason=command.reason or "Cancelled by customer")

        ledger = get_ledger()
        for reservation_id in order.reservation_ids:
            ledger.release(reservation_id)

        current_domain.repository_for(Order).add(order)
        logger.info("Order cancelled", order_id=str(order.id), customer_id=str(order.customer_id))
