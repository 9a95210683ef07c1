"""Order settlement — command and handler.

Settling a PENDING order calls its payment provider with the order total,
bounded by the settlement timeout. Success commits the reservations and
marks the order PAID; a decline or a timeout releases them and marks it
FAILED. Either way the handler returns normally so the outcome is persisted;
the caller turns a FAILED order into the matching error.

Settling a terminal order never calls the provider again.
"""

import json
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.errors import InvalidState, MissingFields, QuoteExpired
from checkout.inventory import ReservationStatus, get_ledger
from checkout.order.order import Order, OrderStatus, load_order
from checkout.profile import get_directory
from checkout.providers import get_registry
from checkout.providers.port import ProviderKind, SettlementResult, normalize_input
from checkout.shared.money import format_minor
from checkout.utils.settings import settlement_timeout_seconds

logger = structlog.get_logger(__name__)

_settlement_pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="settlement")


def shutdown_settlement_pool(wait: bool = True) -> None:
    """Stop the provider call pool. Queued calls that have not started are dropped."""
    _settlement_pool.shutdown(wait=wait, cancel_futures=True)


@checkout.command(part_of="Order")
class SettleOrder:
    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    payment_data = Text()  # JSON: provider field values
    payment_method_id = Identifier()  # Saved payment method merged under payment_data
    shipping_data = Text()  # JSON: must match the quoted destination when given


def _release_reservations(order):
    ledger = get_ledger()
    for reservation_id in order.reservation_ids:
        ledger.release(reservation_id)


def _undo_partial_commit(order):
    """Return every line's units to stock after a commit failed midway."""
    ledger = get_ledger()
    for line in order.ordered_lines:
        if ledger.status_of(line.reservation_id) == ReservationStatus.COMMITTED:
            ledger.restock(str(line.product_id), line.quantity)
        else:
            ledger.release(line.reservation_id)


def _destination_changed(order, shipping_data):
    given = {k: v for k, v in normalize_input(json.loads(shipping_data)).items() if v}
    return bool(given) and given != order.destination


def _payment_input(command, order, provider):
    data = {}
    if command.payment_method_id:
        method = get_directory().payment_method(command.customer_id, command.payment_method_id)
        if method.provider_id != order.payment_provider_id:
            raise ValidationError(
                {"payment_method_id": [f"Saved method belongs to {method.provider_id}, not {order.payment_provider_id}"]}
            )
        data.update(method.data)
    if command.payment_data:
        data.update(json.loads(command.payment_data))

    missing = provider.missing_fields(data)
    if missing:
        raise MissingFields(provider.provider_id, missing)
    return provider.accepted_input(data)


def _call_provider(provider, order, data):
    future = _settlement_pool.submit(provider.settle, order.total, order.currency, data)
    try:
        return future.result(timeout=settlement_timeout_seconds()), False
    except FutureTimeout:
        if not future.cancel():
            # Already running; a late capture has to be refunded.
            logger.error(
                "Settlement timed out with provider call in flight; refund any capture",
                order_id=str(order.id),
                provider_id=provider.provider_id,
            )
        return None, True
    except Exception as exc:
        logger.exception("Payment provider raised", order_id=str(order.id), provider_id=provider.provider_id)
        return SettlementResult(success=False, failure_reason=f"Provider error: {exc}"), False


@checkout.command_handler(part_of=Order)
class SettleOrderHandler:
    @handle(SettleOrder)
    def settle_order(self, command):
        repo = current_domain.repository_for(Order)
        order = load_order(command.order_id, customer_id=command.customer_id)

        if order.status in (OrderStatus.PAID.value, OrderStatus.FAILED.value):
            logger.info("Order already settled", order_id=str(order.id), status=order.status)
            return {"order_id": str(order.id), "transitioned": False}
        if order.status == OrderStatus.CANCELLED.value:
            raise InvalidState(
                f"Order {order.id} was cancelled",
                details={"order_id": str(order.id), "status": order.status},
            )

        if command.shipping_data and _destination_changed(order, command.shipping_data):
            raise QuoteExpired(
                f"Shipping destination changed since order {order.id} was quoted; re-quote required",
                details={"order_id": str(order.id)},
            )

        ledger = get_ledger()
        if order.is_expired() or not all(ledger.is_active(rid) for rid in order.reservation_ids):
            _release_reservations(order)
            order.mark_failed(QuoteExpired.kind, "Quote expired before settlement")
            repo.add(order)
            logger.info("Order expired at settlement", order_id=str(order.id))
            return {"order_id": str(order.id), "transitioned": True}

        provider = get_registry().get_provider(order.payment_provider_id)
        if provider.kind != ProviderKind.PAYMENT:
            raise ValidationError({"payment_provider_id": [f"{provider.provider_id} is not a payment provider"]})
        data = _payment_input(command, order, provider)

        result, timed_out = _call_provider(provider, order, data)

        if timed_out:
            _release_reservations(order)
            order.mark_failed("ProviderTimeout", f"No answer from {provider.provider_id} within the settlement timeout")
            logger.warning("Settlement timed out", order_id=str(order.id), provider_id=provider.provider_id)
        elif not result.success:
            _release_reservations(order)
            order.mark_failed("ProviderDeclined", result.failure_reason or "Declined by provider")
            logger.info(
                "Settlement declined",
                order_id=str(order.id),
                provider_id=provider.provider_id,
                reason=result.failure_reason,
            )
        else:
            try:
                for reservation_id in order.reservation_ids:
                    ledger.commit(reservation_id)
            except InvalidState:
                # Swept while the provider was answering; the capture must be refunded.
                _undo_partial_commit(order)
                order.mark_failed(
                    QuoteExpired.kind,
                    f"Reservation lapsed during settlement; payment {result.reference} requires refund",
                )
                logger.error(
                    "Reservation lapsed after payment capture",
                    order_id=str(order.id),
                    settlement_reference=result.reference,
                )
            else:
                order.mark_paid(result.reference, provider.display(data))
                logger.info(
                    "Order paid",
                    order_id=str(order.id),
                    total=format_minor(order.total, order.currency),
                    settlement_reference=result.reference,
                )

        repo.add(order)
        return {"order_id": str(order.id), "transitioned": True}
