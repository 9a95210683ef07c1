"""Tests for the Order aggregate and its state machine."""

import json

import pytest
from checkout.errors import InvalidState
from checkout.order.events import OrderCancelled, OrderCreated, OrderFailed, OrderPaid
from checkout.order.order import Order, OrderStatus
from checkout.quote.quote import CheckoutQuote


@pytest.fixture()
def quote():
    return CheckoutQuote.issue(
        customer_id="cust-001",
        lines=[
            {"product_id": "prod-001", "product_name": "Mug", "quantity": 1, "unit_price": 1000},
            {"product_id": "prod-002", "product_name": "Tea", "quantity": 3, "unit_price": 200},
        ],
        payment_provider_id="fake-pay",
        shipping_provider_id="fake-ship",
        destination={"postal_code": "62701"},
        shipping_display="Ship to 62701",
        shipping_cost=500,
        tax=0,
        currency="USD",
        ttl_seconds=900,
    )


@pytest.fixture()
def order(quote):
    return Order.place(quote, {"prod-001": "res-1", "prod-002": "res-2"})


class TestPlace:
    def test_copies_quote_snapshot(self, order, quote):
        assert order.status == OrderStatus.PENDING.value
        assert order.total == quote.total == 2100
        assert str(order.quote_id) == str(quote.id)
        assert order.destination == {"postal_code": "62701"}
        assert order.expires_at == quote.expires_at

    def test_lines_carry_reservations(self, order):
        assert order.reservation_ids == ["res-1", "res-2"]
        assert order.quantities == {"prod-001": 1, "prod-002": 3}

    def test_raises_order_created(self, order):
        event = order._events[-1]
        assert isinstance(event, OrderCreated)
        items = json.loads(event.items)
        assert [item["reservation_id"] for item in items] == ["res-1", "res-2"]


class TestTransitions:
    def test_mark_paid(self, order):
        order.mark_paid("txn-1", "Visa •••• 4242")
        assert order.status == OrderStatus.PAID.value
        assert order.settlement_reference == "txn-1"
        assert order.settled_at is not None
        assert order.is_terminal
        assert isinstance(order._events[-1], OrderPaid)

    def test_mark_failed(self, order):
        order.mark_failed("ProviderDeclined", "Card declined")
        assert order.status == OrderStatus.FAILED.value
        assert order.failure_kind == "ProviderDeclined"
        assert order.is_failed
        assert isinstance(order._events[-1], OrderFailed)

    def test_cancel_reports_as_failure(self, order):
        order.cancel("changed my mind")
        assert order.status == OrderStatus.CANCELLED.value
        assert order.is_failed
        assert isinstance(order._events[-1], OrderCancelled)

    @pytest.mark.parametrize("first", ["paid", "failed", "cancelled"])
    def test_terminal_states_reject_further_transitions(self, order, first):
        if first == "paid":
            order.mark_paid("txn-1", "card")
        elif first == "failed":
            order.mark_failed("ProviderDeclined", "no")
        else:
            order.cancel()

        with pytest.raises(InvalidState):
            order.mark_paid("txn-2", "card")
        with pytest.raises(InvalidState):
            order.mark_failed("ProviderDeclined", "again")
        assert not order.can_cancel
        with pytest.raises(InvalidState):
            order.cancel()

    def test_pending_is_not_terminal(self, order):
        assert not order.is_terminal
        assert not order.is_failed
        assert order.can_cancel
