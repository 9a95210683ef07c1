"""Application tests for creating orders from quotes."""

from datetime import timedelta

import pytest
from checkout.cart.store import add_to_cart, find_cart
from checkout.catalogue.registration import ChangeProductPrice
from checkout.errors import InsufficientStock, InvalidState, NotFound, QuoteExpired
from checkout.inventory import ReservationStatus, get_ledger
from checkout.order.engine import cancel_order, create_order, get_order, list_orders, settle_order
from checkout.order.order import Order, OrderStatus
from checkout.quote.engine import quote_checkout
from checkout.quote.quote import CheckoutQuote, QuoteStatus
from checkout.utils.timestamps import utc_now
from protean import current_domain
from protean.exceptions import ValidationError

CUSTOMER = "cust-001"
DESTINATION = {"postal_code": "62701", "country": "US"}


class TestCreateOrder:
    def test_creates_pending_order_and_reserves_stock(self, quoted_cart):
        product_id, quote = quoted_cart
        order = create_order(CUSTOMER, quote.id)

        assert order.status == OrderStatus.PENDING.value
        assert order.total == 1500
        assert get_ledger().available(product_id) == 4
        assert get_ledger().status_of(order.reservation_ids[0]) == ReservationStatus.ACTIVE

    def test_order_copies_quote(self, quoted_cart):
        _, quote = quoted_cart
        order = create_order(CUSTOMER, quote.id)
        assert str(order.quote_id) == str(quote.id)
        assert order.destination == quote.destination
        assert order.payment_provider_id == "fake-pay"
        assert order.shipping_display == "Ship to 62701"

    def test_quote_is_accepted(self, quoted_cart):
        _, quote = quoted_cart
        order = create_order(CUSTOMER, quote.id)
        stored = current_domain.repository_for(CheckoutQuote).get(quote.id)
        assert stored.status == QuoteStatus.ACCEPTED.value
        assert str(stored.order_id) == str(order.id)

    def test_cart_is_untouched(self, quoted_cart):
        product_id, quote = quoted_cart
        create_order(CUSTOMER, quote.id)
        assert find_cart(CUSTOMER).quantity_of(product_id) == 1

    def test_quote_cannot_be_used_twice(self, quoted_cart):
        product_id, quote = quoted_cart
        create_order(CUSTOMER, quote.id)
        with pytest.raises(InvalidState):
            create_order(CUSTOMER, quote.id)
        assert get_ledger().available(product_id) == 4
        assert list_orders(CUSTOMER).total == 1

    def test_another_customers_quote_is_not_found(self, quoted_cart):
        _, quote = quoted_cart
        with pytest.raises(NotFound):
            create_order("cust-002", quote.id)


class TestStaleQuotes:
    def test_expired_quote_rejected(self, make_product, fake_payment, fake_shipping, monkeypatch):
        monkeypatch.setenv("CHECKOUT_QUOTE_TTL_SECONDS", "0")
        product_id = make_product(stock=5)
        add_to_cart(CUSTOMER, product_id, 1)
        quote = quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION)

        with pytest.raises(QuoteExpired):
            create_order(CUSTOMER, quote.id)
        assert get_ledger().available(product_id) == 5
        assert list_orders(CUSTOMER).orders == []

    def test_price_change_after_quote_rejected(self, quoted_cart):
        product_id, quote = quoted_cart
        current_domain.process(ChangeProductPrice(product_id=product_id, price=1100), asynchronous=False)
        with pytest.raises(QuoteExpired):
            create_order(CUSTOMER, quote.id)
        assert get_ledger().available(product_id) == 5

    def test_cart_change_after_quote_rejected(self, quoted_cart, make_product):
        _, quote = quoted_cart
        add_to_cart(CUSTOMER, make_product(), 1)
        with pytest.raises(QuoteExpired):
            create_order(CUSTOMER, quote.id)


class TestReservationRollback:
    def test_partial_reservation_is_rolled_back(self, make_product, fake_payment, fake_shipping):
        plenty = make_product(stock=5)
        scarce = make_product(stock=1)
        add_to_cart(CUSTOMER, plenty, 2)
        add_to_cart(CUSTOMER, scarce, 1)
        quote = quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION)

        get_ledger().reserve(scarce, 1)

        with pytest.raises(InsufficientStock):
            create_order(CUSTOMER, quote.id)
        assert get_ledger().available(plenty) == 5
        assert current_domain.repository_for(Order).find_by_quote(quote.id) is None
        assert current_domain.repository_for(CheckoutQuote).get(quote.id).status == QuoteStatus.OPEN.value

    def test_last_unit_goes_to_first_order(self, make_product, fake_payment, fake_shipping):
        product_id = make_product(stock=1)
        add_to_cart("cust-a", product_id, 1)
        add_to_cart("cust-b", product_id, 1)
        quote_a = quote_checkout("cust-a", "fake-pay", "fake-ship", DESTINATION)
        quote_b = quote_checkout("cust-b", "fake-pay", "fake-ship", DESTINATION)

        create_order("cust-a", quote_a.id)
        with pytest.raises(InsufficientStock):
            create_order("cust-b", quote_b.id)

        assert get_ledger().available(product_id) == 0
        assert list_orders("cust-a").total == 1
        assert list_orders("cust-b").total == 0


class TestOrderQueries:
    def test_list_orders_newest_first(self, quoted_cart):
        _, quote = quoted_cart
        first = create_order(CUSTOMER, quote.id)
        cancel_order(CUSTOMER, first.id)
        second_quote = quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION)
        second = create_order(CUSTOMER, second_quote.id)

        assert [str(o.id) for o in list_orders(CUSTOMER).orders] == [str(second.id), str(first.id)]

    def test_get_order_is_scoped_to_customer(self, quoted_cart):
        _, quote = quoted_cart
        order = create_order(CUSTOMER, quote.id)
        assert get_order(CUSTOMER, order.id).id == order.id
        with pytest.raises(NotFound):
            get_order("cust-002", order.id)


class TestDuplicateOrders:
    def test_second_quote_for_pending_cart_rejected(self, quoted_cart):
        product_id, first_quote = quoted_cart
        second_quote = quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION)
        order = create_order(CUSTOMER, first_quote.id)

        with pytest.raises(InvalidState) as exc:
            create_order(CUSTOMER, second_quote.id)

        assert exc.value.details["order_id"] == str(order.id)
        assert get_ledger().available(product_id) == 4
        assert list_orders(CUSTOMER).total == 1
        assert current_domain.repository_for(CheckoutQuote).get(second_quote.id).status == QuoteStatus.OPEN.value

    def test_new_order_allowed_after_cancel(self, quoted_cart):
        product_id, first_quote = quoted_cart
        first = create_order(CUSTOMER, first_quote.id)
        cancel_order(CUSTOMER, first.id)

        second = create_order(CUSTOMER, quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION).id)

        assert second.status == OrderStatus.PENDING.value
        assert get_ledger().available(product_id) == 4

    def test_different_cart_contents_allowed(self, quoted_cart, make_product):
        _, first_quote = quoted_cart
        create_order(CUSTOMER, first_quote.id)
        add_to_cart(CUSTOMER, make_product(), 1)

        second = create_order(CUSTOMER, quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION).id)

        assert second.status == OrderStatus.PENDING.value
        assert list_orders(CUSTOMER).total == 2

    def test_concurrent_submissions_create_one_order(self, quoted_cart, race):
        product_id, first_quote = quoted_cart
        second_quote = quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION)

        results, errors = race(
            lambda: create_order(CUSTOMER, first_quote.id),
            lambda: create_order(CUSTOMER, second_quote.id),
        )

        assert len(results) == 1
        assert [type(e) for e in errors] == [InvalidState]
        assert get_ledger().available(product_id) == 4
        assert list_orders(CUSTOMER).total == 1

    def test_same_quote_submitted_twice_concurrently(self, quoted_cart, race):
        product_id, quote = quoted_cart

        results, errors = race(
            lambda: create_order(CUSTOMER, quote.id),
            lambda: create_order(CUSTOMER, quote.id),
        )

        assert len(results) == 1
        assert [type(e) for e in errors] == [InvalidState]
        assert get_ledger().available(product_id) == 4


class TestConcurrentStock:
    def test_last_unit_race_has_one_winner(self, make_product, fake_payment, fake_shipping, race):
        product_id = make_product(stock=1)
        add_to_cart("cust-a", product_id, 1)
        add_to_cart("cust-b", product_id, 1)
        quote_a = quote_checkout("cust-a", "fake-pay", "fake-ship", DESTINATION)
        quote_b = quote_checkout("cust-b", "fake-pay", "fake-ship", DESTINATION)

        results, errors = race(
            lambda: create_order("cust-a", quote_a.id),
            lambda: create_order("cust-b", quote_b.id),
        )

        assert len(results) == 1
        assert [type(e) for e in errors] == [InsufficientStock]
        assert get_ledger().available(product_id) == 0
        assert list_orders("cust-a").total + list_orders("cust-b").total == 1


class TestOrderListing:
    @pytest.fixture()
    def three_orders(self, quoted_cart, fake_payment):
        """A cancelled, a paid and a pending order, oldest first."""
        _, quote = quoted_cart
        cancelled = create_order(CUSTOMER, quote.id)
        cancel_order(CUSTOMER, cancelled.id)
        paid = create_order(CUSTOMER, quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION).id)
        paid = settle_order(CUSTOMER, paid.id, payment_data={"token": "tok_visa"})
        # Settlement empties the cart; refill it for the last order.
        add_to_cart(CUSTOMER, quoted_cart[0], 1)
        pending = create_order(CUSTOMER, quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION).id)
        return cancelled, paid, pending

    def test_filter_by_status(self, three_orders):
        _, paid, _ = three_orders
        result = list_orders(CUSTOMER, status="paid")
        assert [str(o.id) for o in result.orders] == [str(paid.id)]
        assert result.total == 1

    def test_unknown_status_rejected(self, three_orders):
        with pytest.raises(ValidationError):
            list_orders(CUSTOMER, status="shipped")

    def test_pagination(self, three_orders):
        cancelled, paid, pending = three_orders

        first = list_orders(CUSTOMER, page=1, limit=2)
        second = list_orders(CUSTOMER, page=2, limit=2)

        assert [str(o.id) for o in first.orders] == [str(pending.id), str(paid.id)]
        assert [str(o.id) for o in second.orders] == [str(cancelled.id)]
        assert (first.total, first.total_pages) == (3, 2)

    def test_page_past_the_end_is_empty(self, three_orders):
        result = list_orders(CUSTOMER, page=5, limit=2)
        assert result.orders == []
        assert result.total == 3

    def test_out_of_range_paging_is_clamped(self, three_orders):
        result = list_orders(CUSTOMER, page=0, limit=500)
        assert (result.page, result.limit) == (1, 100)
        assert list_orders(CUSTOMER, limit=0).limit == 20

    def test_date_range_is_inclusive(self, three_orders):
        today = utc_now().date()
        assert list_orders(CUSTOMER, start_date=today, end_date=today).total == 3
        assert list_orders(CUSTOMER, start_date=today + timedelta(days=1)).total == 0
        assert list_orders(CUSTOMER, end_date=today - timedelta(days=1)).total == 0

    def test_end_before_start_rejected(self, three_orders):
        today = utc_now().date()
        with pytest.raises(ValidationError):
            list_orders(CUSTOMER, start_date=today, end_date=today - timedelta(days=1))

    def test_can_cancel_only_pending(self, three_orders):
        cancelled, paid, pending = three_orders
        flags = {str(o.id): o.can_cancel for o in list_orders(CUSTOMER).orders}
        assert flags == {str(cancelled.id): False, str(paid.id): False, str(pending.id): True}

    def test_empty_listing(self):
        result = list_orders("nobody")
        assert (result.orders, result.total, result.total_pages) == ([], 0, 0)
