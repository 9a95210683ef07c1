import threading

import pytest

CUSTOMER = "cust-001"
DESTINATION = {"postal_code": "62701", "country": "US"}
TOKEN = {"token": "tok_visa"}


@pytest.fixture()
def quoted_cart(make_product, fake_payment, fake_shipping):
    """One product (price 1000, stock 5) in the cart, quoted with the fake providers.

    Returns ``(product_id, quote)``. The quote totals 1500: 1000 + 500 shipping, no tax.
    """
    from checkout.cart.store import add_to_cart
    from checkout.quote.engine import quote_checkout

    product_id = make_product(price=1000, stock=5)
    add_to_cart(CUSTOMER, product_id, 1)
    quote = quote_checkout(CUSTOMER, "fake-pay", "fake-ship", DESTINATION)
    return product_id, quote


@pytest.fixture()
def race():
    """Run callables on separate threads released together.

    Each thread gets its own domain context. Returns ``(results, errors)``.
    """
    from checkout.domain import checkout

    def _race(*calls, timeout=10):
        barrier = threading.Barrier(len(calls))
        results, errors = [], []

        def _run(call):
            with checkout.domain_context():
                barrier.wait()
                try:
                    results.append(call())
                except Exception as exc:
                    errors.append(exc)

        threads = [threading.Thread(target=_run, args=(call,)) for call in calls]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout)
        assert not any(thread.is_alive() for thread in threads)
        return results, errors

    return _race
