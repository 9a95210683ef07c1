import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    with checkout_bed.domain_context():
        yield

        from protean import current_domain

        # Clear all databases
        for _, provider in current_domain.providers.items():
            provider._data_reset()

        # Drain event stores
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def fake_payment():
    """A fake payment provider registered as ``fake-pay``."""
    from checkout.providers import get_registry
    from checkout.providers.fake_adapter import FakePaymentProvider

    provider = FakePaymentProvider()
    get_registry().register(provider)
    return provider


@pytest.fixture()
def fake_shipping():
    """A flat 500 fake carrier registered as ``fake-ship``."""
    from checkout.providers import get_registry
    from checkout.providers.fake_adapter import FakeShippingProvider

    provider = FakeShippingProvider(cost=500)
    get_registry().register(provider)
    return provider


@pytest.fixture()
def make_product():
    """Register a product and open its stock counter. Returns the product id."""
    from checkout.catalogue.registration import RegisterProduct
    from protean import current_domain

    counter = {"n": 0}

    def _make(price=1000, stock=5, name=None, **overrides):
        counter["n"] += 1
        attributes = {
            "sku": f"SKU-{counter['n']:03d}",
            "name": name or f"Product {counter['n']}",
            "price": price,
            "initial_stock": stock,
        }
        attributes.update(overrides)
        return current_domain.process(RegisterProduct(**attributes), asynchronous=False)

    return _make
