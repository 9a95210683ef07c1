"""Domain tests for the in-memory inventory ledger."""

import threading
from datetime import UTC, datetime, timedelta

import pytest
from checkout.errors import InsufficientStock, InvalidState, NotFound
from checkout.inventory import InMemoryStockLedger, ReservationStatus, get_ledger, reset_ledger, set_ledger
from protean.exceptions import ValidationError


class _Clock:
    def __init__(self):
        self.now = datetime(2030, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture()
def clock():
    return _Clock()


@pytest.fixture()
def ledger(clock):
    ledger = InMemoryStockLedger(clock=clock)
    ledger.stock_product("prod-1", 5)
    return ledger


class TestReserve:
    def test_reserve_decrements_available(self, ledger):
        token = ledger.reserve("prod-1", 2)
        assert ledger.available("prod-1") == 3
        assert token.product_id == "prod-1"
        assert token.quantity == 2

    def test_release_restores_stock(self, ledger):
        before = ledger.available("prod-1")
        token = ledger.reserve("prod-1", 3)
        assert ledger.available("prod-1") == before - 3

        ledger.release(token.reservation_id)
        assert ledger.available("prod-1") == before

    def test_commit_leaves_counter_decremented(self, ledger):
        token = ledger.reserve("prod-1", 2)
        ledger.commit(token.reservation_id)
        assert ledger.available("prod-1") == 3
        assert ledger.status_of(token.reservation_id) == ReservationStatus.COMMITTED

    def test_reserve_more_than_available_fails(self, ledger):
        with pytest.raises(InsufficientStock) as exc:
            ledger.reserve("prod-1", 6)
        assert exc.value.requested == 6
        assert exc.value.available == 5
        assert ledger.available("prod-1") == 5

    def test_reserve_exactly_available_succeeds(self, ledger):
        ledger.reserve("prod-1", 5)
        assert ledger.available("prod-1") == 0

    def test_reserve_zero_is_invalid(self, ledger):
        with pytest.raises(ValidationError):
            ledger.reserve("prod-1", 0)

    def test_reserve_unknown_product(self, ledger):
        with pytest.raises(NotFound):
            ledger.reserve("missing", 1)

    def test_default_expiry_follows_quote_ttl(self, ledger, clock, monkeypatch):
        monkeypatch.setenv("CHECKOUT_QUOTE_TTL_SECONDS", "60")
        token = ledger.reserve("prod-1", 1)
        assert token.expires_at == clock.now + timedelta(seconds=60)


class TestCommitAndRelease:
    def test_release_is_idempotent(self, ledger):
        token = ledger.reserve("prod-1", 2)
        ledger.release(token.reservation_id)
        ledger.release(token.reservation_id)
        assert ledger.available("prod-1") == 5

    def test_commit_is_idempotent(self, ledger):
        token = ledger.reserve("prod-1", 2)
        ledger.commit(token.reservation_id)
        ledger.commit(token.reservation_id)
        assert ledger.available("prod-1") == 3

    def test_release_after_commit_is_rejected(self, ledger):
        token = ledger.reserve("prod-1", 2)
        ledger.commit(token.reservation_id)
        with pytest.raises(InvalidState):
            ledger.release(token.reservation_id)
        assert ledger.available("prod-1") == 3

    def test_commit_after_release_is_rejected(self, ledger):
        token = ledger.reserve("prod-1", 2)
        ledger.release(token.reservation_id)
        with pytest.raises(InvalidState):
            ledger.commit(token.reservation_id)

    def test_unknown_reservation(self, ledger):
        with pytest.raises(NotFound):
            ledger.commit("nope")


class TestExpiry:
    def test_lapsed_reservation_released_on_next_touch(self, ledger, clock):
        token = ledger.reserve("prod-1", 4, expires_at=clock.now + timedelta(minutes=15))
        assert ledger.available("prod-1") == 1

        clock.advance(minutes=15)
        assert ledger.available("prod-1") == 5
        assert ledger.status_of(token.reservation_id) == ReservationStatus.RELEASED
        assert not ledger.is_active(token.reservation_id)

    def test_unexpired_reservation_stays_active(self, ledger, clock):
        token = ledger.reserve("prod-1", 1, expires_at=clock.now + timedelta(minutes=15))
        clock.advance(minutes=14)
        assert ledger.is_active(token.reservation_id)

    def test_release_expired_sweeps_all_products(self, ledger, clock):
        ledger.stock_product("prod-2", 3)
        ledger.reserve("prod-1", 1, expires_at=clock.now + timedelta(minutes=1))
        ledger.reserve("prod-2", 2, expires_at=clock.now + timedelta(minutes=1))
        ledger.reserve("prod-2", 1, expires_at=clock.now + timedelta(hours=1))

        released = ledger.release_expired(clock.now + timedelta(minutes=5))

        assert released == 2
        assert ledger.available("prod-1") == 5
        assert ledger.available("prod-2") == 2

    def test_committed_reservation_never_expires(self, ledger, clock):
        token = ledger.reserve("prod-1", 2, expires_at=clock.now + timedelta(minutes=1))
        ledger.commit(token.reservation_id)
        clock.advance(hours=1)
        assert ledger.release_expired() == 0
        assert ledger.available("prod-1") == 3

    def test_expired_reservation_cannot_be_committed(self, ledger, clock):
        token = ledger.reserve("prod-1", 2, expires_at=clock.now + timedelta(minutes=1))
        clock.advance(minutes=2)
        ledger.release_expired()
        with pytest.raises(InvalidState):
            ledger.commit(token.reservation_id)


class TestStockLevels:
    def test_restock_adds_units(self, ledger):
        assert ledger.restock("prod-1", 3) == 8

    def test_stock_product_sets_level(self, ledger):
        ledger.stock_product("prod-1", 2)
        assert ledger.available("prod-1") == 2

    def test_negative_stock_is_invalid(self, ledger):
        with pytest.raises(ValidationError):
            ledger.stock_product("prod-1", -1)

    def test_unknown_product_has_nothing_available(self, ledger):
        assert ledger.available("missing") == 0

    def test_reserved_counts_active_holds(self, ledger):
        ledger.reserve("prod-1", 2)
        token = ledger.reserve("prod-1", 1)
        ledger.commit(token.reservation_id)
        assert ledger.reserved("prod-1") == 2


class TestConcurrency:
    def test_two_reservations_race_for_last_unit(self):
        ledger = InMemoryStockLedger()
        ledger.stock_product("last", 1)
        barrier = threading.Barrier(2)
        outcomes = []

        def attempt():
            barrier.wait()
            try:
                ledger.reserve("last", 1)
                outcomes.append("reserved")
            except InsufficientStock:
                outcomes.append("insufficient")

        threads = [threading.Thread(target=attempt) for _ in range(2)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert sorted(outcomes) == ["insufficient", "reserved"]
        assert ledger.available("last") == 0

    def test_many_buyers_never_oversell(self):
        ledger = InMemoryStockLedger()
        ledger.stock_product("hot", 10)
        barrier = threading.Barrier(25)
        reserved = []

        def attempt():
            barrier.wait()
            try:
                reserved.append(ledger.reserve("hot", 1))
            except InsufficientStock:
                pass

        threads = [threading.Thread(target=attempt) for _ in range(25)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert len(reserved) == 10
        assert ledger.available("hot") == 0


class TestLedgerFactory:
    def test_default_is_in_memory(self):
        reset_ledger()
        assert isinstance(get_ledger(), InMemoryStockLedger)

    def test_set_ledger_overrides(self):
        custom = InMemoryStockLedger()
        set_ledger(custom)
        assert get_ledger() is custom
