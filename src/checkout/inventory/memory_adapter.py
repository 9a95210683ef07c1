"""In-memory inventory ledger.

Counters and reservations live in process memory. Every mutation of a
product's counter happens while holding that product's lock, so two
reservations racing for the last unit can never both succeed. Expired
reservations are swept lazily whenever their product is touched, and in bulk
by ``release_expired``.
"""

import threading
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import structlog
from protean.exceptions import ValidationError

from checkout.errors import InsufficientStock, InvalidState, NotFound
from checkout.inventory.port import ReservationStatus, ReservationToken, StockLedger
from checkout.utils.locks import KeyedLocks
from checkout.utils.settings import quote_ttl_seconds

logger = structlog.get_logger(__name__)


@dataclass
class _Reservation:
    id: str
    product_id: str
    quantity: int
    expires_at: datetime
    status: ReservationStatus = ReservationStatus.ACTIVE


class InMemoryStockLedger(StockLedger):
    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))
        self._locks = KeyedLocks()
        self._registry_lock = threading.Lock()
        self._available: dict[str, int] = {}
        self._reservations: dict[str, _Reservation] = {}
        self._active_by_product: dict[str, set[str]] = {}

    # -------------------------------------------------------------------
    # Stock levels
    # -------------------------------------------------------------------
    def stock_product(self, product_id: str, quantity: int) -> None:
        if quantity < 0:
            raise ValidationError({"quantity": ["Stock cannot be negative"]})
        product_id = str(product_id)
        with self._locks.hold(product_id):
            with self._registry_lock:
                self._available[product_id] = quantity
                self._active_by_product.setdefault(product_id, set())
        logger.info("Product stocked", product_id=product_id, quantity=quantity)

    def restock(self, product_id: str, quantity: int) -> int:
        if quantity < 1:
            raise ValidationError({"quantity": ["Restock quantity must be at least 1"]})
        product_id = str(product_id)
        with self._locks.hold(product_id):
            self._require_product(product_id)
            self._sweep_product(product_id, self._clock())
            self._available[product_id] += quantity
            level = self._available[product_id]
        logger.info("Product restocked", product_id=product_id, quantity=quantity, available=level)
        return level

    def available(self, product_id: str) -> int:
        product_id = str(product_id)
        with self._locks.hold(product_id):
            if product_id not in self._available:
                return 0
            self._sweep_product(product_id, self._clock())
            return self._available[product_id]

    def reserved(self, product_id: str) -> int:
        """Units currently held by active reservations."""
        product_id = str(product_id)
        with self._locks.hold(product_id):
            self._sweep_product(product_id, self._clock())
            return sum(self._reservations[rid].quantity for rid in self._active_by_product.get(product_id, ()))

    # -------------------------------------------------------------------
    # Reservation protocol
    # -------------------------------------------------------------------
    def reserve(self, product_id: str, quantity: int, expires_at: datetime | None = None) -> ReservationToken:
        if quantity < 1:
            raise ValidationError({"quantity": ["Reservation quantity must be at least 1"]})

        product_id = str(product_id)
        now = self._clock()
        if expires_at is None:
            expires_at = now + timedelta(seconds=quote_ttl_seconds())

        with self._locks.hold(product_id):
            self._require_product(product_id)
            self._sweep_product(product_id, now)

            available = self._available[product_id]
            if available < quantity:
                logger.info(
                    "Reservation rejected",
                    product_id=product_id,
                    requested=quantity,
                    available=available,
                )
                raise InsufficientStock(product_id, requested=quantity, available=available)

            reservation = _Reservation(
                id=str(uuid4()),
                product_id=product_id,
                quantity=quantity,
                expires_at=expires_at,
            )
            self._available[product_id] = available - quantity
            self._reservations[reservation.id] = reservation
            self._active_by_product[product_id].add(reservation.id)

        logger.debug(
            "Stock reserved",
            reservation_id=reservation.id,
            product_id=product_id,
            quantity=quantity,
            expires_at=expires_at.isoformat(),
        )
        return ReservationToken(
            reservation_id=reservation.id,
            product_id=product_id,
            quantity=quantity,
            expires_at=expires_at,
        )

    def commit(self, reservation_id: str) -> None:
        reservation = self._get(reservation_id)
        with self._locks.hold(reservation.product_id):
            if reservation.status == ReservationStatus.COMMITTED:
                return
            if reservation.status == ReservationStatus.RELEASED:
                raise InvalidState(
                    f"Reservation {reservation_id} was already released",
                    details={"reservation_id": str(reservation_id)},
                )
            # An active reservation commits even when past its expiry, as long as
            # no sweep has released it yet.
            reservation.status = ReservationStatus.COMMITTED
            self._active_by_product[reservation.product_id].discard(reservation.id)

        logger.debug("Reservation committed", reservation_id=reservation.id, product_id=reservation.product_id)

    def release(self, reservation_id: str) -> None:
        reservation = self._get(reservation_id)
        with self._locks.hold(reservation.product_id):
            if reservation.status == ReservationStatus.RELEASED:
                return
            if reservation.status == ReservationStatus.COMMITTED:
                raise InvalidState(
                    f"Reservation {reservation_id} was already committed",
                    details={"reservation_id": str(reservation_id)},
                )
            self._release_locked(reservation)

        logger.debug("Reservation released", reservation_id=reservation.id, product_id=reservation.product_id)

    def status_of(self, reservation_id: str) -> ReservationStatus:
        reservation = self._get(reservation_id)
        with self._locks.hold(reservation.product_id):
            self._sweep_product(reservation.product_id, self._clock())
            return reservation.status

    def release_expired(self, now: datetime | None = None) -> int:
        now = now or self._clock()
        with self._registry_lock:
            product_ids = list(self._available)

        released = 0
        for product_id in product_ids:
            with self._locks.hold(product_id):
                released += self._sweep_product(product_id, now)

        if released:
            logger.info("Expired reservations released", released_count=released)
        return released

    # -------------------------------------------------------------------
    # Internals (callers hold the product lock)
    # -------------------------------------------------------------------
    def _require_product(self, product_id: str) -> None:
        if product_id not in self._available:
            raise NotFound(f"No stock record for product {product_id}", details={"product_id": product_id})

    def _get(self, reservation_id: str) -> _Reservation:
        reservation = self._reservations.get(str(reservation_id))
        if reservation is None:
            raise NotFound(
                f"Reservation {reservation_id} not found",
                details={"reservation_id": str(reservation_id)},
            )
        return reservation

    def _release_locked(self, reservation: _Reservation) -> None:
        reservation.status = ReservationStatus.RELEASED
        self._available[reservation.product_id] += reservation.quantity
        self._active_by_product[reservation.product_id].discard(reservation.id)

    def _sweep_product(self, product_id: str, now: datetime) -> int:
        expired = [
            self._reservations[rid]
            for rid in self._active_by_product.get(product_id, ())
            if self._reservations[rid].expires_at <= now
        ]
        for reservation in expired:
            self._release_locked(reservation)
            logger.info(
                "Reservation expired",
                reservation_id=reservation.id,
                product_id=product_id,
                quantity=reservation.quantity,
            )
        return len(expired)
