"""Inventory ledger port (abstract interface).

The ledger owns per-product stock counters. Stock is only ever mutated
through this contract:

    reserve  -> provisional decrement, returns a ReservationToken
    commit   -> makes the decrement permanent (counter untouched)
    release  -> restores the counter

A reservation that is neither committed nor released before ``expires_at``
is released automatically.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ReservationStatus(Enum):
    ACTIVE = "Active"
    COMMITTED = "Committed"
    RELEASED = "Released"


@dataclass(frozen=True)
class ReservationToken:
    """Handle returned by a successful reservation."""

    reservation_id: str
    product_id: str
    quantity: int
    expires_at: datetime


class StockLedger(ABC):
    """Abstract inventory ledger."""

    @abstractmethod
    def stock_product(self, product_id: str, quantity: int) -> None:
        """Set the available quantity for a product, creating its counter if needed."""
        ...

    @abstractmethod
    def restock(self, product_id: str, quantity: int) -> int:
        """Add units to a product's available stock. Returns the new level."""
        ...

    @abstractmethod
    def available(self, product_id: str) -> int:
        """Units that can still be reserved right now."""
        ...

    @abstractmethod
    def reserve(self, product_id: str, quantity: int, expires_at: datetime | None = None) -> ReservationToken:
        """Hold ``quantity`` units or raise ``InsufficientStock``."""
        ...

    @abstractmethod
    def commit(self, reservation_id: str) -> None:
        """Make a reservation permanent. Idempotent for committed reservations."""
        ...

    @abstractmethod
    def release(self, reservation_id: str) -> None:
        """Return a reservation's units to stock. Idempotent for released reservations."""
        ...

    @abstractmethod
    def status_of(self, reservation_id: str) -> ReservationStatus:
        """Current status of a reservation (after applying expiry)."""
        ...

    @abstractmethod
    def release_expired(self, now: datetime | None = None) -> int:
        """Release every active reservation past its expiry. Returns how many were released."""
        ...

    def is_active(self, reservation_id: str) -> bool:
        return self.status_of(reservation_id) == ReservationStatus.ACTIVE
