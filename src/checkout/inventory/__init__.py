"""Inventory ledger factory.

Provides get_ledger() / set_ledger() / reset_ledger() so the process-wide
ledger can be swapped for tests or a persistent adapter.
"""

from checkout.inventory.memory_adapter import InMemoryStockLedger
from checkout.inventory.port import ReservationStatus, ReservationToken, StockLedger

__all__ = [
    "InMemoryStockLedger",
    "ReservationStatus",
    "ReservationToken",
    "StockLedger",
    "get_ledger",
    "reset_ledger",
    "set_ledger",
]

_current_ledger: StockLedger | None = None


def get_ledger() -> StockLedger:
    """Return the current inventory ledger. Defaults to InMemoryStockLedger."""
    global _current_ledger
    if _current_ledger is None:
        _current_ledger = InMemoryStockLedger()
    return _current_ledger


def set_ledger(ledger: StockLedger) -> None:
    """Override the active ledger (useful for tests)."""
    global _current_ledger
    _current_ledger = ledger


def reset_ledger() -> None:
    """Reset to a fresh default ledger on next access."""
    global _current_ledger
    _current_ledger = None
