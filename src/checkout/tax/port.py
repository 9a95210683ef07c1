"""Tax calculator port."""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence

from checkout.providers.port import QuoteLineInput


def round_half_up(numerator: int, denominator: int) -> int:
    """Integer division rounding halves away from zero (amounts are non-negative)."""
    return (numerator * 2 + denominator) // (denominator * 2)


class TaxCalculator(ABC):
    """Computes tax in minor units for a priced cart and destination."""

    policy: str

    @abstractmethod
    def compute_tax(self, lines: Sequence[QuoteLineInput], destination: Mapping[str, str], shipping_cost: int) -> int:
        ...

    @staticmethod
    def taxable_base(lines: Sequence[QuoteLineInput], shipping_cost: int) -> int:
        return max(0, sum(line.unit_price * line.quantity for line in lines) + shipping_cost)
