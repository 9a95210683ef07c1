"""Tax calculators.

``none``      no tax at all
``flat``      one rate, in basis points, on subtotal + shipping
``us_sales``  state-based US sales tax estimates on subtotal + shipping
"""

from collections.abc import Mapping, Sequence

from checkout.providers.port import QuoteLineInput
from checkout.tax.port import TaxCalculator, round_half_up


class NoTax(TaxCalculator):
    policy = "none"

    def compute_tax(self, lines: Sequence[QuoteLineInput], destination: Mapping[str, str], shipping_cost: int) -> int:
        return 0


class FlatRateTax(TaxCalculator):
    policy = "flat"

    def __init__(self, rate_bps: int) -> None:
        if rate_bps < 0:
            raise ValueError("Tax rate cannot be negative")
        self.rate_bps = rate_bps

    def compute_tax(self, lines: Sequence[QuoteLineInput], destination: Mapping[str, str], shipping_cost: int) -> int:
        return round_half_up(self.taxable_base(lines, shipping_cost) * self.rate_bps, 10_000)


class UsSalesTax(TaxCalculator):
    """Rates are per 100,000 so 8.875% stays an integer."""

    policy = "us_sales"
    RATES = {"CA": 8_500, "NY": 8_875, "TX": 6_250}
    DEFAULT_RATE = 5_000

    def compute_tax(self, lines: Sequence[QuoteLineInput], destination: Mapping[str, str], shipping_cost: int) -> int:
        if str(destination.get("tax_exempt", "")).lower() == "true":
            return 0
        if str(destination.get("country", "US")).upper() not in ("", "US"):
            return 0
        rate = self.RATES.get(str(destination.get("state", "")).upper(), self.DEFAULT_RATE)
        return round_half_up(self.taxable_base(lines, shipping_cost) * rate, 100_000)
