"""Tax calculator factory.

The policy is chosen by the CHECKOUT_TAX_POLICY environment variable
(``none`` by default); set_calculator() overrides it.
"""

from checkout.tax.calculators import FlatRateTax, NoTax, UsSalesTax
from checkout.tax.port import TaxCalculator
from checkout.utils.settings import tax_policy, tax_rate_bps

_current_calculator: TaxCalculator | None = None


def get_calculator() -> TaxCalculator:
    """Return the configured tax calculator (singleton)."""
    global _current_calculator
    if _current_calculator is None:
        policy = tax_policy()
        if policy == "none":
            _current_calculator = NoTax()
        elif policy == "flat":
            _current_calculator = FlatRateTax(tax_rate_bps())
        elif policy == "us_sales":
            _current_calculator = UsSalesTax()
        else:
            raise ValueError(f"Unknown tax policy: {policy}")
    return _current_calculator


def set_calculator(calculator: TaxCalculator) -> None:
    global _current_calculator
    _current_calculator = calculator


def reset_calculator() -> None:
    """Reset the calculator singleton (useful for testing)."""
    global _current_calculator
    _current_calculator = None
