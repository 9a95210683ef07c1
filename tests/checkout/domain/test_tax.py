"""Domain tests for the tax calculators."""

import pytest
from checkout.providers.port import QuoteLineInput
from checkout.tax import get_calculator, reset_calculator
from checkout.tax.calculators import FlatRateTax, NoTax, UsSalesTax
from checkout.tax.port import round_half_up

LINES = [QuoteLineInput(product_id="p1", quantity=2, unit_price=1000)]


class TestRounding:
    @pytest.mark.parametrize("numerator,denominator,expected", [(5, 10, 1), (4, 10, 0), (15, 10, 2), (0, 10, 0)])
    def test_round_half_up(self, numerator, denominator, expected):
        assert round_half_up(numerator, denominator) == expected


class TestCalculators:
    def test_no_tax(self):
        assert NoTax().compute_tax(LINES, {}, 500) == 0

    def test_flat_rate_applies_to_subtotal_and_shipping(self):
        # (2000 + 500) * 10% = 250
        assert FlatRateTax(1000).compute_tax(LINES, {}, 500) == 250

    def test_flat_rate_rounds_half_up(self):
        # 2500 * 8.25% = 206.25
        assert FlatRateTax(825).compute_tax(LINES, {}, 500) == 206

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            FlatRateTax(-1)

    @pytest.mark.parametrize("state,expected", [("CA", 213), ("ny", 222), ("TX", 156), ("OR", 125)])
    def test_us_sales_tax_by_state(self, state, expected):
        assert UsSalesTax().compute_tax(LINES, {"state": state, "country": "US"}, 500) == expected

    def test_us_sales_tax_exempt(self):
        assert UsSalesTax().compute_tax(LINES, {"state": "CA", "tax_exempt": "true"}, 500) == 0

    def test_us_sales_tax_skips_foreign_destinations(self):
        assert UsSalesTax().compute_tax(LINES, {"state": "ON", "country": "CA"}, 500) == 0


class TestCalculatorFactory:
    def test_default_policy_is_no_tax(self, monkeypatch):
        monkeypatch.delenv("CHECKOUT_TAX_POLICY", raising=False)
        reset_calculator()
        assert isinstance(get_calculator(), NoTax)

    def test_flat_policy_reads_rate(self, monkeypatch):
        monkeypatch.setenv("CHECKOUT_TAX_POLICY", "flat")
        monkeypatch.setenv("CHECKOUT_TAX_RATE_BPS", "700")
        reset_calculator()
        calculator = get_calculator()
        assert isinstance(calculator, FlatRateTax)
        assert calculator.rate_bps == 700

    def test_unknown_policy(self, monkeypatch):
        monkeypatch.setenv("CHECKOUT_TAX_POLICY", "vibes")
        reset_calculator()
        with pytest.raises(ValueError):
            get_calculator()
