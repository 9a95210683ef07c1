"""Configurable fake providers for development and testing.

These simulate a payment processor and a carrier without any external
calls. They can be configured at runtime to succeed, decline or stall, and
they record every call they receive.
"""

import time
from collections.abc import Mapping, Sequence
from uuid import uuid4

from checkout.providers.port import (
    FieldDefinition,
    PaymentProvider,
    ProviderState,
    QuoteLineInput,
    Severity,
    SettlementResult,
    ShippingProvider,
    ShippingQuote,
)


class FakePaymentProvider(PaymentProvider):
    """Configurable fake payment provider."""

    name = "Fake Payment Provider"
    description = "Test double with configurable outcome."
    fields = (FieldDefinition(key="token", label="Payment token", required=True, placeholder="tok_test"),)
    default_states = (ProviderState("test_mode", Severity.INFO, "Outcomes are configured by the test harness."),)

    def __init__(self, provider_id: str = "fake-pay") -> None:
        self.provider_id = provider_id
        super().__init__()
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.delay_seconds: float = 0.0
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined", delay_seconds: float = 0.0) -> None:
        """Configure provider behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay_seconds = delay_seconds

    def settle(self, amount: int, currency: str, data: Mapping[str, str]) -> SettlementResult:
        self.calls.append({"method": "settle", "amount": amount, "currency": currency, "data": dict(data)})

        if self.delay_seconds:
            time.sleep(self.delay_seconds)

        if self.should_succeed:
            return SettlementResult(success=True, reference=f"fake_txn_{uuid4().hex[:12]}")
        return SettlementResult(success=False, failure_reason=self.failure_reason)

    def display(self, data: Mapping[str, str]) -> str:
        return f"Fake token {data.get('token', '')[-4:]}".rstrip()


class FakeShippingProvider(ShippingProvider):
    """Flat-rate fake carrier."""

    name = "Fake Carrier"
    description = "Test double charging a flat configurable rate."
    fields = (
        FieldDefinition(key="postal_code", label="Postal code", required=True),
        FieldDefinition(key="country", label="Country"),
        FieldDefinition(key="state", label="State"),
    )

    def __init__(self, provider_id: str = "fake-ship", cost: int = 500) -> None:
        self.provider_id = provider_id
        super().__init__()
        self.cost = cost
        self.calls: list[dict] = []

    def quote_shipping(self, lines: Sequence[QuoteLineInput], destination: Mapping[str, str]) -> ShippingQuote:
        self.calls.append({"method": "quote_shipping", "lines": list(lines), "destination": dict(destination)})
        return ShippingQuote(cost=self.cost)

    def display(self, destination: Mapping[str, str]) -> str:
        return f"Ship to {destination.get('postal_code', '')}"
