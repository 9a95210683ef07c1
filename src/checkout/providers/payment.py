"""Sandbox payment providers.

``dummy-card`` approves any well-formed, unexpired card unless the number
ends in ``0000``. ``dummy-wallet`` settles instantly for any account email.
"""

from collections.abc import Mapping
from datetime import UTC, datetime
from uuid import uuid4

from checkout.providers.port import (
    FieldDefinition,
    FieldType,
    PaymentProvider,
    ProviderState,
    SettlementResult,
    Severity,
)


def _digits_only(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit())


def detect_card_brand(number: str) -> str:
    if number.startswith("4"):
        return "Visa"
    if number.startswith(("34", "37")):
        return "American Express"
    if number.startswith("5"):
        return "Mastercard"
    if number.startswith("6"):
        return "Discover"
    return "Card"


class DummyCardProvider(PaymentProvider):
    provider_id = "dummy-card"
    name = "Dummy Card Gateway"
    description = "Simulates card-based authorization with test outcomes."
    fields = (
        FieldDefinition(key="cardholder_name", label="Cardholder name", required=True, placeholder="Alex Merchant"),
        FieldDefinition(
            key="card_number",
            label="Card number",
            required=True,
            placeholder="4242424242424242",
            help_text="Use a number ending in 0000 to simulate a decline.",
        ),
        FieldDefinition(key="exp_month", label="Exp month", type=FieldType.NUMBER, required=True, placeholder="12"),
        FieldDefinition(key="exp_year", label="Exp year", type=FieldType.NUMBER, required=True),
    )
    default_states = (ProviderState("sandbox_mode", Severity.INFO, "Sandbox only. No real payment capture."),)

    def __init__(self, clock=None) -> None:
        super().__init__()
        self._clock = clock or (lambda: datetime.now(UTC))

    def _decline_reason(self, data: Mapping[str, str]) -> str | None:
        number = _digits_only(data.get("card_number", ""))
        if len(number) < 12 or len(number) > 19:
            return "Card number must be between 12 and 19 digits"
        if number.endswith("0000"):
            return "Card declined by issuer"
        try:
            year = int(data.get("exp_year", ""))
            month = int(data.get("exp_month", ""))
        except ValueError:
            return "Card expiry must be numeric"
        if not 1 <= month <= 12:
            return "Card expiry month must be between 1 and 12"
        now = self._clock()
        if (year, month) < (now.year, now.month):
            return "Card expiry must be in the future"
        return None

    def settle(self, amount: int, currency: str, data: Mapping[str, str]) -> SettlementResult:
        reason = self._decline_reason(data)
        if reason is not None:
            return SettlementResult(
                success=False,
                failure_reason=reason,
                states=(ProviderState("card_declined", Severity.ERROR, reason),),
            )
        return SettlementResult(success=True, reference=f"dc_{uuid4().hex[:12]}")

    def display(self, data: Mapping[str, str]) -> str:
        number = _digits_only(data.get("card_number", ""))
        if len(number) < 4:
            return "Card"
        return f"{detect_card_brand(number)} •••• {number[-4:]}"


class DummyWalletProvider(PaymentProvider):
    provider_id = "dummy-wallet"
    name = "Dummy Wallet"
    description = "Simulates redirect wallet payments."
    fields = (
        FieldDefinition(key="wallet_email", label="Wallet account email", required=True, placeholder="buyer@example.com"),
        FieldDefinition(
            key="requires_redirect",
            label="Requires redirect",
            type=FieldType.CHECKBOX,
            help_text="Enable to preview a requires_action state.",
        ),
    )
    default_states = (ProviderState("instant_settlement", Severity.SUCCESS, "Settlement callback simulated instantly."),)

    def settle(self, amount: int, currency: str, data: Mapping[str, str]) -> SettlementResult:
        email = data.get("wallet_email", "")
        if "@" not in email:
            return SettlementResult(success=False, failure_reason="Wallet account email is not valid")

        states = ()
        if data.get("requires_redirect", "").lower() == "true":
            states = (
                ProviderState("requires_action", Severity.INFO, "Wallet provider requires a redirect before confirmation."),
            )
        return SettlementResult(success=True, reference=f"dw_{uuid4().hex[:12]}", states=states)

    def display(self, data: Mapping[str, str]) -> str:
        email = data.get("wallet_email", "").strip()
        return f"Dummy Wallet {email}" if email else "Dummy Wallet"
