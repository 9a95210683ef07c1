"""Checkout provider port (abstract interfaces).

A provider is a pluggable capability module dispatched by id. Payment
providers settle an amount; shipping providers quote a cost for a
destination. Each declares the input fields it needs and carries a list of
severity-tagged states describing its current operability.
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any


class ProviderKind(Enum):
    PAYMENT = "payment"
    SHIPPING = "shipping"


class Severity(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_SEVERITY_RANK = {Severity.INFO: 0, Severity.SUCCESS: 1, Severity.WARNING: 2, Severity.ERROR: 3}


class FieldType(Enum):
    TEXT = "text"
    NUMBER = "number"
    CHECKBOX = "checkbox"
    SELECT = "select"


@dataclass(frozen=True)
class FieldOption:
    value: str
    label: str


@dataclass(frozen=True)
class FieldDefinition:
    """An input a provider expects from the caller."""

    key: str
    label: str
    type: FieldType = FieldType.TEXT
    required: bool = False
    placeholder: str = ""
    help_text: str = ""
    options: tuple[FieldOption, ...] = ()


@dataclass(frozen=True)
class ProviderState:
    code: str
    severity: Severity
    message: str


@dataclass(frozen=True)
class SettlementResult:
    """Outcome of a payment settlement attempt."""

    success: bool
    reference: str | None = None
    failure_reason: str | None = None
    states: tuple[ProviderState, ...] = ()


@dataclass(frozen=True)
class ShippingQuote:
    """Cost (minor units) a shipping provider charges for a destination."""

    cost: int
    states: tuple[ProviderState, ...] = ()


@dataclass(frozen=True)
class QuoteLineInput:
    """What a shipping provider sees of the cart being shipped."""

    product_id: str
    quantity: int
    unit_price: int


def normalize_input(data: Mapping[str, Any] | None) -> dict[str, str]:
    """Flatten caller input to trimmed strings; ``None`` values are dropped."""
    normalized = {}
    for key, value in (data or {}).items():
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        normalized[str(key)] = str(value).strip()
    return normalized


class Provider(ABC):
    """Abstract checkout provider."""

    kind: ProviderKind
    provider_id: str
    name: str
    description: str = ""
    fields: tuple[FieldDefinition, ...] = ()
    default_states: tuple[ProviderState, ...] = ()

    def __init__(self) -> None:
        self.enabled: bool = True
        self.states: list[ProviderState] = list(self.default_states)

    @property
    def severity(self) -> Severity:
        """The worst severity among the provider's current states."""
        if not self.states:
            return Severity.INFO
        return max((state.severity for state in self.states), key=_SEVERITY_RANK.__getitem__)

    @property
    def is_operable(self) -> bool:
        return self.severity != Severity.ERROR

    def required_keys(self) -> list[str]:
        return [f.key for f in self.fields if f.required]

    def missing_fields(self, data: Mapping[str, Any] | None) -> list[str]:
        """Required field keys absent (or blank) in ``data``, in declaration order."""
        normalized = normalize_input(data)
        return [key for key in self.required_keys() if not normalized.get(key)]

    def accepted_input(self, data: Mapping[str, Any] | None) -> dict[str, str]:
        """Keep only the declared fields, normalized to strings."""
        declared = {f.key for f in self.fields}
        return {k: v for k, v in normalize_input(data).items() if k in declared and v != ""}

    def describe(self) -> dict[str, Any]:
        return {
            "id": self.provider_id,
            "kind": self.kind.value,
            "name": self.name,
            "description": self.description,
            "enabled": self.enabled,
            "severity": self.severity.value,
            "fields": [
                {
                    "key": f.key,
                    "label": f.label,
                    "type": f.type.value,
                    "required": f.required,
                    "placeholder": f.placeholder,
                    "help_text": f.help_text,
                    "options": [{"value": o.value, "label": o.label} for o in f.options],
                }
                for f in self.fields
            ],
            "states": [{"code": s.code, "severity": s.severity.value, "message": s.message} for s in self.states],
        }


class PaymentProvider(Provider):
    kind = ProviderKind.PAYMENT

    @abstractmethod
    def settle(self, amount: int, currency: str, data: Mapping[str, str]) -> SettlementResult:
        """Capture ``amount`` minor units. Declines are results, not exceptions."""
        ...

    @abstractmethod
    def display(self, data: Mapping[str, str]) -> str:
        """Human-readable payment method, e.g. ``Visa •••• 4242``."""
        ...


class ShippingProvider(Provider):
    kind = ProviderKind.SHIPPING

    @abstractmethod
    def quote_shipping(self, lines: Sequence[QuoteLineInput], destination: Mapping[str, str]) -> ShippingQuote:
        """Shipping cost for the lines to ``destination``. Callers check required fields first."""
        ...

    @abstractmethod
    def display(self, destination: Mapping[str, str]) -> str:
        """Human-readable destination, e.g. ``1 Main St, Springfield, IL, 62701, US``."""
        ...
