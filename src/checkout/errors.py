"""Checkout error taxonomy.

Every failure surfaced by the checkout core is one of these kinds. Malformed
input is reported with Protean's ``ValidationError`` instead.

    CheckoutError
    ├── NotFound
    ├── InsufficientStock
    │   └── StockUnavailable
    ├── MissingFields
    ├── QuoteExpired
    ├── InvalidState
    ├── ProviderDeclined
    └── ProviderTimeout
"""

from typing import Any


class CheckoutError(Exception):
    """Base class for all checkout errors.

    Attributes:
        message: Human-readable description
        kind: Machine-readable error kind, stable across releases
        status_code: HTTP status the API layer responds with
        details: Extra context (ids, quantities, field keys)
    """

    kind: str = "CheckoutError"
    status_code: int = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.kind, "message": self.message, **self.details}

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r})"


class NotFound(CheckoutError):
    """Unknown cart item, order, quote, product or provider id."""

    kind = "NotFound"
    status_code = 404


class InsufficientStock(CheckoutError):
    """Requested quantity exceeds available stock."""

    kind = "InsufficientStock"
    status_code = 409

    def __init__(self, product_id: str, requested: int, available: int, message: str | None = None):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            message or f"Insufficient stock: {available} available, {requested} requested",
            details={"product_id": product_id, "requested": requested, "available": available},
        )


class StockUnavailable(InsufficientStock):
    """Quote-time stock pre-check failed. Final enforcement happens at reservation."""

    kind = "StockUnavailable"


class MissingFields(CheckoutError):
    """A provider requires input fields that were not supplied."""

    kind = "MissingFields"
    status_code = 422

    def __init__(self, provider_id: str, fields: list[str]):
        self.provider_id = provider_id
        self.fields = list(fields)
        super().__init__(
            f"Missing required fields for {provider_id}: {', '.join(self.fields)}",
            details={"provider_id": provider_id, "fields": self.fields},
        )


class QuoteExpired(CheckoutError):
    """The quote is past its expiry or no longer matches the cart."""

    kind = "QuoteExpired"
    status_code = 410


class InvalidState(CheckoutError):
    """Operation is not valid for the order's current status."""

    kind = "InvalidState"
    status_code = 409


class ProviderDeclined(CheckoutError):
    """The payment provider refused the settlement."""

    kind = "ProviderDeclined"
    status_code = 402


class ProviderTimeout(CheckoutError):
    """The payment provider did not answer within the settlement timeout."""

    kind = "ProviderTimeout"
    status_code = 504

