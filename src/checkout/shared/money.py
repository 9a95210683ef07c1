"""Money value object — integer minor units with an ISO-4217 currency."""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Integer, String

from checkout.domain import checkout

VALID_CURRENCIES = frozenset(
    {
        "USD",
        "EUR",
        "GBP",
        "JPY",
        "CAD",
        "AUD",
        "CHF",
        "SEK",
        "NOK",
        "DKK",
        "NZD",
        "SGD",
    }
)


@checkout.value_object
class Money:
    """A monetary amount in minor units (cents). Never a float."""

    amount = Integer(required=True, min_value=0)
    currency = String(max_length=3, default="USD")

    @invariant.post
    def currency_must_be_valid_iso_4217(self):
        if self.currency not in VALID_CURRENCIES:
            raise ValidationError({"currency": [f"Unsupported currency: {self.currency}"]})


def format_minor(amount: int, currency: str = "USD") -> str:
    """Render minor units for humans: ``format_minor(1599) == "15.99 USD"``."""
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(int(amount)), 100)
    return f"{sign}{major}.{minor:02d} {currency}"
