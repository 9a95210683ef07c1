"""Runtime settings read from the environment.

Values are read on every call so tests (and operators) can change them
without restarting the process.
"""

import os

DEFAULT_QUOTE_TTL_SECONDS = 15 * 60
DEFAULT_SETTLEMENT_TIMEOUT_SECONDS = 10.0
DEFAULT_CURRENCY = "USD"


def _number(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def quote_ttl_seconds() -> int:
    """How long a quote (and the reservations made for it) stays valid."""
    return int(_number("CHECKOUT_QUOTE_TTL_SECONDS", DEFAULT_QUOTE_TTL_SECONDS))


def settlement_timeout_seconds() -> float:
    """Upper bound on a single payment provider settlement call."""
    return _number("CHECKOUT_SETTLEMENT_TIMEOUT_SECONDS", DEFAULT_SETTLEMENT_TIMEOUT_SECONDS)


def tax_policy() -> str:
    """Which tax calculator to build: ``none``, ``flat`` or ``us_sales``."""
    return os.environ.get("CHECKOUT_TAX_POLICY", "none").lower()


def tax_rate_bps() -> int:
    """Flat tax rate in basis points (825 == 8.25%)."""
    return int(_number("CHECKOUT_TAX_RATE_BPS", 0))


def currency() -> str:
    return os.environ.get("CHECKOUT_CURRENCY", DEFAULT_CURRENCY).upper()
