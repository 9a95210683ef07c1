"""Periodic expiry sweep.

Meant to be triggered by an external scheduler through the maintenance
endpoint. The ledger also releases lapsed reservations lazily, so the sweep
only bounds how long stale state stays visible.
"""

import structlog

from checkout.inventory import get_ledger
from checkout.order.engine import expire_pending_orders
from checkout.quote.engine import purge_expired_quotes
from checkout.utils.timestamps import utc_now

logger = structlog.get_logger(__name__)


def run_expiry_sweep(as_of=None) -> dict[str, int]:
    """Fail lapsed pending orders, release lapsed reservations and purge lapsed quotes."""
    as_of = as_of or utc_now()
    result = {
        "expired_orders": expire_pending_orders(as_of),
        "released_reservations": get_ledger().release_expired(as_of),
        "purged_quotes": purge_expired_quotes(as_of),
    }
    logger.info("Expiry sweep complete", **result)
    return result
