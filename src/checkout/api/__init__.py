"""Checkout API package."""

from checkout.api.errors import register_error_handlers
from checkout.api.routes import (
    cart_router,
    checkout_router,
    maintenance_router,
    order_router,
    product_router,
    provider_router,
)

routers = [product_router, cart_router, provider_router, checkout_router, order_router, maintenance_router]

__all__ = [
    "cart_router",
    "checkout_router",
    "maintenance_router",
    "order_router",
    "product_router",
    "provider_router",
    "register_error_handlers",
    "routers",
]
