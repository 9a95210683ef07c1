"""Provider registry factory.

Provides get_registry() / set_registry() / reset_registry(). The default
registry holds the sandbox providers: dummy-card and dummy-wallet for
payment, dummy-ground and dummy-pickup for shipping.
"""

from checkout.providers.payment import DummyCardProvider, DummyWalletProvider
from checkout.providers.registry import ProviderRegistry
from checkout.providers.shipping import DummyGroundProvider, DummyPickupProvider

_current_registry: ProviderRegistry | None = None


def default_registry() -> ProviderRegistry:
    return ProviderRegistry(
        [
            DummyCardProvider(),
            DummyWalletProvider(),
            DummyGroundProvider(),
            DummyPickupProvider(),
        ]
    )


def get_registry() -> ProviderRegistry:
    """Return the current provider registry. Defaults to the sandbox providers."""
    global _current_registry
    if _current_registry is None:
        _current_registry = default_registry()
    return _current_registry


def set_registry(registry: ProviderRegistry) -> None:
    """Override the active registry (useful for tests)."""
    global _current_registry
    _current_registry = registry


def reset_registry() -> None:
    """Reset to the default registry on next access."""
    global _current_registry
    _current_registry = None
