"""Provider registry — the catalogue of payment and shipping providers.

Registration and enable/disable are administrative; checkout only reads.
Providers in an ``error`` state are still listed so callers can show why they
are unavailable, but the quote engine refuses to use them.
"""

import threading
from collections.abc import Iterable

import structlog

from checkout.errors import NotFound
from checkout.providers.port import (
    PaymentProvider,
    Provider,
    ProviderKind,
    ProviderState,
    ShippingProvider,
)

logger = structlog.get_logger(__name__)


class ProviderRegistry:
    def __init__(self, providers: Iterable[Provider] = ()) -> None:
        self._lock = threading.RLock()
        self._providers: dict[str, Provider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: Provider) -> None:
        with self._lock:
            if provider.provider_id in self._providers:
                raise ValueError(f"Provider already registered: {provider.provider_id}")
            self._providers[provider.provider_id] = provider
        logger.debug("Provider registered", provider_id=provider.provider_id, kind=provider.kind.value)

    def _list(self, kind: ProviderKind, include_disabled: bool) -> list[Provider]:
        with self._lock:
            return [
                p for p in self._providers.values() if p.kind == kind and (p.enabled or include_disabled)
            ]

    def list_payment_providers(self, include_disabled: bool = False) -> list[PaymentProvider]:
        return self._list(ProviderKind.PAYMENT, include_disabled)

    def list_shipping_providers(self, include_disabled: bool = False) -> list[ShippingProvider]:
        return self._list(ProviderKind.SHIPPING, include_disabled)

    def get_provider(self, provider_id: str) -> Provider:
        """Look up an enabled provider. Disabled providers are reported as not found."""
        with self._lock:
            provider = self._providers.get(provider_id)
        if provider is None or not provider.enabled:
            raise NotFound(f"Unknown provider: {provider_id}", details={"provider_id": provider_id})
        return provider

    def set_enabled(self, provider_id: str, enabled: bool) -> None:
        with self._lock:
            provider = self._providers.get(provider_id)
            if provider is None:
                raise NotFound(f"Unknown provider: {provider_id}", details={"provider_id": provider_id})
            provider.enabled = enabled
        logger.info("Provider availability changed", provider_id=provider_id, enabled=enabled)

    def set_states(self, provider_id: str, states: Iterable[ProviderState]) -> None:
        """Replace a provider's operability states (health checks, admin overrides)."""
        with self._lock:
            provider = self._providers.get(provider_id)
            if provider is None:
                raise NotFound(f"Unknown provider: {provider_id}", details={"provider_id": provider_id})
            provider.states = list(states)
        logger.info("Provider state changed", provider_id=provider_id, severity=provider.severity.value)
