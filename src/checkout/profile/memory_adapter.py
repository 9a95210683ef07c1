"""In-memory profile directory, seeded by tests and the development server."""

import threading
from uuid import uuid4

from checkout.errors import NotFound
from checkout.profile.port import ProfileDirectory, SavedAddress, SavedPaymentMethod


class InMemoryProfileDirectory(ProfileDirectory):
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._payment_methods: dict[str, SavedPaymentMethod] = {}
        self._addresses: dict[str, SavedAddress] = {}

    def add_payment_method(self, customer_id: str, provider_id: str, data: dict, label: str = "") -> SavedPaymentMethod:
        method = SavedPaymentMethod(
            method_id=str(uuid4()),
            customer_id=str(customer_id),
            provider_id=provider_id,
            data=dict(data),
            label=label,
        )
        with self._lock:
            self._payment_methods[method.method_id] = method
        return method

    def add_address(self, customer_id: str, data: dict, label: str = "") -> SavedAddress:
        address = SavedAddress(address_id=str(uuid4()), customer_id=str(customer_id), data=dict(data), label=label)
        with self._lock:
            self._addresses[address.address_id] = address
        return address

    def payment_method(self, customer_id: str, method_id: str) -> SavedPaymentMethod:
        with self._lock:
            method = self._payment_methods.get(str(method_id))
        if method is None or method.customer_id != str(customer_id):
            raise NotFound(f"Saved payment method {method_id} not found", details={"payment_method_id": method_id})
        return method

    def address(self, customer_id: str, address_id: str) -> SavedAddress:
        with self._lock:
            address = self._addresses.get(str(address_id))
        if address is None or address.customer_id != str(customer_id):
            raise NotFound(f"Saved address {address_id} not found", details={"address_id": address_id})
        return address
