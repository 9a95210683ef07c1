"""Profile directory port.

Saved payment methods and addresses belong to profile management. Checkout
only looks them up by id, scoped to the customer who owns them.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class SavedPaymentMethod:
    method_id: str
    customer_id: str
    provider_id: str
    data: dict[str, str] = field(default_factory=dict)
    label: str = ""


@dataclass(frozen=True)
class SavedAddress:
    address_id: str
    customer_id: str
    data: dict[str, str] = field(default_factory=dict)
    label: str = ""


class ProfileDirectory(ABC):
    @abstractmethod
    def payment_method(self, customer_id: str, method_id: str) -> SavedPaymentMethod:
        """Raise ``NotFound`` unless the method exists and belongs to the customer."""
        ...

    @abstractmethod
    def address(self, customer_id: str, address_id: str) -> SavedAddress:
        """Raise ``NotFound`` unless the address exists and belongs to the customer."""
        ...
