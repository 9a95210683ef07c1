"""Sandbox shipping providers."""

from collections.abc import Mapping, Sequence

from protean.exceptions import ValidationError

from checkout.providers.port import (
    FieldDefinition,
    FieldOption,
    FieldType,
    ProviderState,
    QuoteLineInput,
    Severity,
    ShippingProvider,
    ShippingQuote,
)

GROUND_RATES = {"standard": 599, "express": 1599}
CROSS_BORDER_SURCHARGE = 1250
HOME_COUNTRY = "US"

US_STATES = (
    "AL", "AK", "AZ", "AR", "CA", "CO", "CT", "DE", "FL", "GA",
    "HI", "ID", "IL", "IN", "IA", "KS", "KY", "LA", "ME", "MD",
    "MA", "MI", "MN", "MS", "MO", "MT", "NE", "NV", "NH", "NJ",
    "NM", "NY", "NC", "ND", "OH", "OK", "OR", "PA", "RI", "SC",
    "SD", "TN", "TX", "UT", "VT", "VA", "WA", "WV", "WI", "WY",
)  # fmt: skip


class DummyGroundProvider(ShippingProvider):
    provider_id = "dummy-ground"
    name = "Dummy Ground Carrier"
    description = "Calculates shipping by destination and service level."
    fields = (
        FieldDefinition(key="full_name", label="Recipient name", required=True),
        FieldDefinition(key="line1", label="Address line 1", required=True),
        FieldDefinition(key="line2", label="Address line 2"),
        FieldDefinition(key="city", label="City", required=True),
        FieldDefinition(key="state", label="State/Province"),
        FieldDefinition(key="postal_code", label="Postal code", required=True),
        FieldDefinition(key="country", label="Country", required=True, placeholder=HOME_COUNTRY),
        FieldDefinition(
            key="service_level",
            label="Service level",
            type=FieldType.SELECT,
            required=True,
            options=(FieldOption("standard", "Standard (5.99)"), FieldOption("express", "Express (15.99)")),
        ),
    )
    default_states = (
        ProviderState("tracking_delayed", Severity.WARNING, "Tracking updates may lag by 5-10 minutes in sandbox."),
    )

    def quote_shipping(self, lines: Sequence[QuoteLineInput], destination: Mapping[str, str]) -> ShippingQuote:
        service = destination.get("service_level", "").lower()
        if service not in GROUND_RATES:
            raise ValidationError({"service_level": [f"Unknown service level: {service}"]})

        cost = GROUND_RATES[service]
        states = ()
        country = destination.get("country", "").upper()
        if country and country != HOME_COUNTRY:
            cost += CROSS_BORDER_SURCHARGE
            states = (ProviderState("cross_border", Severity.WARNING, "Cross-border surcharge was applied."),)
        return ShippingQuote(cost=cost, states=states)

    def display(self, destination: Mapping[str, str]) -> str:
        parts = [
            destination.get("line1", ""),
            destination.get("line2", ""),
            destination.get("city", ""),
            destination.get("state", ""),
            destination.get("postal_code", ""),
            destination.get("country", "").upper(),
        ]
        return ", ".join(part.strip() for part in parts if part.strip())


class DummyPickupProvider(ShippingProvider):
    provider_id = "dummy-pickup"
    name = "Dummy In-Store Pickup"
    description = "No shipping fee; requires pickup location details."
    fields = (
        FieldDefinition(
            key="pickup_location",
            label="Pickup location",
            type=FieldType.SELECT,
            required=True,
            options=(FieldOption("downtown", "Downtown Hub"), FieldOption("airport", "Airport Desk")),
        ),
        FieldDefinition(key="pickup_contact", label="Contact name", required=True),
        FieldDefinition(
            key="state",
            label="Pickup state",
            type=FieldType.SELECT,
            required=True,
            options=tuple(FieldOption(code, code) for code in US_STATES),
        ),
        FieldDefinition(key="postal_code", label="Pickup postal code"),
    )
    default_states = (ProviderState("id_required", Severity.INFO, "Government-issued ID is required at pickup."),)

    def quote_shipping(self, lines: Sequence[QuoteLineInput], destination: Mapping[str, str]) -> ShippingQuote:
        return ShippingQuote(
            cost=0,
            states=(ProviderState("pickup_only", Severity.INFO, "Order will be held for pickup for 7 days."),),
        )

    def display(self, destination: Mapping[str, str]) -> str:
        location = destination.get("pickup_location", "") or "Store"
        contact = destination.get("pickup_contact", "")
        state = destination.get("state", "").upper()
        suffix = f" ({state})" if state else ""
        return f"Pickup at {location}{suffix} for {contact}" if contact else f"Pickup at {location}{suffix}"
