"""Checkout quote engine — commands and handler.

Quoting, in order:

1. reject an empty cart
2. reject unknown providers, providers of the wrong kind and providers in an
   ``error`` state
3. snapshot live prices and quantities; soft stock pre-check
4. ask the shipping provider for a cost (required fields first)
5. ask the tax calculator
6. total = subtotal + shipping + tax
7. stamp the expiry
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from checkout.cart.store import find_cart
from checkout.catalogue.product import load_product
from checkout.domain import checkout
from checkout.errors import MissingFields, StockUnavailable
from checkout.inventory import get_ledger
from checkout.profile import get_directory
from checkout.providers import get_registry
from checkout.providers.port import ProviderKind, QuoteLineInput, Severity, normalize_input
from checkout.quote.quote import CheckoutQuote, load_quote
from checkout.tax import get_calculator
from checkout.utils.settings import quote_ttl_seconds
from checkout.utils.timestamps import utc_now

logger = structlog.get_logger(__name__)


@checkout.command(part_of="CheckoutQuote")
class RequestQuote:
    customer_id = Identifier(required=True)
    payment_provider_id = String(required=True, max_length=100)
    shipping_provider_id = String(required=True, max_length=100)
    shipping_data = Text()  # JSON: provider field values
    address_id = Identifier()  # Saved address merged under shipping_data


@checkout.command(part_of="CheckoutQuote")
class PurgeExpiredQuotes:
    """Delete quotes that expired without being accepted."""

    as_of = DateTime()  # Optional: defaults to now


def _selectable_provider(provider_id, kind, field_name):
    provider = get_registry().get_provider(provider_id)
    if provider.kind != kind:
        raise ValidationError({field_name: [f"{provider_id} is not a {kind.value} provider"]})
    if not provider.is_operable:
        reasons = "; ".join(s.message for s in provider.states if s.severity == Severity.ERROR)
        raise ValidationError({field_name: [f"{provider_id} is unavailable: {reasons}"]})
    return provider


@checkout.command_handler(part_of=CheckoutQuote)
class CheckoutQuoteHandler:
    @handle(RequestQuote)
    def request_quote(self, command):
        cart = find_cart(command.customer_id)
        if cart is None or not cart.items:
            raise ValidationError({"cart": ["Cannot quote an empty cart"]})

        payment = _selectable_provider(command.payment_provider_id, ProviderKind.PAYMENT, "payment_provider_id")
        shipping = _selectable_provider(command.shipping_provider_id, ProviderKind.SHIPPING, "shipping_provider_id")

        ledger = get_ledger()
        lines = []
        currencies = set()
        for item in cart.lines:
            product = load_product(item.product_id)
            available = ledger.available(str(product.id))
            if item.quantity > available:
                raise StockUnavailable(
                    str(product.id),
                    requested=item.quantity,
                    available=available,
                    message=f"Only {available} of {product.name} available, {item.quantity} requested",
                )
            currencies.add(product.price.currency)
            lines.append(
                {
                    "product_id": str(product.id),
                    "product_name": product.name,
                    "quantity": item.quantity,
                    "unit_price": product.price.amount,
                }
            )
        if len(currencies) > 1:
            raise ValidationError({"cart": ["Cart mixes currencies: " + ", ".join(sorted(currencies))]})

        shipping_input = {}
        if command.address_id:
            shipping_input.update(get_directory().address(command.customer_id, command.address_id).data)
        if command.shipping_data:
            shipping_input.update(json.loads(command.shipping_data))
        shipping_input = normalize_input(shipping_input)

        missing = shipping.missing_fields(shipping_input)
        if missing:
            raise MissingFields(shipping.provider_id, missing)

        destination = shipping.accepted_input(shipping_input)
        line_inputs = [
            QuoteLineInput(product_id=line["product_id"], quantity=line["quantity"], unit_price=line["unit_price"])
            for line in lines
        ]
        shipping_quote = shipping.quote_shipping(line_inputs, destination)
        tax = get_calculator().compute_tax(line_inputs, destination, shipping_quote.cost)

        quote = CheckoutQuote.issue(
            customer_id=command.customer_id,
            lines=lines,
            payment_provider_id=payment.provider_id,
            shipping_provider_id=shipping.provider_id,
            destination=destination,
            shipping_display=shipping.display(destination),
            shipping_cost=shipping_quote.cost,
            tax=tax,
            currency=currencies.pop(),
            ttl_seconds=quote_ttl_seconds(),
        )
        current_domain.repository_for(CheckoutQuote).add(quote)

        logger.info(
            "Quote issued",
            quote_id=str(quote.id),
            customer_id=str(command.customer_id),
            total=quote.total,
            expires_at=quote.expires_at.isoformat(),
        )
        return str(quote.id)

    @handle(PurgeExpiredQuotes)
    def purge_expired_quotes(self, command):
        repo = current_domain.repository_for(CheckoutQuote)
        expired = repo.find_expired_open(command.as_of or utc_now())
        for quote in expired:
            repo._dao.delete(quote)

        if expired:
            logger.info("Expired quotes purged", purged_count=len(expired))
        return len(expired)


def quote_checkout(customer_id, payment_provider_id, shipping_provider_id, shipping_data=None, address_id=None):
    """Price the customer's cart with the chosen providers. Returns the persisted quote."""
    quote_id = current_domain.process(
        RequestQuote(
            customer_id=customer_id,
            payment_provider_id=payment_provider_id,
            shipping_provider_id=shipping_provider_id,
            shipping_data=json.dumps(shipping_data or {}),
            address_id=address_id,
        ),
        asynchronous=False,
    )
    return load_quote(customer_id, quote_id)


def purge_expired_quotes(as_of=None) -> int:
    return current_domain.process(PurgeExpiredQuotes(as_of=as_of), asynchronous=False)
