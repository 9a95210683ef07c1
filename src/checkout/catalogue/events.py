"""Domain events for the Product aggregate."""

from protean.fields import Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Product")
class ProductRegistered:
    """A product was added to the catalogue."""

    __version__ = 1

    product_id = Identifier(required=True)
    sku = String(required=True)
    name = String(required=True)
    price = Integer(required=True)
    currency = String(required=True)


@checkout.event(part_of="Product")
class ProductPriceChanged:
    """A product's list price changed. Outstanding quotes for it become stale."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Integer(required=True)
    new_price = Integer(required=True)
