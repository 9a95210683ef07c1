"""Domain events for the Cart aggregate."""

from protean.fields import Identifier, Integer, Text

from checkout.domain import checkout


@checkout.event(part_of="Cart")
class CartItemAdded:
    """A product was added to the cart, or its line grew."""

    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity_added = Integer(required=True)
    quantity = Integer(required=True)


@checkout.event(part_of="Cart")
class CartItemQuantityChanged:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@checkout.event(part_of="Cart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)


@checkout.event(part_of="Cart")
class CartCleared:
    __version__ = 1

    cart_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@checkout.event(part_of="Cart")
class OrderedItemsRemoved:
    """Quantities bought by a paid order were taken out of the cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON: {product_id: quantity}
