"""Cart item management — commands and handler.

Adds and updates check the product exists and that the resulting line
quantity is available in the inventory ledger right now. Nothing is reserved
until an order is created.
"""

import json

from protean import handle
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from checkout.cart.cart import Cart
from checkout.catalogue.product import load_product
from checkout.domain import checkout
from checkout.errors import InsufficientStock, NotFound
from checkout.inventory import get_ledger


@checkout.command(part_of="Cart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@checkout.command(part_of="Cart")
class UpdateCartItem:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)  # <= 0 removes the line


@checkout.command(part_of="Cart")
class RemoveCartItem:
    customer_id = Identifier(required=True)
    item_id = Identifier(required=True)


@checkout.command(part_of="Cart")
class ClearCart:
    customer_id = Identifier(required=True)


@checkout.command(part_of="Cart")
class RemoveOrderedItems:
    customer_id = Identifier(required=True)
    order_id = Identifier(required=True)
    items = Text(required=True)  # JSON: {product_id: quantity}


def _ensure_available(product, quantity):
    available = get_ledger().available(str(product.id))
    if quantity > available:
        raise InsufficientStock(
            str(product.id),
            requested=quantity,
            available=available,
            message=f"Only {available} of {product.name} available, {quantity} requested",
        )


def _existing_cart(repo, customer_id):
    cart = repo.find_for_customer(customer_id)
    if cart is None:
        raise NotFound(f"Customer {customer_id} has no cart", details={"customer_id": str(customer_id)})
    return cart


@checkout.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        repo = current_domain.repository_for(Cart)
        product = load_product(command.product_id)

        cart = repo.find_for_customer(command.customer_id)
        if cart is None:
            cart = Cart.create(customer_id=command.customer_id)

        _ensure_available(product, cart.quantity_of(command.product_id) + command.quantity)

        item = cart.add_item(product_id=command.product_id, quantity=command.quantity)
        repo.add(cart)
        return str(item.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = _existing_cart(repo, command.customer_id)

        if command.quantity > 0:
            line = next((i for i in cart.items if str(i.id) == str(command.item_id)), None)
            if line is not None:
                _ensure_available(load_product(line.product_id), command.quantity)

        cart.update_item(item_id=command.item_id, quantity=command.quantity)
        repo.add(cart)

    @handle(RemoveCartItem)
    def remove_cart_item(self, command):
        repo = current_domain.repository_for(Cart)
        cart = _existing_cart(repo, command.customer_id)
        cart.remove_item(item_id=command.item_id)
        repo.add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_for_customer(command.customer_id)
        if cart is None:
            return
        cart.clear()
        repo.add(cart)

    @handle(RemoveOrderedItems)
    def remove_ordered_items(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.find_for_customer(command.customer_id)
        if cart is None:
            return {}
        quantities = json.loads(command.items) if isinstance(command.items, str) else command.items
        removed = cart.remove_ordered(command.order_id, quantities)
        repo.add(cart)
        return removed
