"""Cart store — the entry points callers use for a customer's cart.

Every mutation of a customer's cart is serialized per customer, so a cart is
created at most once and concurrent edits never overwrite each other.
"""

from dataclasses import dataclass, field

from protean.utils.globals import current_domain

from checkout.cart.cart import Cart
from checkout.cart.items import AddToCart, ClearCart, RemoveCartItem, RemoveOrderedItems, UpdateCartItem
from checkout.catalogue.product import load_product
from checkout.inventory import get_ledger
from checkout.utils.locks import KeyedLocks
from checkout.utils.settings import currency

cart_locks = KeyedLocks()


@dataclass(frozen=True)
class CartLineView:
    item_id: str
    product_id: str
    sku: str
    name: str
    quantity: int
    unit_price: int
    line_total: int
    available: int

    @property
    def in_stock(self) -> bool:
        return self.quantity <= self.available


@dataclass(frozen=True)
class CartView:
    customer_id: str
    cart_id: str | None
    currency: str
    lines: list[CartLineView] = field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return sum(line.line_total for line in self.lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def add_to_cart(customer_id, product_id, quantity) -> str:
    with cart_locks.hold(customer_id):
        return current_domain.process(
            AddToCart(customer_id=customer_id, product_id=product_id, quantity=quantity),
            asynchronous=False,
        )


def update_cart_item(customer_id, item_id, quantity) -> None:
    with cart_locks.hold(customer_id):
        current_domain.process(
            UpdateCartItem(customer_id=customer_id, item_id=item_id, quantity=quantity),
            asynchronous=False,
        )


def remove_cart_item(customer_id, item_id) -> None:
    with cart_locks.hold(customer_id):
        current_domain.process(RemoveCartItem(customer_id=customer_id, item_id=item_id), asynchronous=False)


def clear_cart(customer_id) -> None:
    with cart_locks.hold(customer_id):
        current_domain.process(ClearCart(customer_id=customer_id), asynchronous=False)


def remove_ordered_items(customer_id, order_id, items_json) -> dict:
    with cart_locks.hold(customer_id):
        return current_domain.process(
            RemoveOrderedItems(customer_id=customer_id, order_id=order_id, items=items_json),
            asynchronous=False,
        )


def find_cart(customer_id) -> Cart | None:
    return current_domain.repository_for(Cart).find_for_customer(customer_id)


def view_cart(customer_id) -> CartView:
    """The customer's cart priced with live product prices and stock. Absent carts view as empty."""
    cart = find_cart(customer_id)
    if cart is None:
        return CartView(customer_id=str(customer_id), cart_id=None, currency=currency())

    ledger = get_ledger()
    lines = []
    view_currency = currency()
    for item in cart.lines:
        product = load_product(item.product_id)
        view_currency = product.price.currency
        lines.append(
            CartLineView(
                item_id=str(item.id),
                product_id=str(item.product_id),
                sku=product.sku,
                name=product.name,
                quantity=item.quantity,
                unit_price=product.price.amount,
                line_total=product.price.amount * item.quantity,
                available=ledger.available(str(item.product_id)),
            )
        )
    return CartView(customer_id=str(customer_id), cart_id=str(cart.id), currency=view_currency, lines=lines)
