"""Cart aggregate — a customer's mutable, pre-purchase selection.

A cart stores product ids and quantities only. Prices and availability are
always read live, never snapshotted here. One line per product; lines keep
their insertion order through ``position``.
"""

import json

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from checkout.cart.events import (
    CartCleared,
    CartItemAdded,
    CartItemQuantityChanged,
    CartItemRemoved,
    OrderedItemsRemoved,
)
from checkout.domain import checkout
from checkout.errors import NotFound
from checkout.utils.timestamps import utc_now


@checkout.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    position = Integer(default=0)
    added_at = DateTime()


@checkout.aggregate
class Cart:
    customer_id = Identifier(required=True)
    items = HasMany(CartItem)
    next_position = Integer(default=0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def one_line_per_product(self):
        product_ids = [str(item.product_id) for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"items": ["A product may appear on only one cart line"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id):
        now = utc_now()
        return cls(customer_id=customer_id, next_position=0, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def lines(self):
        """Items in insertion order."""
        return sorted(self.items, key=lambda item: item.position or 0)

    def line_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def quantity_of(self, product_id):
        line = self.line_for(product_id)
        return line.quantity if line else 0

    def _item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise NotFound(f"Item {item_id} is not in the cart", details={"item_id": str(item_id)})
        return item

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity):
        """Add a product, merging into its existing line if present."""
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})

        now = utc_now()
        existing = self.line_for(product_id)
        if existing:
            existing.quantity += quantity
            item = existing
        else:
            item = CartItem(
                product_id=product_id,
                quantity=quantity,
                position=self.next_position,
                added_at=now,
            )
            self.next_position += 1
            self.add_items(item)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                customer_id=str(self.customer_id),
                item_id=str(item.id),
                product_id=str(product_id),
                quantity_added=quantity,
                quantity=item.quantity,
            )
        )
        return item

    def update_item(self, item_id, quantity):
        """Set a line's quantity. Zero or less removes the line."""
        item = self._item(item_id)
        if quantity <= 0:
            self.remove_item(item_id)
            return

        previous = item.quantity
        if previous == quantity:
            return
        item.quantity = quantity
        self.updated_at = utc_now()

        self.raise_(
            CartItemQuantityChanged(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )

    def remove_item(self, item_id):
        item = self._item(item_id)
        product_id = str(item.product_id)
        self.remove_items(item)
        self.updated_at = utc_now()

        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id), product_id=product_id))

    def clear(self):
        """Empty the cart. The cart itself survives."""
        for item in list(self.items):
            self.remove_items(item)
        self.updated_at = utc_now()

        self.raise_(CartCleared(cart_id=str(self.id), customer_id=str(self.customer_id)))

    def remove_ordered(self, order_id, quantities):
        """Subtract quantities bought by an order; lines that reach zero are dropped.

        Items added after the order was quoted stay in the cart.
        """
        removed = {}
        for product_id, quantity in quantities.items():
            line = self.line_for(product_id)
            if line is None:
                continue
            taken = min(line.quantity, quantity)
            if line.quantity - taken <= 0:
                self.remove_items(line)
            else:
                line.quantity -= taken
            removed[str(product_id)] = taken

        self.updated_at = utc_now()

        self.raise_(
            OrderedItemsRemoved(
                cart_id=str(self.id),
                order_id=str(order_id),
                items=json.dumps(removed),
            )
        )
        return removed


@checkout.repository(part_of=Cart)
class CartRepository:
    def find_for_customer(self, customer_id) -> Cart | None:
        results = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return results[0] if results else None
