"""Product aggregate — the minimal catalogue the checkout core prices against.

Stock is not stored here; the inventory ledger owns it.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, String, ValueObject
from protean.utils.globals import current_domain

from checkout.catalogue.events import ProductPriceChanged, ProductRegistered
from checkout.domain import checkout
from checkout.errors import NotFound
from checkout.shared.money import Money
from checkout.utils.timestamps import utc_now


@checkout.aggregate
class Product:
    sku = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    price = ValueObject(Money, required=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, sku, name, price, currency="USD", product_id=None):
        now = utc_now()
        attributes = {
            "sku": sku,
            "name": name,
            "price": Money(amount=price, currency=currency),
            "created_at": now,
            "updated_at": now,
        }
        if product_id:
            attributes["id"] = product_id
        product = cls(**attributes)

        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                sku=sku,
                name=name,
                price=price,
                currency=currency,
            )
        )
        return product

    def change_price(self, new_price):
        if new_price < 0:
            raise ValidationError({"price": ["Price cannot be negative"]})

        previous = self.price.amount
        if previous == new_price:
            return

        self.price = Money(amount=new_price, currency=self.price.currency)
        self.updated_at = utc_now()

        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous,
                new_price=new_price,
            )
        )


@checkout.repository(part_of=Product)
class ProductRepository:
    def find_by_sku(self, sku: str) -> Product | None:
        results = self._dao.query.filter(sku=sku).all().items
        return results[0] if results else None


def load_product(product_id) -> Product:
    """Fetch a product or raise ``NotFound``."""
    try:
        return current_domain.repository_for(Product).get(str(product_id))
    except ObjectNotFoundError as exc:
        raise NotFound(f"Product {product_id} not found", details={"product_id": str(product_id)}) from exc
