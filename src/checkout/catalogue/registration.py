"""Catalogue maintenance — commands and handler.

Registering a product also opens its counter in the inventory ledger.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.catalogue.product import Product, load_product
from checkout.domain import checkout
from checkout.inventory import get_ledger
from checkout.utils.settings import currency

logger = structlog.get_logger(__name__)


@checkout.command(part_of="Product")
class RegisterProduct:
    product_id = Identifier()  # Optional: generated when absent
    sku = String(required=True, max_length=50)
    name = String(required=True, max_length=255)
    price = Integer(required=True, min_value=0)
    currency = String(max_length=3)
    initial_stock = Integer(default=0, min_value=0)


@checkout.command(part_of="Product")
class ChangeProductPrice:
    product_id = Identifier(required=True)
    price = Integer(required=True, min_value=0)


@checkout.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)


@checkout.command_handler(part_of=Product)
class ProductCatalogueHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        repo = current_domain.repository_for(Product)
        if repo.find_by_sku(command.sku) is not None:
            raise ValidationError({"sku": [f"SKU {command.sku} is already registered"]})

        product = Product.register(
            sku=command.sku,
            name=command.name,
            price=command.price,
            currency=command.currency or currency(),
            product_id=command.product_id,
        )
        repo.add(product)
        get_ledger().stock_product(str(product.id), command.initial_stock or 0)

        logger.info("Product registered", product_id=str(product.id), sku=command.sku)
        return str(product.id)

    @handle(ChangeProductPrice)
    def change_product_price(self, command):
        product = load_product(command.product_id)
        product.change_price(command.price)
        current_domain.repository_for(Product).add(product)

    @handle(RestockProduct)
    def restock_product(self, command):
        load_product(command.product_id)
        return get_ledger().restock(str(command.product_id), command.quantity)
