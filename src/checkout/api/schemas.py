"""Pydantic request/response schemas for the Checkout API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. All amounts are integer minor units.
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    product_id: str | None = None
    sku: str
    name: str
    price: int = Field(ge=0)
    currency: str | None = None
    initial_stock: int = Field(ge=0, default=0)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "sku": "MUG-BLK",
                    "name": "Black Mug",
                    "price": 1000,
                    "currency": "USD",
                    "initial_stock": 5,
                }
            ]
        }
    }


class ChangePriceRequest(BaseModel):
    price: int = Field(ge=0)


class ProductResponse(BaseModel):
    product_id: str
    sku: str
    name: str
    price: int
    currency: str
    available: int


class ProductIdResponse(BaseModel):
    product_id: str


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class UpdateCartItemRequest(BaseModel):
    quantity: int  # <= 0 removes the line


class CartItemIdResponse(BaseModel):
    item_id: str


class CartLineSchema(BaseModel):
    item_id: str
    product_id: str
    sku: str
    name: str
    quantity: int
    unit_price: int
    line_total: int
    available: int
    in_stock: bool


class CartResponse(BaseModel):
    cart_id: str | None = None
    customer_id: str
    currency: str
    lines: list[CartLineSchema] = []
    subtotal: int = 0
    item_count: int = 0


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------
class FieldOptionSchema(BaseModel):
    value: str
    label: str


class ProviderFieldSchema(BaseModel):
    key: str
    label: str
    type: str
    required: bool
    placeholder: str = ""
    help_text: str = ""
    options: list[FieldOptionSchema] = []


class ProviderStateSchema(BaseModel):
    code: str
    severity: str
    message: str


class ProviderSchema(BaseModel):
    id: str
    kind: str
    name: str
    description: str
    enabled: bool
    severity: str
    fields: list[ProviderFieldSchema]
    states: list[ProviderStateSchema]


class ProvidersResponse(BaseModel):
    payment: list[ProviderSchema]
    shipping: list[ProviderSchema]


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------
class QuoteRequest(BaseModel):
    payment_provider_id: str
    shipping_provider_id: str
    shipping_data: dict[str, Any] = {}
    address_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "payment_provider_id": "dummy-card",
                    "shipping_provider_id": "dummy-ground",
                    "shipping_data": {
                        "full_name": "Alex Merchant",
                        "line1": "1 Main St",
                        "city": "Springfield",
                        "state": "IL",
                        "postal_code": "62701",
                        "country": "US",
                        "service_level": "standard",
                    },
                }
            ]
        }
    }


class QuoteLineSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: int
    line_total: int


class QuoteResponse(BaseModel):
    quote_id: str
    status: str
    lines: list[QuoteLineSchema]
    payment_provider_id: str
    shipping_provider_id: str
    shipping_display: str | None = None
    subtotal: int
    shipping_cost: int
    tax: int
    total: int
    currency: str
    issued_at: datetime
    expires_at: datetime


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    quote_id: str


class SettleOrderRequest(BaseModel):
    payment_data: dict[str, Any] = {}
    payment_method_id: str | None = None
    shipping_data: dict[str, Any] | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "payment_data": {
                        "cardholder_name": "Alex Merchant",
                        "card_number": "4242424242424242",
                        "exp_month": 12,
                        "exp_year": 2030,
                    }
                }
            ]
        }
    }


class PlaceOrderRequest(BaseModel):
    quote_id: str
    payment_data: dict[str, Any] = {}
    payment_method_id: str | None = None


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class OrderLineSchema(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    unit_price: int
    line_total: int


class OrderResponse(BaseModel):
    order_id: str
    quote_id: str
    status: str
    is_failed: bool
    can_cancel: bool
    lines: list[OrderLineSchema]
    subtotal: int
    shipping_cost: int
    tax: int
    total: int
    currency: str
    total_display: str
    payment_provider_id: str
    shipping_provider_id: str
    payment_display: str | None = None
    shipping_display: str | None = None
    settlement_reference: str | None = None
    failure_kind: str | None = None
    failure_reason: str | None = None
    created_at: datetime | None = None
    expires_at: datetime | None = None
    settled_at: datetime | None = None


class PaginationSchema(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class OrderListResponse(BaseModel):
    orders: list[OrderResponse]
    pagination: PaginationSchema


class StatusResponse(BaseModel):
    status: str = "ok"


class SweepResponse(BaseModel):
    expired_orders: int
    released_reservations: int
    purged_quotes: int
