"""FastAPI routes for the Checkout domain — products, cart, providers, quotes and orders.

The caller's identity arrives already resolved in the ``X-Customer-Id``
header; nothing here authenticates.
"""

from datetime import date

from fastapi import APIRouter, Header, Query
from protean.utils.globals import current_domain

from checkout.api.schemas import (
    AddToCartRequest,
    CancelOrderRequest,
    CartItemIdResponse,
    CartLineSchema,
    CartResponse,
    ChangePriceRequest,
    CreateOrderRequest,
    OrderLineSchema,
    OrderListResponse,
    OrderResponse,
    PaginationSchema,
    PlaceOrderRequest,
    ProductIdResponse,
    ProductResponse,
    ProviderSchema,
    ProvidersResponse,
    QuoteLineSchema,
    QuoteRequest,
    QuoteResponse,
    RegisterProductRequest,
    SettleOrderRequest,
    StatusResponse,
    SweepResponse,
    UpdateCartItemRequest,
)
from checkout.cart.store import (
    add_to_cart,
    clear_cart,
    remove_cart_item,
    update_cart_item,
    view_cart,
)
from checkout.catalogue.product import load_product
from checkout.catalogue.registration import ChangeProductPrice, RegisterProduct
from checkout.inventory import get_ledger
from checkout.maintenance import run_expiry_sweep
from checkout.order.engine import (
    cancel_order,
    create_order,
    get_order,
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    list_orders,
    place_order,
    settle_order,
)
from checkout.providers import get_registry
from checkout.quote.engine import quote_checkout
from checkout.shared.money import format_minor


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        quote_id=str(order.quote_id),
        status=order.status,
        is_failed=order.is_failed,
        can_cancel=order.can_cancel,
        lines=[
            OrderLineSchema(
                product_id=str(line.product_id),
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in order.ordered_lines
        ],
        subtotal=order.subtotal,
        shipping_cost=order.shipping_cost,
        tax=order.tax,
        total=order.total,
        currency=order.currency,
        total_display=format_minor(order.total, order.currency),
        payment_provider_id=order.payment_provider_id,
        shipping_provider_id=order.shipping_provider_id,
        payment_display=order.payment_display,
        shipping_display=order.shipping_display,
        settlement_reference=order.settlement_reference,
        failure_kind=order.failure_kind,
        failure_reason=order.failure_reason,
        created_at=order.created_at,
        expires_at=order.expires_at,
        settled_at=order.settled_at,
    )


def _cart_response(view) -> CartResponse:
    return CartResponse(
        cart_id=view.cart_id,
        customer_id=view.customer_id,
        currency=view.currency,
        lines=[
            CartLineSchema(
                item_id=line.item_id,
                product_id=line.product_id,
                sku=line.sku,
                name=line.name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
                available=line.available,
                in_stock=line.in_stock,
            )
            for line in view.lines
        ],
        subtotal=view.subtotal,
        item_count=view.item_count,
    )


# ---------------------------------------------------------------------------
# Product Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201, response_model=ProductIdResponse)
def register_product(body: RegisterProductRequest) -> ProductIdResponse:
    command = RegisterProduct(
        product_id=body.product_id,
        sku=body.sku,
        name=body.name,
        price=body.price,
        currency=body.currency,
        initial_stock=body.initial_stock,
    )
    result = current_domain.process(command, asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.put("/{product_id}/price", response_model=StatusResponse)
def change_product_price(product_id: str, body: ChangePriceRequest) -> StatusResponse:
    current_domain.process(ChangeProductPrice(product_id=product_id, price=body.price), asynchronous=False)
    return StatusResponse()


@product_router.get("/{product_id}", response_model=ProductResponse)
def get_product(product_id: str) -> ProductResponse:
    product = load_product(product_id)
    return ProductResponse(
        product_id=str(product.id),
        sku=product.sku,
        name=product.name,
        price=product.price.amount,
        currency=product.price.currency,
        available=get_ledger().available(str(product.id)),
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("", response_model=CartResponse)
def get_cart(x_customer_id: str = Header()) -> CartResponse:
    return _cart_response(view_cart(x_customer_id))


@cart_router.post("/items", status_code=201, response_model=CartItemIdResponse)
def add_cart_item(body: AddToCartRequest, x_customer_id: str = Header()) -> CartItemIdResponse:
    item_id = add_to_cart(x_customer_id, body.product_id, body.quantity)
    return CartItemIdResponse(item_id=item_id)


@cart_router.put("/items/{item_id}", response_model=StatusResponse)
def update_item(item_id: str, body: UpdateCartItemRequest, x_customer_id: str = Header()) -> StatusResponse:
    update_cart_item(x_customer_id, item_id, body.quantity)
    return StatusResponse()


@cart_router.delete("/items/{item_id}", response_model=StatusResponse)
def remove_item(item_id: str, x_customer_id: str = Header()) -> StatusResponse:
    remove_cart_item(x_customer_id, item_id)
    return StatusResponse()


@cart_router.delete("", response_model=StatusResponse)
def clear(x_customer_id: str = Header()) -> StatusResponse:
    clear_cart(x_customer_id)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Provider Router
# ---------------------------------------------------------------------------
provider_router = APIRouter(prefix="/providers", tags=["providers"])


@provider_router.get("", response_model=ProvidersResponse)
def list_providers() -> ProvidersResponse:
    registry = get_registry()
    return ProvidersResponse(
        payment=[ProviderSchema(**p.describe()) for p in registry.list_payment_providers()],
        shipping=[ProviderSchema(**p.describe()) for p in registry.list_shipping_providers()],
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/quotes", status_code=201, response_model=QuoteResponse)
def request_quote(body: QuoteRequest, x_customer_id: str = Header()) -> QuoteResponse:
    quote = quote_checkout(
        x_customer_id,
        payment_provider_id=body.payment_provider_id,
        shipping_provider_id=body.shipping_provider_id,
        shipping_data=body.shipping_data,
        address_id=body.address_id,
    )
    return QuoteResponse(
        quote_id=str(quote.id),
        status=quote.status,
        lines=[
            QuoteLineSchema(
                product_id=str(line.product_id),
                product_name=line.product_name,
                quantity=line.quantity,
                unit_price=line.unit_price,
                line_total=line.line_total,
            )
            for line in quote.ordered_lines
        ],
        payment_provider_id=quote.payment_provider_id,
        shipping_provider_id=quote.shipping_provider_id,
        shipping_display=quote.shipping_display,
        subtotal=quote.subtotal,
        shipping_cost=quote.shipping_cost,
        tax=quote.tax,
        total=quote.total,
        currency=quote.currency,
        issued_at=quote.issued_at,
        expires_at=quote.expires_at,
    )


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def create(body: CreateOrderRequest, x_customer_id: str = Header()) -> OrderResponse:
    return _order_response(create_order(x_customer_id, body.quote_id))


@order_router.post("/place", status_code=201, response_model=OrderResponse)
def place(body: PlaceOrderRequest, x_customer_id: str = Header()) -> OrderResponse:
    order = place_order(
        x_customer_id,
        body.quote_id,
        payment_data=body.payment_data,
        payment_method_id=body.payment_method_id,
    )
    return _order_response(order)


@order_router.post("/{order_id}/settle", response_model=OrderResponse)
def settle(order_id: str, body: SettleOrderRequest, x_customer_id: str = Header()) -> OrderResponse:
    order = settle_order(
        x_customer_id,
        order_id,
        payment_data=body.payment_data,
        payment_method_id=body.payment_method_id,
        shipping_data=body.shipping_data,
    )
    return _order_response(order)


@order_router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel(order_id: str, body: CancelOrderRequest | None = None, x_customer_id: str = Header()) -> OrderResponse:
    return _order_response(cancel_order(x_customer_id, order_id, reason=body.reason if body else None))


@order_router.get("", response_model=OrderListResponse)
def list_customer_orders(
    x_customer_id: str = Header(),
    status: str | None = None,
    start_date: date | None = Query(None, description="YYYY-MM-DD, inclusive"),
    end_date: date | None = Query(None, description="YYYY-MM-DD, inclusive"),
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> OrderListResponse:
    result = list_orders(
        x_customer_id,
        status=status,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    return OrderListResponse(
        orders=[_order_response(order) for order in result.orders],
        pagination=PaginationSchema(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@order_router.get("/{order_id}", response_model=OrderResponse)
def get(order_id: str, x_customer_id: str = Header()) -> OrderResponse:
    return _order_response(get_order(x_customer_id, order_id))


# ---------------------------------------------------------------------------
# Maintenance Router
# ---------------------------------------------------------------------------
maintenance_router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@maintenance_router.post("/expire", response_model=SweepResponse)
def expire_stale_state() -> SweepResponse:
    """Scheduler hook: expire lapsed orders, reservations and quotes."""
    return SweepResponse(**run_expiry_sweep())
