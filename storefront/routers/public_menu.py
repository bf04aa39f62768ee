from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from pydantic import BaseModel, Field

from storefront.core.request_context import set_request_context
from storefront.deps import gateway_http_error, get_gateway
from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError
from storefront.schemas.records import (
    MenuItemRecord,
    Money,
    OrderRecord,
    OrderType,
    PaymentMethod,
    PublicBranding,
    RestaurantRecord,
    ReviewRecord,
)
from storefront.services.active_order import CookieActiveOrderStore
from storefront.services.availability import inventory_snapshot, item_is_out_of_stock
from storefront.services.checkout import (
    CheckoutForm,
    CheckoutValidationError,
    ItemUnavailableError,
    StoreClosedError,
    cart_from_selection,
    submit_checkout,
    table_in_range,
)
from storefront.services.order_state import OrderStatus

logger = logging.getLogger(__name__)
PUBLIC_MENU_PREFIX = "[PUBLIC_MENU]"

router = APIRouter(prefix="/menu", tags=["public-menu"])


class PublicMenuItem(BaseModel):
    id: str
    name: str
    price: Money
    category: str
    is_veg: bool
    image_url: Optional[str]
    is_out_of_stock: bool


class PublicMenuCategory(BaseModel):
    name: str
    items: list[PublicMenuItem]


class PublicMenuResponse(BaseModel):
    restaurant: PublicBranding
    is_accepting_orders: bool
    table_number: Optional[int]
    order_type: OrderType
    categories: list[PublicMenuCategory]
    reviews: list[ReviewRecord]
    active_order_id: Optional[str]


class PublicOrderItem(BaseModel):
    item_id: str
    quantity: int = Field(..., gt=0)


class PublicOrderPayload(BaseModel):
    customer_name: str = ""
    customer_phone: str = ""
    customer_address: str = ""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    payment_method: PaymentMethod = PaymentMethod.COD
    items: list[PublicOrderItem] = Field(..., min_length=1)


class PublicOrderResponse(BaseModel):
    order_id: str
    status: OrderStatus
    order_type: OrderType
    total_amount: Money
    tracking_url: str
    order: OrderRecord


def group_by_category(items: list[MenuItemRecord]) -> list[PublicMenuCategory]:
    """Groups items by display category, keeping first-seen category order."""
    inventory = inventory_snapshot(items)
    grouped: dict[str, list[PublicMenuItem]] = {}
    for item in items:
        grouped.setdefault(item.display_category, []).append(
            PublicMenuItem(
                id=item.id,
                name=item.name,
                price=item.price,
                category=item.display_category,
                is_veg=item.is_veg,
                image_url=item.image_url,
                is_out_of_stock=item_is_out_of_stock(item, inventory),
            )
        )
    return [PublicMenuCategory(name=name, items=entries) for name, entries in grouped.items()]


async def _load_restaurant(gateway: Gateway, slug: str, request: Request) -> RestaurantRecord:
    try:
        restaurant = await gateway.get_restaurant_by_slug(slug)
    except GatewayError as exc:
        logger.info("%s restaurant lookup failed slug=%s error=%s", PUBLIC_MENU_PREFIX, slug, exc.message)
        raise gateway_http_error(exc) from exc
    request.state.restaurant_id = restaurant.id
    set_request_context(restaurant_id=restaurant.id)
    return restaurant


@router.get("/{slug}", response_model=PublicMenuResponse)
async def get_public_menu(
    slug: str,
    request: Request,
    table: Optional[int] = Query(default=None, ge=1),
    gateway: Gateway = Depends(get_gateway),
):
    restaurant = await _load_restaurant(gateway, slug, request)
    if table is not None and not table_in_range(table, restaurant):
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=f"Table {table} is not one of this restaurant's tables",
        )
    try:
        items = await gateway.list_menu(restaurant.id, available_only=True)
        reviews = await gateway.list_reviews(restaurant.id, visible_only=True)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc

    pointer = CookieActiveOrderStore(request.cookies)
    logger.info(
        "%s served slug=%s items=%s table=%s",
        PUBLIC_MENU_PREFIX,
        slug,
        len(items),
        table,
    )
    return PublicMenuResponse(
        restaurant=restaurant.public_branding(),
        is_accepting_orders=restaurant.is_accepting_orders,
        table_number=table,
        order_type=OrderType.DINE_IN if table is not None else OrderType.DELIVERY,
        categories=group_by_category(items),
        reviews=reviews,
        active_order_id=pointer.get(),
    )


@router.post("/{slug}/orders", response_model=PublicOrderResponse, status_code=status.HTTP_201_CREATED)
async def place_public_order(
    slug: str,
    payload: PublicOrderPayload,
    request: Request,
    response: Response,
    table: Optional[int] = Query(default=None),
    gateway: Gateway = Depends(get_gateway),
):
    restaurant = await _load_restaurant(gateway, slug, request)
    try:
        menu = await gateway.list_menu(restaurant.id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc

    form = CheckoutForm(
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        customer_address=payload.customer_address,
        latitude=payload.latitude,
        longitude=payload.longitude,
        payment_method=payload.payment_method,
        table_number=table,
    )
    pointer = CookieActiveOrderStore(request.cookies)
    try:
        cart = cart_from_selection(menu, [(line.item_id, line.quantity) for line in payload.items])
        result = await submit_checkout(gateway, restaurant, cart, form, pointer, menu=menu)
    except CheckoutValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(exc), "missing_fields": exc.missing_fields},
        ) from exc
    except ItemUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(exc), "item_ids": exc.item_ids},
        ) from exc
    except StoreClosedError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc

    pointer.apply(response)
    order = result.order
    return PublicOrderResponse(
        order_id=order.id,
        status=order.status,
        order_type=order.order_type,
        total_amount=order.total_amount,
        tracking_url=result.tracking_url,
        order=order,
    )
