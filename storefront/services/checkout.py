from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from pydantic import BaseModel, Field

from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError
from storefront.schemas.records import (
    MenuItemRecord,
    OrderDraft,
    OrderRecord,
    OrderType,
    PaymentMethod,
    RestaurantRecord,
)
from storefront.services.active_order import ActiveOrderStore
from storefront.services.availability import inventory_snapshot, is_purchasable
from storefront.services.cart import Cart

logger = logging.getLogger(__name__)

LOG_PREFIX = "[CHECKOUT]"


class CheckoutValidationError(ValueError):
    def __init__(self, missing_fields: list[str], message: str | None = None) -> None:
        self.missing_fields = missing_fields
        super().__init__(message or f"Missing or invalid checkout fields: {', '.join(missing_fields)}")


class ItemUnavailableError(ValueError):
    def __init__(self, item_ids: list[str]) -> None:
        self.item_ids = item_ids
        super().__init__(f"Items not available: {', '.join(item_ids)}")


class StoreClosedError(ValueError):
    def __init__(self, restaurant_id: str) -> None:
        self.restaurant_id = restaurant_id
        super().__init__("Restaurant is not accepting orders")


class CheckoutForm(BaseModel):
    customer_name: str = ""
    customer_phone: str = ""
    customer_address: str = ""
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    payment_method: PaymentMethod = PaymentMethod.COD
    table_number: Optional[int] = None

    @property
    def is_dine_in(self) -> bool:
        return self.table_number is not None


@dataclass
class CheckoutResult:
    order: OrderRecord

    @property
    def tracking_url(self) -> str:
        return f"/order-success/{self.order.id}"


def table_in_range(table_number: int, restaurant: RestaurantRecord | None = None) -> bool:
    """A total_tables of 0 means the restaurant never configured its seating."""
    total_tables = restaurant.total_tables if restaurant is not None else 0
    return table_number >= 1 and (total_tables <= 0 or table_number <= total_tables)


def validate_checkout(form: CheckoutForm, restaurant: RestaurantRecord | None = None) -> None:
    missing: list[str] = []
    if not form.customer_name.strip():
        missing.append("customer_name")
    if not form.customer_phone.strip():
        missing.append("customer_phone")
    if form.is_dine_in:
        if not table_in_range(form.table_number, restaurant):
            missing.append("table_number")
    elif not form.customer_address.strip():
        missing.append("customer_address")
    if missing:
        raise CheckoutValidationError(missing)


def build_order_draft(restaurant_id: str, form: CheckoutForm, cart: Cart) -> OrderDraft:
    lines = cart.snapshot()
    if form.is_dine_in:
        return OrderDraft(
            restaurant_id=restaurant_id,
            customer_name=form.customer_name.strip(),
            customer_phone=form.customer_phone.strip(),
            customer_address=f"Table {form.table_number}",
            order_details=lines,
            total_amount=cart.total,
            payment_method=form.payment_method,
            order_type=OrderType.DINE_IN,
            table_number=form.table_number,
        )
    return OrderDraft(
        restaurant_id=restaurant_id,
        customer_name=form.customer_name.strip(),
        customer_phone=form.customer_phone.strip(),
        customer_address=form.customer_address.strip(),
        latitude=form.latitude,
        longitude=form.longitude,
        order_details=lines,
        total_amount=cart.total,
        payment_method=form.payment_method,
        order_type=OrderType.DELIVERY,
    )


def cart_from_selection(menu: Sequence[MenuItemRecord], selection: Iterable[tuple[str, int]]) -> Cart:
    """Builds a cart from ``(item_id, quantity)`` pairs using menu prices."""
    by_id = {item.id: item for item in menu}
    cart = Cart()
    unknown: list[str] = []
    for item_id, quantity in selection:
        item = by_id.get(item_id)
        if item is None:
            unknown.append(item_id)
            continue
        line = cart.add_to_cart(item)
        cart.update_quantity(item.id, line.quantity - 1 + quantity)
    if unknown:
        raise ItemUnavailableError(unknown)
    return cart


def ensure_purchasable(cart: Cart, menu: Sequence[MenuItemRecord]) -> None:
    by_id = {item.id: item for item in menu}
    inventory = inventory_snapshot(menu)
    blocked = [
        line.id
        for line in cart.lines
        if line.id not in by_id or not is_purchasable(by_id[line.id], inventory)
    ]
    if blocked:
        raise ItemUnavailableError(blocked)


async def submit_checkout(
    gateway: Gateway,
    restaurant: RestaurantRecord,
    cart: Cart,
    form: CheckoutForm,
    pointer: ActiveOrderStore,
    *,
    menu: Sequence[MenuItemRecord] | None = None,
) -> CheckoutResult:
    """Places one order from the cart.

    The cart and pointer only change after the insert succeeds.
    """
    if cart.is_empty():
        raise CheckoutValidationError(["items"], "Cart is empty")
    validate_checkout(form, restaurant)
    if not restaurant.is_accepting_orders:
        raise StoreClosedError(restaurant.id)
    if menu is not None:
        ensure_purchasable(cart, menu)

    draft = build_order_draft(restaurant.id, form, cart)
    try:
        order = await gateway.insert_order(draft)
    except GatewayError as exc:
        logger.warning(
            "%s order insert failed restaurant_id=%s error=%s",
            LOG_PREFIX,
            restaurant.id,
            exc.message,
        )
        raise

    cart.clear()
    pointer.set(order.id)
    logger.info(
        "%s order placed order_id=%s restaurant_id=%s type=%s total=%s",
        LOG_PREFIX,
        order.id,
        restaurant.id,
        order.order_type.value,
        order.total_amount,
    )
    return CheckoutResult(order=order)
