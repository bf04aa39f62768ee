from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator

from storefront.deps import gateway_http_error, get_gateway, get_owner_restaurant
from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError
from storefront.schemas.records import MenuItemRecord, Money, RestaurantRecord
from storefront.services.availability import inventory_snapshot, is_purchasable, item_is_out_of_stock
from storefront.services.dashboard import recipe_cost

logger = logging.getLogger(__name__)
MENU_PREFIX = "[MENU_ADMIN]"

router = APIRouter(prefix="/dashboard/menu", tags=["menu"])


class RecipeLinkPayload(BaseModel):
    inventory_item_id: str
    quantity: float = Field(..., gt=0)


class MenuItemCreatePayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    price: Decimal = Field(..., gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = None
    is_veg: bool = False
    image_url: Optional[str] = None
    is_available: bool = True
    recipe: list[RecipeLinkPayload] = Field(default_factory=list)


class MenuItemUpdatePayload(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    price: Optional[Decimal] = Field(default=None, gt=0, max_digits=10, decimal_places=2)
    category: Optional[str] = None
    is_veg: Optional[bool] = None
    image_url: Optional[str] = None
    is_available: Optional[bool] = None

    @field_validator("name", "price", "is_veg", "is_available")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class MenuItemAdminEntry(BaseModel):
    item: MenuItemRecord
    category: str
    recipe_cost: Money
    is_out_of_stock: bool
    is_purchasable: bool


def _entries(items: list[MenuItemRecord]) -> list[MenuItemAdminEntry]:
    inventory = inventory_snapshot(items)
    return [
        MenuItemAdminEntry(
            item=item,
            category=item.display_category,
            recipe_cost=recipe_cost(item),
            is_out_of_stock=item_is_out_of_stock(item, inventory),
            is_purchasable=is_purchasable(item, inventory),
        )
        for item in items
    ]


@router.get("", response_model=list[MenuItemAdminEntry])
async def list_menu_items(
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        items = await gateway.list_menu(restaurant.id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return _entries(items)


@router.post("", response_model=MenuItemAdminEntry, status_code=status.HTTP_201_CREATED)
async def create_menu_item(
    payload: MenuItemCreatePayload,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    values = payload.model_dump(exclude={"recipe"})
    recipe = [(link.inventory_item_id, link.quantity) for link in payload.recipe]
    try:
        item = await gateway.create_menu_item(restaurant.id, values, recipe)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    logger.info("%s created item_id=%s restaurant_id=%s", MENU_PREFIX, item.id, restaurant.id)
    return _entries([item])[0]


@router.patch("/{item_id}", response_model=MenuItemAdminEntry)
async def update_menu_item(
    item_id: str,
    payload: MenuItemUpdatePayload,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        item = await gateway.update_menu_item(restaurant.id, item_id, payload.model_dump(exclude_unset=True))
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return _entries([item])[0]


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_menu_item(
    item_id: str,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        await gateway.delete_menu_item(restaurant.id, item_id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    logger.info("%s deleted item_id=%s restaurant_id=%s", MENU_PREFIX, item_id, restaurant.id)


@router.post("/{item_id}/recipe", response_model=MenuItemAdminEntry, status_code=status.HTTP_201_CREATED)
async def add_recipe_link(
    item_id: str,
    payload: RecipeLinkPayload,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        item = await gateway.add_recipe_link(restaurant.id, item_id, payload.inventory_item_id, payload.quantity)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    logger.info(
        "%s recipe link added item_id=%s inventory_item_id=%s quantity=%s",
        MENU_PREFIX,
        item_id,
        payload.inventory_item_id,
        payload.quantity,
    )
    return _entries([item])[0]


@router.delete("/{item_id}/recipe/{link_id}", response_model=MenuItemAdminEntry)
async def remove_recipe_link(
    item_id: str,
    link_id: str,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        item = await gateway.remove_recipe_link(restaurant.id, item_id, link_id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    logger.info("%s recipe link removed item_id=%s link_id=%s", MENU_PREFIX, item_id, link_id)
    return _entries([item])[0]
