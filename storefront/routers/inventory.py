from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field, field_validator

from storefront.deps import gateway_http_error, get_gateway, get_owner_restaurant
from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError
from storefront.schemas.records import InventoryRecord, Money, RestaurantRecord
from storefront.services.dashboard import inventory_valuation

logger = logging.getLogger(__name__)
INVENTORY_PREFIX = "[INVENTORY]"

router = APIRouter(prefix="/dashboard/inventory", tags=["inventory"])


class InventoryCreatePayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    unit: str = Field(default="pcs", min_length=1, max_length=20)
    current_stock: float = Field(default=0, ge=0)
    cost_per_unit: Decimal = Field(default=Decimal("0"), ge=0, max_digits=10, decimal_places=2)
    min_stock_alert: float = Field(default=1, ge=0)


class InventoryUpdatePayload(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    unit: Optional[str] = Field(default=None, min_length=1, max_length=20)
    current_stock: Optional[float] = Field(default=None, ge=0)
    cost_per_unit: Optional[Decimal] = Field(default=None, ge=0, max_digits=10, decimal_places=2)
    min_stock_alert: Optional[float] = Field(default=None, ge=0)

    @field_validator("*")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value


class RestockPayload(BaseModel):
    amount: float = Field(..., gt=0)


class InventoryEntry(BaseModel):
    item: InventoryRecord
    is_low_stock: bool
    valuation: Money


class InventoryResponse(BaseModel):
    items: list[InventoryEntry]
    total_valuation: Money
    low_stock_count: int


def _entry(item: InventoryRecord) -> InventoryEntry:
    return InventoryEntry(item=item, is_low_stock=item.is_low_stock, valuation=item.valuation)


@router.get("", response_model=InventoryResponse)
async def list_inventory(
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        items = await gateway.list_inventory(restaurant.id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return InventoryResponse(
        items=[_entry(item) for item in items],
        total_valuation=inventory_valuation(items),
        low_stock_count=sum(1 for item in items if item.is_low_stock),
    )


@router.post("", response_model=InventoryEntry, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryCreatePayload,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        item = await gateway.create_inventory_item(restaurant.id, payload.model_dump())
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return _entry(item)


@router.post("/{item_id}/restock", response_model=InventoryEntry)
async def restock_inventory_item(
    item_id: str,
    payload: RestockPayload,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        item = await gateway.adjust_stock(restaurant.id, item_id, payload.amount)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    logger.info(
        "%s restocked item_id=%s amount=%s stock=%s",
        INVENTORY_PREFIX,
        item_id,
        payload.amount,
        item.current_stock,
    )
    return _entry(item)


@router.patch("/{item_id}", response_model=InventoryEntry)
async def update_inventory_item(
    item_id: str,
    payload: InventoryUpdatePayload,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        item = await gateway.update_inventory_item(restaurant.id, item_id, payload.model_dump(exclude_unset=True))
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return _entry(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_item(
    item_id: str,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        await gateway.delete_inventory_item(restaurant.id, item_id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
