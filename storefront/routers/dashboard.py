from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from storefront.deps import gateway_http_error, get_gateway, get_owner_restaurant
from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError
from storefront.schemas.records import PublicBranding, RestaurantRecord
from storefront.services.dashboard import Overview, build_overview

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


class OverviewResponse(BaseModel):
    restaurant: PublicBranding
    overview: Overview


@router.get("/overview", response_model=OverviewResponse)
async def get_overview(
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        orders = await gateway.list_orders(restaurant.id)
        inventory = await gateway.list_inventory(restaurant.id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return OverviewResponse(restaurant=restaurant.public_branding(), overview=build_overview(orders, inventory))
