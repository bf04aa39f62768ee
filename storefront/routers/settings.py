from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from storefront.core.request_context import set_request_context
from storefront.deps import gateway_http_error, get_current_owner_id, get_gateway
from storefront.gateway.base import Gateway
from storefront.gateway.errors import ConstraintViolationError, GatewayError
from storefront.schemas.records import RestaurantRecord
from storefront.utils.slug import create_slug

logger = logging.getLogger(__name__)
SETTINGS_PREFIX = "[SETTINGS]"

router = APIRouter(prefix="/dashboard/settings", tags=["settings"])


class SettingsPayload(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    city: Optional[str] = None
    theme_color: Optional[str] = None
    secondary_color: Optional[str] = None
    font: Optional[str] = None
    hero_image_url: Optional[str] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    about_us: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    whatsapp_number: Optional[str] = None
    opening_hours: Optional[str] = None
    google_maps_url: Optional[str] = None
    upi_id: Optional[str] = None
    is_accepting_orders: bool = True
    total_tables: int = Field(default=0, ge=0)


class SettingsResponse(BaseModel):
    restaurant: Optional[RestaurantRecord]
    public_url: Optional[str] = None


def _response(restaurant: Optional[RestaurantRecord]) -> SettingsResponse:
    if restaurant is None:
        return SettingsResponse(restaurant=None)
    return SettingsResponse(restaurant=restaurant, public_url=f"/menu/{restaurant.slug}")


@router.get("", response_model=SettingsResponse)
async def get_settings(
    owner_id: str = Depends(get_current_owner_id),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        restaurant = await gateway.get_restaurant_for_owner(owner_id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return _response(restaurant)


@router.put("", response_model=SettingsResponse)
async def save_settings(
    payload: SettingsPayload,
    request: Request,
    owner_id: str = Depends(get_current_owner_id),
    gateway: Gateway = Depends(get_gateway),
):
    """Creates the restaurant on first save; the slug is fixed from then on."""
    values = payload.model_dump()
    values["name"] = payload.name.strip()
    try:
        existing = await gateway.get_restaurant_for_owner(owner_id)
        if existing is None:
            slug = create_slug(values["name"])
            if not slug:
                raise HTTPException(
                    status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                    detail="Restaurant name must contain letters or digits",
                )
            values["slug"] = slug
        restaurant = await gateway.save_restaurant(owner_id, values)
    except ConstraintViolationError as exc:
        logger.info("%s slug conflict owner_id=%s slug=%s", SETTINGS_PREFIX, owner_id, values.get("slug"))
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="A restaurant with this name already exists. Choose a different name.",
        ) from exc
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc

    request.state.restaurant_id = restaurant.id
    set_request_context(restaurant_id=restaurant.id)
    logger.info("%s saved owner_id=%s restaurant_id=%s", SETTINGS_PREFIX, owner_id, restaurant.id)
    return _response(restaurant)
