from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from storefront.deps import gateway_http_error, get_gateway, get_owner_restaurant
from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError
from storefront.schemas.records import RestaurantRecord, ReviewRecord

router = APIRouter(prefix="/dashboard/reviews", tags=["reviews"])


class ReviewVisibilityPayload(BaseModel):
    is_visible: bool


@router.get("", response_model=list[ReviewRecord])
async def list_reviews(
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        return await gateway.list_reviews(restaurant.id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc


@router.patch("/{review_id}", response_model=ReviewRecord)
async def set_review_visibility(
    review_id: str,
    payload: ReviewVisibilityPayload,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        return await gateway.set_review_visibility(restaurant.id, review_id, payload.is_visible)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
