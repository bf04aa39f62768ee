from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, HTTPException, Request, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.core.request_context import set_request_context
from storefront.gateway.base import Gateway
from storefront.gateway.errors import (
    ConstraintViolationError,
    GatewayError,
    PermissionDeniedError,
    RecordNotFoundError,
    StaleWriteError,
)
from storefront.schemas.records import RestaurantRecord
from storefront.services.auth import decode_access_token, owner_id_from_payload

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

WS_CLOSE_UNAUTHORIZED = 4401
WS_CLOSE_NOT_FOUND = 4404


def get_gateway(request: Request) -> Gateway:
    return request.app.state.gateway


def gateway_http_error(exc: GatewayError) -> HTTPException:
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=exc.message)
    if isinstance(exc, PermissionDeniedError):
        return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.message)
    if isinstance(exc, StaleWriteError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": exc.message, "current_status": exc.current},
        )
    if isinstance(exc, ConstraintViolationError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage temporarily unavailable")


def _owner_id_from_token(token: Optional[str]) -> Optional[str]:
    if not token:
        return None
    try:
        payload = decode_access_token(token)
    except ValueError:
        return None
    return owner_id_from_payload(payload)


def get_current_owner_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> str:
    """Owner identity from the backend-issued bearer token."""
    owner_id = _owner_id_from_token(credentials.credentials if credentials else None)
    if owner_id is None:
        logger.warning("Access denied (invalid token): endpoint=%s %s", request.method, request.url.path)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    request.state.owner_id = owner_id
    set_request_context(owner_id=owner_id)
    return owner_id


async def get_owner_restaurant(
    request: Request,
    owner_id: str = Depends(get_current_owner_id),
    gateway: Gateway = Depends(get_gateway),
) -> RestaurantRecord:
    try:
        restaurant = await gateway.get_restaurant_for_owner(owner_id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    if restaurant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Restaurant not set up. Complete your settings first.",
        )
    request.state.restaurant_id = restaurant.id
    set_request_context(restaurant_id=restaurant.id)
    return restaurant


async def websocket_owner_restaurant(websocket: WebSocket, gateway: Gateway) -> Optional[RestaurantRecord]:
    """Authenticates a dashboard socket from its ``token`` query parameter.

    Closes the socket and returns None when the owner cannot be resolved.
    """
    owner_id = _owner_id_from_token(websocket.query_params.get("token"))
    if owner_id is None:
        await websocket.close(code=WS_CLOSE_UNAUTHORIZED)
        return None
    try:
        restaurant = await gateway.get_restaurant_for_owner(owner_id)
    except GatewayError as exc:
        logger.warning("[ORDER_BOARD] socket owner lookup failed owner_id=%s error=%s", owner_id, exc.message)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return None
    if restaurant is None:
        await websocket.close(code=WS_CLOSE_NOT_FOUND)
        return None
    set_request_context(owner_id=owner_id, restaurant_id=restaurant.id)
    return restaurant
