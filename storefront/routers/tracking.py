from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response, WebSocket, WebSocketDisconnect, status

from storefront.core.config import ACTIVE_ORDER_COOKIE
from storefront.deps import get_gateway
from storefront.gateway.base import Gateway
from storefront.schemas.views import TrackerSnapshot, TrackerState
from storefront.services.active_order import CookieActiveOrderStore, InMemoryActiveOrderStore
from storefront.services.order_tracker import OrderTracker

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/order-success", tags=["order-tracking"])


@router.get("/{order_id}", response_model=TrackerSnapshot)
async def get_order_tracking(
    order_id: str,
    request: Request,
    response: Response,
    gateway: Gateway = Depends(get_gateway),
):
    pointer = CookieActiveOrderStore(request.cookies)
    tracker = OrderTracker(gateway, order_id, pointer)
    try:
        await tracker.start()
        snapshot = tracker.snapshot()
    finally:
        await tracker.close()

    if snapshot.state is TrackerState.NOT_FOUND:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    if snapshot.state is TrackerState.UNAVAILABLE:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=snapshot.error)
    if snapshot.order is not None:
        request.state.restaurant_id = snapshot.order.restaurant_id
    pointer.apply(response)
    return snapshot


@router.websocket("/{order_id}/ws")
async def order_tracking_socket(websocket: WebSocket, order_id: str):
    gateway: Gateway = websocket.app.state.gateway
    await websocket.accept()

    # Cookies cannot be rewritten over a socket; the snapshot carries the
    # pointer state and the client mirrors it.
    pointer = InMemoryActiveOrderStore(websocket.cookies.get(ACTIVE_ORDER_COOKIE))

    async def push(tracker: OrderTracker) -> None:
        await websocket.send_json(tracker.snapshot().model_dump(mode="json"))

    tracker = OrderTracker(gateway, order_id, pointer, on_change=push)
    try:
        await tracker.start()
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("[ORDER_TRACKER] socket disconnected order_id=%s", order_id)
    finally:
        await tracker.close()
