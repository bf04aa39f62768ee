from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect, status
from pydantic import BaseModel, ValidationError

from storefront.deps import gateway_http_error, get_gateway, get_owner_restaurant, websocket_owner_restaurant
from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError, PermissionDeniedError
from storefront.schemas.records import OrderRecord, RestaurantRecord
from storefront.schemas.views import BoardEntry, BoardSnapshot
from storefront.services.order_actions import advance_order
from storefront.services.order_board import OrderBoard
from storefront.services.order_state import IllegalTransitionError, OrderStatus, owner_actions

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/dashboard/orders", tags=["orders"])


class StatusUpdatePayload(BaseModel):
    status: OrderStatus
    # Status the owner saw when acting; the write is rejected if the row moved on.
    expected_status: Optional[OrderStatus] = None


class BoardCommand(BaseModel):
    action: str
    order_id: Optional[str] = None
    status: Optional[OrderStatus] = None


def _entry(order: OrderRecord) -> BoardEntry:
    return BoardEntry(order=order, actions=list(owner_actions(order.status)), maps_url=order.maps_url)


async def _load_owned_order(gateway: Gateway, restaurant: RestaurantRecord, order_id: str) -> OrderRecord:
    try:
        order = await gateway.get_order(order_id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    if order.restaurant_id != restaurant.id:
        logger.warning(
            "Access denied (foreign order): order_id=%s restaurant_id=%s",
            order_id,
            restaurant.id,
        )
        raise gateway_http_error(PermissionDeniedError("Order belongs to another restaurant", table="orders"))
    return order


@router.websocket("/ws")
async def order_board_socket(websocket: WebSocket):
    gateway: Gateway = websocket.app.state.gateway
    restaurant = await websocket_owner_restaurant(websocket, gateway)
    if restaurant is None:
        return
    await websocket.accept()

    async def push(board: OrderBoard) -> None:
        await websocket.send_json(board.snapshot().model_dump(mode="json"))

    board = OrderBoard(gateway, restaurant.id, on_change=push)
    try:
        await board.start()
        while True:
            raw = await websocket.receive_text()
            try:
                command = BoardCommand.model_validate_json(raw)
            except ValidationError:
                await board.report_error("Unknown command.")
                continue
            await _run_board_command(board, command)
    except WebSocketDisconnect:
        logger.info("[ORDER_BOARD] socket disconnected restaurant_id=%s", restaurant.id)
    finally:
        await board.close()


async def _run_board_command(board: OrderBoard, command: BoardCommand) -> None:
    if command.action == "advance" and command.order_id and command.status:
        try:
            await board.advance(command.order_id, command.status)
        except IllegalTransitionError as exc:
            await board.report_error(str(exc))
    elif command.action == "dismiss_error":
        await board.dismiss_error()
    elif command.action == "refresh":
        await board.refresh()
    else:
        await board.report_error(f"Unknown command {command.action!r}.")


@router.get("", response_model=BoardSnapshot)
async def list_orders(
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    try:
        orders = await gateway.list_orders(restaurant.id)
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return BoardSnapshot(restaurant_id=restaurant.id, loaded=True, orders=[_entry(order) for order in orders])


@router.get("/{order_id}", response_model=BoardEntry)
async def get_order_detail(
    order_id: str,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    return _entry(await _load_owned_order(gateway, restaurant, order_id))


@router.patch("/{order_id}/status", response_model=BoardEntry)
async def update_order_status(
    order_id: str,
    payload: StatusUpdatePayload,
    restaurant: RestaurantRecord = Depends(get_owner_restaurant),
    gateway: Gateway = Depends(get_gateway),
):
    order = await _load_owned_order(gateway, restaurant, order_id)
    if payload.expected_status is not None:
        order = order.model_copy(update={"status": payload.expected_status})
    try:
        updated = await advance_order(gateway, order, payload.status, restaurant_id=restaurant.id)
    except IllegalTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(exc),
                "current_status": exc.current.value,
                "allowed": [action.value for action in owner_actions(exc.current)],
            },
        ) from exc
    except GatewayError as exc:
        raise gateway_http_error(exc) from exc
    return _entry(updated)
