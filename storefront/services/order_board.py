from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError
from storefront.gateway.feed import ChangeFilter, Subscription
from storefront.schemas.records import OrderRecord
from storefront.schemas.views import BoardEntry, BoardSnapshot
from storefront.services.order_actions import advance_order
from storefront.services.order_state import OrderStatus, owner_actions

logger = logging.getLogger(__name__)

LOG_PREFIX = "[ORDER_BOARD]"

ChangeHook = Callable[["OrderBoard"], Awaitable[None]]


class OrderBoard:
    """Live list of one restaurant's orders, newest first.

    Any change on the restaurant's orders triggers a full re-query. A failed
    query keeps the previous list and records a dismissible error.
    """

    def __init__(self, gateway: Gateway, restaurant_id: str, *, on_change: Optional[ChangeHook] = None) -> None:
        self.gateway = gateway
        self.restaurant_id = restaurant_id
        self.on_change = on_change
        self.orders: list[OrderRecord] = []
        self.loaded = False
        self.error: Optional[str] = None
        self.closed = False
        self._subscription: Optional[Subscription] = None
        self._listener: Optional[asyncio.Task] = None
        self._issued = 0
        self._applied = 0

    async def start(self) -> "OrderBoard":
        change_filter = ChangeFilter.parse("orders", f"restaurant_id=eq.{self.restaurant_id}")
        self._subscription = self.gateway.feed.subscribe(change_filter, name=f"order-board-{self.restaurant_id}")
        self._listener = asyncio.create_task(self._listen())
        await self.refresh()
        return self

    async def _listen(self) -> None:
        assert self._subscription is not None
        async for event in self._subscription:
            logger.debug("%s change received kind=%s restaurant_id=%s", LOG_PREFIX, event.kind, self.restaurant_id)
            await self.refresh()

    async def refresh(self) -> bool:
        if self.closed:
            return False
        self._issued += 1
        ticket = self._issued
        try:
            orders = await self.gateway.list_orders(self.restaurant_id)
        except GatewayError as exc:
            if self.closed:
                return False
            logger.warning(
                "%s refresh failed restaurant_id=%s error=%s; keeping %s orders",
                LOG_PREFIX,
                self.restaurant_id,
                exc.message,
                len(self.orders),
            )
            self.error = "Could not refresh orders. Showing the last loaded list."
            await self._notify()
            return False
        # Late or superseded results are dropped.
        if self.closed or ticket < self._applied:
            return False
        self._applied = ticket
        self.orders = orders
        self.loaded = True
        await self._notify()
        return True

    def find(self, order_id: str) -> Optional[OrderRecord]:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def actions_for(self, order_id: str) -> tuple[OrderStatus, ...]:
        order = self.find(order_id)
        if order is None:
            return ()
        return owner_actions(order.status)

    def detail(self, order_id: str) -> Optional[OrderRecord]:
        return self.find(order_id)

    async def advance(self, order_id: str, target: str | OrderStatus) -> Optional[OrderRecord]:
        """Applies an owner action; the list itself updates from the change event."""
        order = self.find(order_id)
        if order is None:
            await self.report_error("Order is no longer on the board.")
            return None
        try:
            return await advance_order(self.gateway, order, target, restaurant_id=self.restaurant_id)
        except GatewayError as exc:
            logger.warning(
                "%s status update failed order_id=%s target=%s error=%s",
                LOG_PREFIX,
                order_id,
                target,
                exc.message,
            )
            if not self.closed:
                await self.report_error("Could not update the order. Please try again.")
            return None

    async def report_error(self, message: str) -> None:
        self.error = message
        await self._notify()

    async def dismiss_error(self) -> None:
        if self.error is None:
            return
        self.error = None
        await self._notify()

    def snapshot(self) -> BoardSnapshot:
        return BoardSnapshot(
            restaurant_id=self.restaurant_id,
            loaded=self.loaded,
            error=self.error,
            orders=[
                BoardEntry(order=order, actions=list(owner_actions(order.status)), maps_url=order.maps_url)
                for order in self.orders
            ],
        )

    async def _notify(self) -> None:
        if self.on_change is None or self.closed:
            return
        try:
            await self.on_change(self)
        except Exception:
            logger.exception("%s change hook failed restaurant_id=%s", LOG_PREFIX, self.restaurant_id)

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        if self._subscription is not None:
            self._subscription.close()
        listener = self._listener
        if listener is not None and listener is not asyncio.current_task():
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass
        logger.debug("%s closed restaurant_id=%s", LOG_PREFIX, self.restaurant_id)
