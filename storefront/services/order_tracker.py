from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from storefront.gateway.base import Gateway
from storefront.gateway.errors import GatewayError, RecordNotFoundError
from storefront.gateway.feed import ChangeFilter, Subscription
from storefront.schemas.records import OrderRecord, PublicBranding
from storefront.schemas.views import TrackerSnapshot, TrackerState, TrackerStep
from storefront.services.active_order import ActiveOrderStore
from storefront.services.order_state import ORDER_LINEAGE, OrderStatus, is_terminal, progress_index

logger = logging.getLogger(__name__)

LOG_PREFIX = "[ORDER_TRACKER]"

STEP_LABELS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Order Placed",
    OrderStatus.CONFIRMED: "Confirmed",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.OUT_FOR_DELIVERY: "Out for Delivery",
    OrderStatus.DELIVERED: "Delivered",
}

ChangeHook = Callable[["OrderTracker"], Awaitable[None]]


def step_message(status: OrderStatus) -> str:
    if status is OrderStatus.OUT_FOR_DELIVERY:
        return "Our rider is on the way!"
    return "In Progress..."


def build_steps(status: OrderStatus) -> list[TrackerStep]:
    """Stepper for ``status``; empty for cancelled orders."""
    current = progress_index(status)
    if current < 0:
        return []
    return [
        TrackerStep(
            status=step,
            label=STEP_LABELS[step],
            completed=index <= current,
            current=index == current,
            message=step_message(step) if index == current else None,
        )
        for index, step in enumerate(ORDER_LINEAGE)
    ]


class OrderTracker:
    """Live view of a single order for the customer who placed it.

    Update notifications replace the whole order; there is no re-fetch. A
    terminal status clears the active-order pointer.
    """

    def __init__(
        self,
        gateway: Gateway,
        order_id: str,
        pointer: ActiveOrderStore,
        *,
        on_change: Optional[ChangeHook] = None,
    ) -> None:
        self.gateway = gateway
        self.order_id = order_id
        self.pointer = pointer
        self.on_change = on_change
        self.closed = False
        self._generation = 0
        self._subscription: Optional[Subscription] = None
        self._listener: Optional[asyncio.Task] = None
        self._reset()

    def _reset(self) -> None:
        self.state = TrackerState.LOADING
        self.order: Optional[OrderRecord] = None
        self.restaurant: Optional[PublicBranding] = None
        self.error: Optional[str] = None

    async def start(self) -> "OrderTracker":
        generation = self._generation
        change_filter = ChangeFilter.parse("orders", f"id=eq.{self.order_id}", event="UPDATE")
        self._subscription = self.gateway.feed.subscribe(change_filter, name=f"order-track-{self.order_id}")
        self._listener = asyncio.create_task(self._listen(self._subscription, generation))
        await self._load(generation)
        return self

    def _is_stale(self, generation: int) -> bool:
        return self.closed or generation != self._generation

    async def _load(self, generation: int) -> None:
        order_id = self.order_id
        try:
            order = await self.gateway.get_order(order_id)
        except RecordNotFoundError:
            if self._is_stale(generation):
                return
            if self.order is None:
                logger.info("%s order not found order_id=%s", LOG_PREFIX, order_id)
                self.state = TrackerState.NOT_FOUND
                await self._notify()
            return
        except GatewayError as exc:
            if self._is_stale(generation):
                return
            logger.warning("%s fetch failed order_id=%s error=%s", LOG_PREFIX, order_id, exc.message)
            if self.order is None:
                self.state = TrackerState.UNAVAILABLE
            self.error = "We couldn't load your order right now. Please try again."
            await self._notify()
            return

        if self._is_stale(generation):
            return
        # A notification that landed while fetching is newer than the fetch.
        if self.order is None:
            self._apply(order)
        await self._load_branding(generation, order.restaurant_id)
        if not self._is_stale(generation):
            await self._notify()

    async def _load_branding(self, generation: int, restaurant_id: str) -> None:
        try:
            restaurant = await self.gateway.get_restaurant(restaurant_id)
        except GatewayError as exc:
            logger.warning(
                "%s branding fetch failed order_id=%s restaurant_id=%s error=%s",
                LOG_PREFIX,
                self.order_id,
                restaurant_id,
                exc.message,
            )
            return
        if not self._is_stale(generation):
            self.restaurant = restaurant.public_branding()

    async def _listen(self, subscription: Subscription, generation: int) -> None:
        async for event in subscription:
            if self._is_stale(generation):
                break
            self._apply(event.new)
            logger.info(
                "%s status update order_id=%s status=%s",
                LOG_PREFIX,
                self.order_id,
                event.new.status.value,
            )
            await self._notify()

    def _apply(self, order: OrderRecord) -> None:
        self.order = order
        self.state = TrackerState.READY
        if is_terminal(order.status):
            self.clear_active_order()

    def clear_active_order(self) -> None:
        self.pointer.clear()

    @property
    def terminal(self) -> bool:
        return self.order is not None and is_terminal(self.order.status)

    @property
    def cancelled(self) -> bool:
        return self.order is not None and self.order.status is OrderStatus.CANCELLED

    def progress(self) -> list[TrackerStep]:
        if self.order is None:
            return []
        return build_steps(self.order.status)

    def headline(self) -> Optional[str]:
        if self.order is None:
            return None
        if self.cancelled:
            return "Order Cancelled"
        return "Order Confirmed!"

    def snapshot(self) -> TrackerSnapshot:
        return TrackerSnapshot(
            order_id=self.order_id,
            state=self.state,
            reference=self.order_id[:8].upper(),
            order=self.order,
            restaurant=self.restaurant,
            cancelled=self.cancelled,
            terminal=self.terminal,
            headline=self.headline(),
            steps=self.progress(),
            active_order_id=self.pointer.get(),
            error=self.error,
        )

    async def retarget(self, order_id: str) -> "OrderTracker":
        """Switches to another order, dropping the old subscription first."""
        if order_id == self.order_id and not self.closed:
            return self
        await self._teardown()
        self._generation += 1
        self.order_id = order_id
        self.closed = False
        self._reset()
        return await self.start()

    async def _notify(self) -> None:
        if self.on_change is None or self.closed:
            return
        try:
            await self.on_change(self)
        except Exception:
            logger.exception("%s change hook failed order_id=%s", LOG_PREFIX, self.order_id)

    async def _teardown(self) -> None:
        if self._subscription is not None:
            self._subscription.close()
            self._subscription = None
        listener = self._listener
        self._listener = None
        if listener is not None and listener is not asyncio.current_task():
            listener.cancel()
            try:
                await listener
            except asyncio.CancelledError:
                pass

    async def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        await self._teardown()
        logger.debug("%s closed order_id=%s", LOG_PREFIX, self.order_id)
