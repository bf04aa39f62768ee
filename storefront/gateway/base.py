from __future__ import annotations

from typing import Any, Protocol

from storefront.gateway.feed import ChangeFeed
from storefront.schemas.records import (
    InventoryRecord,
    MenuItemRecord,
    OrderDraft,
    OrderRecord,
    RestaurantRecord,
    ReviewRecord,
)
from storefront.services.order_state import OrderStatus


class Gateway(Protocol):
    """Storage plus change notifications, as seen by the views and routes.

    Every write that succeeds publishes one change event on ``feed``.
    """

    feed: ChangeFeed

    async def get_restaurant_by_slug(self, slug: str) -> RestaurantRecord:
        ...

    async def get_restaurant(self, restaurant_id: str) -> RestaurantRecord:
        ...

    async def get_restaurant_for_owner(self, owner_id: str) -> RestaurantRecord | None:
        ...

    async def save_restaurant(self, owner_id: str, values: dict[str, Any]) -> RestaurantRecord:
        ...

    async def list_menu(self, restaurant_id: str, *, available_only: bool = False) -> list[MenuItemRecord]:
        ...

    async def create_menu_item(
        self,
        restaurant_id: str,
        values: dict[str, Any],
        recipe: list[tuple[str, float]] | None = None,
    ) -> MenuItemRecord:
        ...

    async def update_menu_item(self, restaurant_id: str, item_id: str, values: dict[str, Any]) -> MenuItemRecord:
        ...

    async def delete_menu_item(self, restaurant_id: str, item_id: str) -> MenuItemRecord:
        ...

    async def add_recipe_link(
        self, restaurant_id: str, item_id: str, inventory_item_id: str, quantity: float
    ) -> MenuItemRecord:
        ...

    async def remove_recipe_link(self, restaurant_id: str, item_id: str, link_id: str) -> MenuItemRecord:
        ...

    async def list_inventory(self, restaurant_id: str) -> list[InventoryRecord]:
        ...

    async def create_inventory_item(self, restaurant_id: str, values: dict[str, Any]) -> InventoryRecord:
        ...

    async def adjust_stock(self, restaurant_id: str, item_id: str, delta: float) -> InventoryRecord:
        ...

    async def update_inventory_item(self, restaurant_id: str, item_id: str, values: dict[str, Any]) -> InventoryRecord:
        ...

    async def delete_inventory_item(self, restaurant_id: str, item_id: str) -> InventoryRecord:
        ...

    async def insert_order(self, draft: OrderDraft) -> OrderRecord:
        ...

    async def get_order(self, order_id: str) -> OrderRecord:
        ...

    async def list_orders(self, restaurant_id: str) -> list[OrderRecord]:
        ...

    async def update_order_status(
        self,
        order_id: str,
        expected: OrderStatus,
        new: OrderStatus,
        *,
        restaurant_id: str | None = None,
    ) -> OrderRecord:
        ...

    async def list_reviews(self, restaurant_id: str, *, visible_only: bool = False) -> list[ReviewRecord]:
        ...

    async def set_review_visibility(self, restaurant_id: str, review_id: str, is_visible: bool) -> ReviewRecord:
        ...
