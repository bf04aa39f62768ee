from __future__ import annotations

from typing import Mapping, Sequence

from storefront.schemas.records import InventoryRecord, MenuItemRecord, RecipeLink

StockLevel = float | InventoryRecord


def _stock_of(entry: StockLevel) -> float:
    if isinstance(entry, InventoryRecord):
        return float(entry.current_stock)
    return float(entry)


def is_out_of_stock(recipe: Sequence[RecipeLink], inventory: Mapping[str, StockLevel]) -> bool:
    """Point-in-time stock verdict for one menu item.

    Nothing is reserved: two customers can both see an item in stock and
    both order it.
    """
    if not recipe:
        return False
    for link in recipe:
        entry = inventory.get(link.inventory_item_id)
        if entry is None:
            return True
        if _stock_of(entry) < float(link.quantity):
            return True
    return False


def inventory_snapshot(items: Sequence[MenuItemRecord]) -> dict[str, InventoryRecord]:
    """Collects the component rows joined onto a menu listing."""
    snapshot: dict[str, InventoryRecord] = {}
    for item in items:
        for link in item.recipe:
            if link.component is not None:
                snapshot[link.inventory_item_id] = link.component
    return snapshot


def item_is_out_of_stock(item: MenuItemRecord, inventory: Mapping[str, StockLevel] | None = None) -> bool:
    if inventory is None:
        inventory = inventory_snapshot([item])
    return is_out_of_stock(item.recipe, inventory)


def is_purchasable(item: MenuItemRecord, inventory: Mapping[str, StockLevel] | None = None) -> bool:
    return item.is_available and not item_is_out_of_stock(item, inventory)
