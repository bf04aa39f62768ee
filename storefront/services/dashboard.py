from __future__ import annotations

from collections import Counter
from decimal import Decimal
from typing import Sequence

from pydantic import BaseModel

from storefront.schemas.records import InventoryRecord, MenuItemRecord, Money, OrderRecord
from storefront.services.order_state import OrderStatus

TOP_ITEMS_LIMIT = 5


class TopItem(BaseModel):
    name: str
    count: int


class Overview(BaseModel):
    total_orders: int
    delivered_orders: int
    total_revenue: Money
    average_order_value: Money
    status_breakdown: dict[str, int]
    top_items: list[TopItem]
    low_stock_count: int


def top_items(orders: Sequence[OrderRecord], limit: int = TOP_ITEMS_LIMIT) -> list[TopItem]:
    counts: Counter[str] = Counter()
    for order in orders:
        for line in order.order_details:
            if line.name:
                counts[line.name] += line.quantity
    ranked = sorted(counts.items(), key=lambda entry: (-entry[1], entry[0]))
    return [TopItem(name=name, count=count) for name, count in ranked[:limit]]


def build_overview(orders: Sequence[OrderRecord], inventory: Sequence[InventoryRecord] = ()) -> Overview:
    """Revenue counts delivered orders only."""
    delivered = [order for order in orders if order.status is OrderStatus.DELIVERED]
    revenue = sum((Decimal(order.total_amount) for order in delivered), Decimal("0"))
    breakdown = Counter(order.status.value for order in orders)
    average = (revenue / max(len(delivered), 1)).quantize(Decimal("0.01")) if orders else Decimal("0")
    return Overview(
        total_orders=len(orders),
        delivered_orders=len(delivered),
        total_revenue=revenue,
        average_order_value=average,
        status_breakdown={status.value: breakdown.get(status.value, 0) for status in OrderStatus},
        top_items=top_items(orders),
        low_stock_count=sum(1 for item in inventory if item.is_low_stock),
    )


def recipe_cost(item: MenuItemRecord) -> Decimal:
    total = Decimal("0")
    for link in item.recipe:
        if link.component is not None:
            total += Decimal(str(link.quantity)) * link.component.cost_per_unit
    return total


def inventory_valuation(inventory: Sequence[InventoryRecord]) -> Decimal:
    return sum((item.valuation for item in inventory), Decimal("0"))
