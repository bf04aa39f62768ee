from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from storefront.schemas.records import MenuItemRecord, OrderLine


@dataclass
class CartLine:
    id: str
    name: str
    price: Decimal
    quantity: int = 1

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class Cart:
    """Tab-scoped cart keyed by menu item id.

    Totals are computed on every read, never cached.
    """

    def __init__(self) -> None:
        self._lines: dict[str, CartLine] = {}

    def add_to_cart(self, item: MenuItemRecord) -> CartLine:
        line = self._lines.get(item.id)
        if line is None:
            line = CartLine(id=item.id, name=item.name, price=Decimal(item.price))
            self._lines[item.id] = line
        else:
            line.quantity += 1
        return line

    def update_quantity(self, item_id: str, quantity: int) -> None:
        if quantity <= 0:
            self.remove_from_cart(item_id)
            return
        line = self._lines.get(item_id)
        if line is not None:
            line.quantity = quantity

    def remove_from_cart(self, item_id: str) -> None:
        self._lines.pop(item_id, None)

    def clear(self) -> None:
        self._lines.clear()

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines.values())

    @property
    def total(self) -> Decimal:
        return sum((line.line_total for line in self._lines.values()), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def snapshot(self) -> list[OrderLine]:
        """Detached copy of the lines for an order row."""
        return [
            OrderLine(id=line.id, name=line.name, price=line.price, quantity=line.quantity)
            for line in self._lines.values()
        ]

    def __len__(self) -> int:
        return len(self._lines)
