"""Row-level change notifications published by the gateway.

Every event carries a ``kind`` tag of the form ``"<table>.<EVENT>"`` and a
payload typed for that table. ``UPDATE`` events carry the new row and, when
known, the previous one; ``DELETE`` events only the previous one.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from storefront.schemas.records import InventoryRecord, MenuItemRecord, OrderRecord

ChangeType = Literal["INSERT", "UPDATE", "DELETE"]
CHANGE_TYPES: frozenset[str] = frozenset({"INSERT", "UPDATE", "DELETE"})
TABLES: frozenset[str] = frozenset({"orders", "menu_items", "inventory"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _Change(BaseModel):
    kind: str
    commit_timestamp: datetime = Field(default_factory=_utcnow)

    @property
    def table(self) -> str:
        return self.kind.split(".", 1)[0]

    @property
    def type(self) -> str:
        return self.kind.split(".", 1)[1]

    def row(self) -> Any:
        new = getattr(self, "new", None)
        return new if new is not None else getattr(self, "old", None)


class OrderInserted(_Change):
    kind: Literal["orders.INSERT"] = "orders.INSERT"
    new: OrderRecord


class OrderUpdated(_Change):
    kind: Literal["orders.UPDATE"] = "orders.UPDATE"
    new: OrderRecord
    old: Optional[OrderRecord] = None


class OrderDeleted(_Change):
    kind: Literal["orders.DELETE"] = "orders.DELETE"
    old: OrderRecord


class MenuItemInserted(_Change):
    kind: Literal["menu_items.INSERT"] = "menu_items.INSERT"
    new: MenuItemRecord


class MenuItemUpdated(_Change):
    kind: Literal["menu_items.UPDATE"] = "menu_items.UPDATE"
    new: MenuItemRecord
    old: Optional[MenuItemRecord] = None


class MenuItemDeleted(_Change):
    kind: Literal["menu_items.DELETE"] = "menu_items.DELETE"
    old: MenuItemRecord


class InventoryInserted(_Change):
    kind: Literal["inventory.INSERT"] = "inventory.INSERT"
    new: InventoryRecord


class InventoryUpdated(_Change):
    kind: Literal["inventory.UPDATE"] = "inventory.UPDATE"
    new: InventoryRecord
    old: Optional[InventoryRecord] = None


class InventoryDeleted(_Change):
    kind: Literal["inventory.DELETE"] = "inventory.DELETE"
    old: InventoryRecord


ChangeEvent = Annotated[
    Union[
        OrderInserted,
        OrderUpdated,
        OrderDeleted,
        MenuItemInserted,
        MenuItemUpdated,
        MenuItemDeleted,
        InventoryInserted,
        InventoryUpdated,
        InventoryDeleted,
    ],
    Field(discriminator="kind"),
]

change_event_adapter: TypeAdapter[ChangeEvent] = TypeAdapter(ChangeEvent)


def parse_change_event(payload: dict[str, Any]) -> ChangeEvent:
    return change_event_adapter.validate_python(payload)
