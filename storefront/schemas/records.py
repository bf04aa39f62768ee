"""Typed rows exchanged with the gateway.

ORM objects never leave a gateway session; callers only see these models.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator, model_validator

from storefront.services.order_state import OrderStatus

logger = logging.getLogger(__name__)

FALLBACK_CATEGORY = "Other"

Money = Annotated[
    Decimal,
    PlainSerializer(lambda value: float(value), return_type=float, when_used="json"),
]


class PaymentMethod(str, Enum):
    COD = "COD"
    UPI = "UPI"


class OrderType(str, Enum):
    DELIVERY = "DELIVERY"
    DINE_IN = "DINE_IN"


class RecordModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PublicBranding(RecordModel):
    id: str
    name: str
    slug: str
    city: Optional[str] = None
    theme_color: Optional[str] = None
    secondary_color: Optional[str] = None
    font: Optional[str] = None
    hero_image_url: Optional[str] = None
    hero_title: Optional[str] = None
    hero_subtitle: Optional[str] = None
    about_us: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None
    whatsapp_number: Optional[str] = None
    opening_hours: Optional[str] = None
    google_maps_url: Optional[str] = None
    upi_id: Optional[str] = None
    is_accepting_orders: bool = True
    total_tables: int = 0


class RestaurantRecord(PublicBranding):
    owner_id: str
    created_at: Optional[datetime] = None

    def public_branding(self) -> PublicBranding:
        return PublicBranding.model_validate(self.model_dump(exclude={"owner_id", "created_at"}))


class InventoryRecord(RecordModel):
    id: str
    restaurant_id: str
    name: str
    unit: str
    current_stock: float
    cost_per_unit: Money = Decimal("0")
    min_stock_alert: float = 0

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.min_stock_alert

    @property
    def valuation(self) -> Decimal:
        return Decimal(str(self.current_stock)) * self.cost_per_unit


class RecipeLink(BaseModel):
    id: Optional[str] = None
    inventory_item_id: str
    quantity: float
    # Joined component row; None when the component no longer resolves.
    component: Optional[InventoryRecord] = None


class MenuItemRecord(RecordModel):
    id: str
    restaurant_id: str
    name: str
    price: Money
    category: Optional[str] = None
    is_veg: bool = False
    image_url: Optional[str] = None
    is_available: bool = True
    recipe: list[RecipeLink] = Field(default_factory=list)

    @property
    def display_category(self) -> str:
        return (self.category or "").strip() or FALLBACK_CATEGORY


class OrderLine(BaseModel):
    id: str
    name: str
    price: Money
    quantity: int = Field(..., ge=1)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


def _parse_snapshot(value: Any) -> Any:
    # Older rows may hold the snapshot as a JSON string.
    if value is None:
        return []
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            logger.warning("order snapshot is not valid JSON; treating as empty")
            return []
        return parsed if isinstance(parsed, list) else []
    return value


def snapshot_total(lines: list[OrderLine]) -> Decimal:
    return sum((line.line_total for line in lines), Decimal("0"))


class OrderDraft(BaseModel):
    restaurant_id: str
    customer_name: str
    customer_phone: str
    customer_address: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    order_details: list[OrderLine] = Field(..., min_length=1)
    total_amount: Money
    payment_method: PaymentMethod = PaymentMethod.COD
    order_type: OrderType = OrderType.DELIVERY
    table_number: Optional[int] = None

    @model_validator(mode="after")
    def _total_matches_snapshot(self) -> "OrderDraft":
        expected = snapshot_total(self.order_details)
        if self.total_amount != expected:
            raise ValueError(f"total_amount {self.total_amount} does not match snapshot total {expected}")
        return self


class OrderRecord(RecordModel):
    id: str
    restaurant_id: str
    customer_name: str = ""
    customer_phone: str = ""
    customer_address: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    order_details: list[OrderLine] = Field(default_factory=list)
    total_amount: Money
    status: OrderStatus
    payment_method: PaymentMethod = PaymentMethod.COD
    order_type: OrderType = OrderType.DELIVERY
    table_number: Optional[int] = None
    created_at: Optional[datetime] = None

    @field_validator("order_details", mode="before")
    @classmethod
    def _parse_order_details(cls, value: Any) -> Any:
        return _parse_snapshot(value)

    @property
    def maps_url(self) -> Optional[str]:
        if self.latitude is None or self.longitude is None:
            return None
        return f"https://www.google.com/maps/search/?api=1&query={self.latitude},{self.longitude}"


class ReviewRecord(RecordModel):
    id: str
    restaurant_id: str
    customer_name: str
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = None
    is_visible: bool = True
    created_at: Optional[datetime] = None
