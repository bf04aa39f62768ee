"""Snapshots pushed to the dashboard board and the customer tracker."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel

from storefront.schemas.records import OrderRecord, PublicBranding
from storefront.services.order_state import OrderStatus


class BoardEntry(BaseModel):
    order: OrderRecord
    actions: list[OrderStatus]
    maps_url: Optional[str] = None


class BoardSnapshot(BaseModel):
    restaurant_id: str
    loaded: bool
    error: Optional[str] = None
    orders: list[BoardEntry]


class TrackerState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


class TrackerStep(BaseModel):
    status: OrderStatus
    label: str
    completed: bool
    current: bool
    message: Optional[str] = None


class TrackerSnapshot(BaseModel):
    order_id: str
    state: TrackerState
    reference: str
    order: Optional[OrderRecord] = None
    restaurant: Optional[PublicBranding] = None
    cancelled: bool = False
    terminal: bool = False
    headline: Optional[str] = None
    steps: list[TrackerStep] = []
    active_order_id: Optional[str] = None
    error: Optional[str] = None
