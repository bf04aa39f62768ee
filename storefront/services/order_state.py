"""Order lifecycle.

Canonical lineage::

    pending -> confirmed -> preparing -> out_for_delivery -> delivered

``cancelled`` is reachable from any non-terminal status. Any forward move along
the lineage is a legal transition, but the owner dashboard only drives
``pending -> preparing``, ``preparing -> delivered`` and cancellation. The
remaining forward moves belong to an external actor (for instance a rider
integration) that this service does not model further.
"""

from __future__ import annotations

from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class Actor(str, Enum):
    OWNER = "owner"
    EXTERNAL = "external"


ORDER_LINEAGE: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
)
INITIAL_STATUS = OrderStatus.PENDING
TERMINAL_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

_OWNER_FORWARD: dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.PREPARING,
    OrderStatus.PREPARING: OrderStatus.DELIVERED,
}


class IllegalTransitionError(ValueError):
    def __init__(self, current: OrderStatus, target: OrderStatus, actor: Actor) -> None:
        self.current = current
        self.target = target
        self.actor = actor
        super().__init__(f"{actor.value} cannot move order from {current.value} to {target.value}")


def normalize_status(value: str | OrderStatus) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    normalized = (value or "").strip().lower()
    try:
        return OrderStatus(normalized)
    except ValueError as exc:
        raise ValueError(f"Unknown order status: {value!r}") from exc


def is_terminal(status: str | OrderStatus) -> bool:
    return normalize_status(status) in TERMINAL_STATUSES


def allowed_transitions(current: str | OrderStatus) -> tuple[OrderStatus, ...]:
    current = normalize_status(current)
    if current in TERMINAL_STATUSES:
        return ()
    position = ORDER_LINEAGE.index(current)
    return ORDER_LINEAGE[position + 1:] + (OrderStatus.CANCELLED,)


def can_transition(current: str | OrderStatus, target: str | OrderStatus) -> bool:
    return normalize_status(target) in allowed_transitions(current)


def owner_actions(current: str | OrderStatus) -> tuple[OrderStatus, ...]:
    """Transitions the dashboard offers for an order in ``current``."""
    current = normalize_status(current)
    if current in TERMINAL_STATUSES:
        return ()
    forward = _OWNER_FORWARD.get(current)
    if forward is None:
        return (OrderStatus.CANCELLED,)
    return (forward, OrderStatus.CANCELLED)


def check_transition(
    current: str | OrderStatus,
    target: str | OrderStatus,
    actor: Actor = Actor.OWNER,
) -> OrderStatus:
    current = normalize_status(current)
    target = normalize_status(target)
    if not can_transition(current, target):
        raise IllegalTransitionError(current, target, actor)
    if actor is Actor.OWNER and target not in owner_actions(current):
        raise IllegalTransitionError(current, target, actor)
    return target


def progress_index(status: str | OrderStatus) -> int:
    """Index of the highest completed step; -1 for cancelled orders."""
    status = normalize_status(status)
    if status is OrderStatus.CANCELLED:
        return -1
    return ORDER_LINEAGE.index(status)
