from __future__ import annotations

import logging

from storefront.gateway.base import Gateway
from storefront.schemas.records import OrderRecord
from storefront.services.order_state import Actor, OrderStatus, check_transition

logger = logging.getLogger(__name__)


async def advance_order(
    gateway: Gateway,
    order: OrderRecord,
    target: str | OrderStatus,
    *,
    actor: Actor = Actor.OWNER,
    restaurant_id: str | None = None,
) -> OrderRecord:
    """Checks the transition, then writes it as one conditional update.

    ``order`` is the caller's view of the row; if the row moved on since, the
    gateway raises ``StaleWriteError``.
    """
    new_status = check_transition(order.status, target, actor)
    logger.info(
        "[ORDER_STATUS] transition requested order_id=%s actor=%s from=%s to=%s",
        order.id,
        actor.value,
        order.status.value,
        new_status.value,
    )
    return await gateway.update_order_status(
        order.id,
        order.status,
        new_status,
        restaurant_id=restaurant_id,
    )
