import asyncio
from decimal import Decimal

import pytest

from storefront.gateway.feed import ChangeFeed, ChangeFilter
from storefront.schemas.changes import (
    InventoryUpdated,
    OrderInserted,
    OrderUpdated,
    parse_change_event,
)
from storefront.schemas.records import InventoryRecord, OrderRecord


def _order(order_id="o1", restaurant_id="rest-1", status="pending"):
    return OrderRecord(
        id=order_id,
        restaurant_id=restaurant_id,
        order_details=[{"id": "A", "name": "Tikka", "price": 100, "quantity": 1}],
        total_amount=Decimal("100"),
        status=status,
    )


def test_filter_parses_column_equality_expression():
    change_filter = ChangeFilter.parse("orders", "restaurant_id=eq.rest-1")
    assert change_filter.column == "restaurant_id"
    assert change_filter.value == "rest-1"
    assert change_filter.events == frozenset({"INSERT", "UPDATE", "DELETE"})

    update_only = ChangeFilter.parse("orders", "id=eq.o1", event="update")
    assert update_only.events == frozenset({"UPDATE"})

    with pytest.raises(ValueError):
        ChangeFilter.parse("orders", "restaurant_id=gt.5")


def test_filter_matches_table_event_and_row():
    by_restaurant = ChangeFilter.parse("orders", "restaurant_id=eq.rest-1")
    updates_for_o1 = ChangeFilter.parse("orders", "id=eq.o1", event="UPDATE")

    inserted = OrderInserted(new=_order())
    foreign = OrderInserted(new=_order(restaurant_id="rest-2"))
    updated = OrderUpdated(new=_order(status="preparing"), old=_order())

    assert by_restaurant.matches(inserted)
    assert not by_restaurant.matches(foreign)
    assert not updates_for_o1.matches(inserted)
    assert updates_for_o1.matches(updated)


def test_events_round_trip_through_tagged_union():
    event = parse_change_event({"kind": "orders.UPDATE", "new": _order(status="preparing").model_dump(mode="json")})
    assert isinstance(event, OrderUpdated)
    assert event.table == "orders"
    assert event.type == "UPDATE"
    assert event.new.total_amount == Decimal("100")

    inventory = parse_change_event({
        "kind": "inventory.UPDATE",
        "new": InventoryRecord(id="i1", restaurant_id="rest-1", name="Rice", unit="kg", current_stock=2).model_dump(),
    })
    assert isinstance(inventory, InventoryUpdated)


def test_publish_delivers_only_to_matching_subscribers():
    async def scenario():
        feed = ChangeFeed()
        mine = feed.subscribe(ChangeFilter.parse("orders", "restaurant_id=eq.rest-1"))
        theirs = feed.subscribe(ChangeFilter.parse("orders", "restaurant_id=eq.rest-2"))

        delivered = feed.publish(OrderInserted(new=_order()))

        assert delivered == 1
        assert mine.pending() == 1
        assert theirs.pending() == 0

        received = []

        async def consume():
            async for event in mine:
                received.append(event)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        mine.close()
        await asyncio.wait_for(task, timeout=1)

        assert [event.new.id for event in received] == ["o1"]
        assert feed.subscriber_count("orders") == 1
        theirs.close()
        assert feed.subscriber_count() == 0
        assert feed.publish(OrderInserted(new=_order())) == 0

    asyncio.run(scenario())
