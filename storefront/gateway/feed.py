from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import DefaultDict, List, Optional

from storefront.schemas.changes import CHANGE_TYPES, ChangeEvent

_CLOSED = object()


@dataclass(frozen=True)
class ChangeFilter:
    """Table + event types + optional ``column == value`` row filter."""

    table: str
    events: frozenset[str] = field(default=CHANGE_TYPES)
    column: Optional[str] = None
    value: Optional[str] = None

    @classmethod
    def parse(cls, table: str, expression: str | None = None, event: str = "*") -> "ChangeFilter":
        """Builds a filter from the ``column=eq.value`` notation."""
        events = CHANGE_TYPES if event == "*" else frozenset({event.upper()})
        if not expression:
            return cls(table=table, events=events)
        column, _, rest = expression.partition("=")
        operator, _, value = rest.partition(".")
        if operator != "eq" or not column or not value:
            raise ValueError(f"Unsupported filter expression: {expression!r}")
        return cls(table=table, events=events, column=column, value=value)

    def matches(self, event: ChangeEvent) -> bool:
        if event.table != self.table or event.type not in self.events:
            return False
        if self.column is None:
            return True
        row = event.row()
        if row is None:
            return False
        return str(getattr(row, self.column, None)) == str(self.value)


class Subscription:
    """Queue of matching events for one view; iterate until closed."""

    def __init__(self, feed: "ChangeFeed", change_filter: ChangeFilter, name: str) -> None:
        self._feed = feed
        self.filter = change_filter
        self.name = name
        self.closed = False
        self._queue: asyncio.Queue = asyncio.Queue()

    def deliver(self, event: ChangeEvent) -> None:
        if not self.closed:
            self._queue.put_nowait(event)

    def pending(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._feed._remove(self)
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeEvent:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class ChangeFeed:
    """In-process publish/subscribe for row changes.

    ``publish`` must run on the event loop that owns the subscribers.
    """

    def __init__(self) -> None:
        self._subscriptions: DefaultDict[str, List[Subscription]] = defaultdict(list)
        self._logger = logging.getLogger(__name__)

    def subscribe(self, change_filter: ChangeFilter, name: str | None = None) -> Subscription:
        subscription = Subscription(self, change_filter, name or f"{change_filter.table}-subscription")
        self._subscriptions[change_filter.table].append(subscription)
        self._logger.debug("ChangeFeed: subscribed %s filter=%s", subscription.name, change_filter)
        return subscription

    def publish(self, event: ChangeEvent) -> int:
        subscriptions = list(self._subscriptions.get(event.table, []))
        delivered = 0
        for subscription in subscriptions:
            if subscription.filter.matches(event):
                subscription.deliver(event)
                delivered += 1
        if not delivered:
            self._logger.debug("ChangeFeed: no subscribers for %s", event.kind)
        return delivered

    def subscriber_count(self, table: str | None = None) -> int:
        if table is not None:
            return len(self._subscriptions.get(table, []))
        return sum(len(entries) for entries in self._subscriptions.values())

    def _remove(self, subscription: Subscription) -> None:
        entries = self._subscriptions.get(subscription.filter.table)
        if entries and subscription in entries:
            entries.remove(subscription)
            self._logger.debug("ChangeFeed: unsubscribed %s", subscription.name)
