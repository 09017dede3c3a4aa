"""Live query feed over the orders collection.

A subscription first receives a snapshot of the matching orders, newest first
and limited, then one change event per write that touches its result set.
When an order leaves a full result set, the next matching order is loaded and
announced as added, so a limited subscription stays full while matches exist.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Literal

from order_desk.schemas.order import OrderRecord
from order_desk.services.order_status import OrderStatus, normalize_status
from order_desk.utils.time import ensure_utc

logger = logging.getLogger(__name__)

ChangeKind = Literal["added", "modified", "removed"]


def recency_key(order: OrderRecord) -> tuple[float, str]:
    """Sort key for newest-first ordering; ties broken by id."""
    return (ensure_utc(order.created_at).timestamp(), order.id)


@dataclass(frozen=True)
class OrderFilter:
    """Status equality filter; status None means all orders."""

    status: OrderStatus | None = None

    @classmethod
    def parse(cls, value: str | None) -> "OrderFilter":
        if value is None or value.strip().lower() in {"", "all"}:
            return cls()
        return cls(status=normalize_status(value))

    def matches(self, order: OrderRecord) -> bool:
        return self.status is None or order.status is self.status

    @property
    def label(self) -> str:
        return "all" if self.status is None else self.status.value


ALL_ORDERS = OrderFilter()


@dataclass(frozen=True)
class SnapshotEvent:
    subscription_id: int
    orders: tuple[OrderRecord, ...]


@dataclass(frozen=True)
class ChangeEvent:
    subscription_id: int
    kind: ChangeKind
    order_id: str
    order: OrderRecord | None = None


FeedEvent = SnapshotEvent | ChangeEvent
FeedListener = Callable[[FeedEvent], None]
SnapshotLoader = Callable[[OrderFilter, int], Sequence[OrderRecord]]


@dataclass
class FeedSubscription:
    """Handle for one live query; cancel() stops further delivery.

    `members` holds the orders currently inside the subscription's limited
    result set, keyed by id.
    """

    id: int
    order_filter: OrderFilter
    limit: int
    listener: FeedListener
    feed: "OrderFeed"
    members: dict[str, OrderRecord] = field(default_factory=dict)
    active: bool = False
    cancelled: bool = False

    @property
    def member_ids(self) -> set[str]:
        return set(self.members)

    def start(self) -> None:
        """Load and deliver the snapshot, then begin receiving changes."""
        self.feed.activate(self)

    def cancel(self) -> None:
        self.feed.unsubscribe(self)

    def change_event(self, kind: ChangeKind, order_id: str, order: OrderRecord | None = None) -> ChangeEvent:
        return ChangeEvent(subscription_id=self.id, kind=kind, order_id=order_id, order=order)


class OrderFeed:
    """Fan-out of order writes to live subscriptions.

    Events are delivered while the feed lock is held. Writers hold the same
    lock across their commit and publish, so every subscription sees changes
    to a document in commit order.
    """

    def __init__(self, loader: SnapshotLoader | None = None) -> None:
        self._loader = loader
        self._subscriptions: dict[int, FeedSubscription] = {}
        self._ids = itertools.count(1)
        self._lock = threading.RLock()

    @property
    def lock(self) -> "threading.RLock":
        return self._lock

    def bind_loader(self, loader: SnapshotLoader) -> None:
        self._loader = loader

    def open(self, order_filter: OrderFilter, limit: int, listener: FeedListener) -> FeedSubscription:
        """Create a subscription handle without delivering anything yet."""
        return FeedSubscription(
            id=next(self._ids),
            order_filter=order_filter,
            limit=limit,
            listener=listener,
            feed=self,
        )

    def _load(self, subscription: FeedSubscription) -> tuple[OrderRecord, ...]:
        if self._loader is None:
            raise RuntimeError("Order feed has no snapshot loader bound")
        return tuple(self._loader(subscription.order_filter, subscription.limit))

    def activate(self, subscription: FeedSubscription) -> None:
        """Deliver the snapshot and register for changes.

        The snapshot is loaded and delivered under the lock so no write can slip
        between the snapshot and the first change event. A subscription
        cancelled before it was started is never registered.
        """
        with self._lock:
            if subscription.cancelled:
                logger.debug("[FEED] subscription=%s cancelled before start", subscription.id)
                return
            orders = self._load(subscription)
            subscription.members = {order.id: order for order in orders}
            subscription.active = True
            self._subscriptions[subscription.id] = subscription
            logger.debug(
                "[FEED] subscription=%s filter=%s snapshot=%s",
                subscription.id,
                subscription.order_filter.label,
                len(orders),
            )
            subscription.listener(SnapshotEvent(subscription_id=subscription.id, orders=orders))

    def subscribe(self, order_filter: OrderFilter, limit: int, listener: FeedListener) -> FeedSubscription:
        """Open a subscription and deliver its initial snapshot."""
        subscription = self.open(order_filter, limit, listener)
        subscription.start()
        return subscription

    def unsubscribe(self, subscription: FeedSubscription) -> None:
        with self._lock:
            subscription.active = False
            subscription.cancelled = True
            subscription.members = {}
            self._subscriptions.pop(subscription.id, None)

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    def publish(self, order: OrderRecord) -> None:
        """Notify subscriptions about a created or updated order."""
        with self._lock:
            for subscription in list(self._subscriptions.values()):
                for event in self._changes_for(subscription, order):
                    subscription.listener(event)

    def _changes_for(self, subscription: FeedSubscription, order: OrderRecord) -> list[ChangeEvent]:
        members = subscription.members
        if subscription.order_filter.matches(order):
            if order.id in members:
                members[order.id] = order
                return [subscription.change_event("modified", order.id, order)]
            members[order.id] = order
            if len(members) <= subscription.limit:
                return [subscription.change_event("added", order.id, order)]
            evicted = min(members.values(), key=recency_key)
            del members[evicted.id]
            if evicted.id == order.id:
                return []
            return [
                subscription.change_event("added", order.id, order),
                subscription.change_event("removed", evicted.id),
            ]

        if order.id not in members:
            return []
        was_full = len(members) >= subscription.limit
        del members[order.id]
        events = [subscription.change_event("removed", order.id)]
        if was_full:
            events.extend(self._refill(subscription))
        return events

    def _refill(self, subscription: FeedSubscription) -> list[ChangeEvent]:
        """Admit the orders that moved up into a result set after a removal."""
        try:
            loaded = self._load(subscription)
        except Exception:
            logger.exception("[FEED] Refill failed for subscription=%s", subscription.id)
            return []
        events = []
        for order in loaded:
            if order.id in subscription.members or len(subscription.members) >= subscription.limit:
                continue
            subscription.members[order.id] = order
            events.append(subscription.change_event("added", order.id, order))
        return events
