"""Reactive in-memory projection of the orders matching a filter."""

from __future__ import annotations

import logging
from collections.abc import Callable

from order_desk.core.config import settings
from order_desk.schemas.order import OrderRecord
from order_desk.services.order_feed import (
    ALL_ORDERS,
    ChangeEvent,
    FeedEvent,
    FeedSubscription,
    OrderFeed,
    OrderFilter,
    SnapshotEvent,
    recency_key,
)

logger = logging.getLogger(__name__)

ChangeListener = Callable[["LiveOrderView"], None]
Scheduler = Callable[[Callable[[], None]], None]


def _run_now(callback: Callable[[], None]) -> None:
    callback()


class LiveOrderView:
    """Orders matching the active filter, newest first, at most `limit` entries.

    The view owns its collection. Feed events pass through `scheduler` so a host
    can funnel them onto the thread that reads the view.
    """

    def __init__(
        self,
        feed: OrderFeed,
        limit: int | None = None,
        order_filter: OrderFilter = ALL_ORDERS,
        scheduler: Scheduler = _run_now,
    ) -> None:
        self._feed = feed
        self._limit = limit or settings.order_view_limit
        self._scheduler = scheduler
        self._filter = order_filter
        self._subscription: FeedSubscription | None = None
        self._orders: list[OrderRecord] = []
        self._loading = True
        self._selected_id: str | None = None
        self._selected: OrderRecord | None = None
        self._listeners: list[ChangeListener] = []

    @property
    def orders(self) -> tuple[OrderRecord, ...]:
        return tuple(self._orders)

    @property
    def order_filter(self) -> OrderFilter:
        return self._filter

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def subscription_id(self) -> int | None:
        return None if self._subscription is None else self._subscription.id

    @property
    def selected_order(self) -> OrderRecord | None:
        return self._selected

    def add_listener(self, callback: ChangeListener) -> Callable[[], None]:
        """Register a collection-changed callback; returns an unsubscribe function."""
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    def start(self) -> None:
        self.set_filter(self._filter)

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()
            self._subscription = None

    def set_filter(self, order_filter: OrderFilter) -> None:
        """Switch to a new filter; the view shows loading until its snapshot arrives."""
        self.switch_filter(order_filter).start()

    def switch_filter(self, order_filter: OrderFilter) -> FeedSubscription:
        """Reset to loading under a new filter and return its subscription unstarted.

        Starting the subscription loads the snapshot from the store, so async
        hosts run `start()` off their event loop.
        """
        self.close()
        self._filter = order_filter
        self._orders = []
        self._loading = True
        self.reconcile_selection()
        self._notify()
        self._subscription = self._feed.open(order_filter, self._limit, self._receive)
        return self._subscription

    def _receive(self, event: FeedEvent) -> None:
        self._scheduler(lambda: self.apply_event(event))

    def apply_event(self, event: FeedEvent) -> None:
        """Reduce one feed event into the collection."""
        if self._subscription is None or event.subscription_id != self._subscription.id:
            logger.debug("[LIVE] dropping event from stale subscription %s", event.subscription_id)
            return

        if isinstance(event, SnapshotEvent):
            self._orders = []
            for order in event.orders:
                self._upsert(order)
            self._loading = False
        elif isinstance(event, ChangeEvent):
            if event.kind == "removed" or event.order is None:
                self._remove(event.order_id)
            else:
                self._upsert(event.order)

        self.reconcile_selection()
        self._notify()

    def _upsert(self, order: OrderRecord) -> None:
        self._remove(order.id)
        if not self._filter.matches(order):
            return
        self._orders.append(order)
        self._orders.sort(key=recency_key, reverse=True)
        del self._orders[self._limit:]

    def _remove(self, order_id: str) -> None:
        self._orders = [order for order in self._orders if order.id != order_id]

    def select_order(self, order_id: str | None) -> OrderRecord | None:
        self._selected_id = order_id
        self.reconcile_selection()
        self._notify()
        return self._selected

    def reconcile_selection(self) -> None:
        """Re-resolve the selected order against the current collection."""
        if self._selected_id is None:
            self._selected = None
            return
        self._selected = next((order for order in self._orders if order.id == self._selected_id), None)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            callback(self)
