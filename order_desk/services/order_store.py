"""Orders collection backed by SQLAlchemy, exposed as a document store."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from order_desk.models.order import Order
from order_desk.schemas.order import OrderCreate, OrderRecord
from order_desk.services.order_feed import OrderFeed, OrderFilter
from order_desk.services.order_status import ENTRY_STATUS, LEGACY_STATUS_ALIASES, OrderStatus, normalize_status

logger = logging.getLogger(__name__)

MUTABLE_FIELDS: frozenset[str] = frozenset({"status"})
ORDER_NUMBER_PREFIX = "ORD-"
ORDER_NUMBER_ATTEMPTS = 5

CreatedHook = Callable[[OrderRecord], None]
SessionFactory = Callable[[], Session]


class PersistError(Exception):
    """Raised when the store cannot apply a write."""


class StatusConflict(PersistError):
    """The stored status moved on since the caller read it."""

    def __init__(self, order_id: str, expected: OrderStatus | None, actual: OrderStatus) -> None:
        expected_label = expected.value if expected is not None else "any"
        super().__init__(f"Order {order_id} is {actual.value}, expected {expected_label}")
        self.order_id = order_id
        self.expected = expected
        self.actual = actual


def compute_total(payload: OrderCreate) -> tuple[Decimal, Decimal]:
    """Return (delivery_fee, total) for a new order; takeaway carries no fee."""
    delivery_fee = payload.delivery_fee if payload.order_type == "delivery" else Decimal("0.00")
    items_total = sum((line.price * line.quantity for line in payload.items), Decimal("0"))
    return delivery_fee, items_total + delivery_fee


def stored_labels(status: OrderStatus) -> list[str]:
    """Return every stored label that means status, legacy aliases included."""
    return [status.value, *(label for label, alias in LEGACY_STATUS_ALIASES.items() if alias is status)]


def format_order_number(sequence: int) -> str:
    return f"{ORDER_NUMBER_PREFIX}{sequence:03d}"


def to_record(order: Order) -> OrderRecord:
    return OrderRecord.model_validate(order)


class OrderStore:
    """Create, read, update and live-query orders.

    Every successful write is published to the feed after commit, so live views
    only ever see confirmed state.
    """

    def __init__(self, session_factory: SessionFactory, feed: OrderFeed | None = None) -> None:
        self._session_factory = session_factory
        self.feed = feed or OrderFeed()
        self.feed.bind_loader(self.list_orders)
        self._created_hooks: list[CreatedHook] = []

    def on_created(self, hook: CreatedHook) -> None:
        """Register a callback run for every newly created order."""
        self._created_hooks.append(hook)

    def _session(self) -> Session:
        return self._session_factory()

    def _insert(self, payload: OrderCreate, delivery_fee: Decimal, total: Decimal) -> OrderRecord:
        with self._session() as db:
            try:
                sequence = (db.scalar(select(func.count()).select_from(Order)) or 0) + 1
                order = Order(
                    order_number=format_order_number(sequence),
                    customer_name=payload.customer_name,
                    customer_phone=payload.customer_phone,
                    order_type=payload.order_type,
                    delivery_address=(
                        payload.delivery_address.model_dump(mode="json")
                        if payload.order_type == "delivery" and payload.delivery_address is not None
                        else None
                    ),
                    items=[line.model_dump(mode="json") for line in payload.items],
                    delivery_fee=delivery_fee,
                    total=total,
                    status=ENTRY_STATUS.value,
                    notes=payload.notes,
                    priority=payload.priority,
                    paid_at=payload.paid_at,
                )
                db.add(order)
                db.commit()
                db.refresh(order)
            except SQLAlchemyError:
                db.rollback()
                raise
            return to_record(order)

    def create(self, payload: OrderCreate) -> OrderRecord:
        """Insert a new order in the entry status and publish it.

        Order numbers follow the row count. Creates in this process run one at a
        time; a number taken by another writer is retried with a fresh count.
        """
        delivery_fee, total = compute_total(payload)
        with self.feed.lock:
            for attempt in range(1, ORDER_NUMBER_ATTEMPTS + 1):
                try:
                    record = self._insert(payload, delivery_fee, total)
                    break
                except IntegrityError as exc:
                    if attempt == ORDER_NUMBER_ATTEMPTS:
                        logger.exception("[ORDERS] No free order number for %s", payload.customer_name)
                        raise PersistError("Failed to create order") from exc
                    logger.warning("[ORDERS] Order number taken, retrying (attempt %s)", attempt)
                except SQLAlchemyError as exc:
                    logger.exception("[ORDERS] Failed to create order for %s", payload.customer_name)
                    raise PersistError("Failed to create order") from exc
            logger.info("[ORDERS] Created order %s (%s)", record.order_number, record.id)
            self.feed.publish(record)

        for hook in self._created_hooks:
            try:
                hook(record)
            except Exception:
                logger.exception("[ORDERS] Order created hook failed for %s", record.id)
        return record

    def get(self, order_id: str) -> OrderRecord | None:
        with self._session() as db:
            order = db.get(Order, order_id)
            return to_record(order) if order is not None else None

    def list_orders(self, order_filter: OrderFilter | None = None, limit: int = 50) -> Sequence[OrderRecord]:
        """Return orders matching filter, newest first."""
        query = select(Order).order_by(Order.created_at.desc(), Order.id.desc()).limit(limit)
        if order_filter is not None and order_filter.status is not None:
            query = query.where(Order.status.in_(stored_labels(order_filter.status)))
        with self._session() as db:
            return [to_record(order) for order in db.scalars(query).all()]

    def update_field(
        self,
        order_id: str,
        fields: dict[str, Any],
        expected_status: OrderStatus | None = None,
    ) -> OrderRecord:
        """Apply a field update and return the confirmed order.

        With expected_status the write only lands while the stored status still
        matches it; otherwise StatusConflict is raised and nothing changes.
        """
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise PersistError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
        values: dict[str, Any] = {}
        if "status" in fields:
            values["status"] = normalize_status(fields["status"]).value

        statement = update(Order).where(Order.id == order_id).values(**values)
        if expected_status is not None:
            statement = statement.where(Order.status.in_(stored_labels(expected_status)))

        with self.feed.lock:
            with self._session() as db:
                try:
                    matched = db.execute(statement).rowcount if values else 1
                    if not matched:
                        db.rollback()
                        current = db.get(Order, order_id)
                        if current is None:
                            raise PersistError(f"Order {order_id} not found")
                        raise StatusConflict(order_id, expected_status, normalize_status(current.status))
                    db.commit()
                    order = db.get(Order, order_id)
                    if order is None:
                        raise PersistError(f"Order {order_id} not found")
                    record = to_record(order)
                except SQLAlchemyError as exc:
                    db.rollback()
                    raise PersistError(f"Failed to update order {order_id}") from exc
            self.feed.publish(record)
        return record
