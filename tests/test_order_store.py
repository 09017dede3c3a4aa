"""Order store persistence, feed publishing and status actions."""

import threading
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from order_desk.db.base import Base
from order_desk.models.order import Order
from order_desk.schemas.order import DeliveryAddress, OrderCreate, OrderLine, OrderRecord
from order_desk.services.live_orders import LiveOrderView
from order_desk.services.order_actions import (
    ConfirmationRequired,
    OrderNotFound,
    PersistFailure,
    cancel_order,
    change_order_status,
)
from order_desk.services.order_feed import OrderFilter
from order_desk.services.order_status import AlreadyTerminal, InvalidTransition, OrderStatus
from order_desk.services.order_store import OrderStore, PersistError, StatusConflict


def _build_test_engine(db_file: Path) -> Engine:
    return create_engine(
        f"sqlite:///{db_file}",
        connect_args={"check_same_thread": False},
    )


def _build_store(tmp_path: Path) -> tuple[OrderStore, sessionmaker]:
    engine = _build_test_engine(tmp_path / "test_orders.db")
    testing_session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)
    return OrderStore(testing_session_local), testing_session_local


def _delivery_payload(name: str = "John Doe") -> OrderCreate:
    return OrderCreate(
        customer_name=name,
        customer_phone="+1 555 123 4567",
        order_type="delivery",
        delivery_address=DeliveryAddress(street="123 Main St"),
        items=[
            OrderLine(name="Classic Burger", quantity=2, price=Decimal("12.99")),
            OrderLine(name="French Fries", quantity=1, price=Decimal("4.99")),
        ],
        delivery_fee=Decimal("3.99"),
    )


def test_create_assigns_entry_status_number_and_total(tmp_path: Path) -> None:
    store, _ = _build_store(tmp_path)
    created: list[OrderRecord] = []
    store.on_created(created.append)

    first = store.create(_delivery_payload())
    second = store.create(
        OrderCreate(
            customer_name="Jane Smith",
            customer_phone="+1 555 987 6543",
            order_type="pickup",
            items=[OrderLine(name="Margherita Pizza", quantity=1, price=Decimal("14.99"))],
            delivery_fee=Decimal("5"),
        )
    )

    assert first.status is OrderStatus.PENDING
    assert first.order_number == "ORD-001"
    assert first.total == Decimal("34.96")
    assert first.total == first.items_total + first.delivery_fee
    assert second.order_number == "ORD-002"
    assert second.order_type == "takeaway"
    assert second.delivery_fee == Decimal("0")
    assert second.total == Decimal("14.99")
    assert [order.id for order in created] == [first.id, second.id]
    assert store.get(first.id) == first


def test_update_field_only_allows_status(tmp_path: Path) -> None:
    store, _ = _build_store(tmp_path)
    order = store.create(_delivery_payload())

    with pytest.raises(PersistError):
        store.update_field(order.id, {"total": "1.00"})
    with pytest.raises(PersistError):
        store.update_field("missing", {"status": "preparing"})

    updated = store.update_field(order.id, {"status": "preparing"})
    assert updated.status is OrderStatus.PREPARING
    assert updated.total == order.total
    assert updated.items == order.items


def test_list_orders_filters_and_reads_legacy_labels(tmp_path: Path) -> None:
    store, session_factory = _build_store(tmp_path)
    first = store.create(_delivery_payload("A"))
    second = store.create(_delivery_payload("B"))
    store.update_field(second.id, {"status": "preparing"})
    with session_factory() as db:
        db.get(Order, first.id).status = "new"
        db.commit()

    pending = store.list_orders(OrderFilter(status=OrderStatus.PENDING), 10)
    everything = store.list_orders(OrderFilter(), 10)

    assert [order.id for order in pending] == [first.id]
    assert pending[0].status is OrderStatus.PENDING
    assert [order.id for order in everything] == [second.id, first.id]


def test_status_actions_persist_and_refuse(tmp_path: Path) -> None:
    store, _ = _build_store(tmp_path)
    order = store.create(_delivery_payload())

    preparing = change_order_status(store, order.id, "preparing")
    assert isinstance(preparing, OrderRecord)
    assert store.get(order.id).status is OrderStatus.PREPARING

    backwards = change_order_status(store, order.id, "pending")
    assert backwards == InvalidTransition(from_status=OrderStatus.PREPARING, to_status=OrderStatus.PENDING)
    assert change_order_status(store, "missing", "ready") == OrderNotFound(order_id="missing")

    assert cancel_order(store, order.id, confirmed=False) == ConfirmationRequired(order_id=order.id)
    assert store.get(order.id).status is OrderStatus.PREPARING

    cancelled = cancel_order(store, order.id, confirmed=True)
    assert isinstance(cancelled, OrderRecord)
    assert cancelled.status is OrderStatus.CANCELLED
    assert cancel_order(store, order.id, confirmed=True) == AlreadyTerminal(status=OrderStatus.CANCELLED)


def test_failed_persist_leaves_view_unchanged(tmp_path: Path, monkeypatch) -> None:
    store, _ = _build_store(tmp_path)
    order = store.create(_delivery_payload())
    view = LiveOrderView(store.feed, limit=10)
    view.start()

    def _reject(order_id: str, fields: dict, expected_status: OrderStatus | None = None) -> OrderRecord:
        raise PersistError("database is locked")

    monkeypatch.setattr(store, "update_field", _reject)
    result = change_order_status(store, order.id, "ready")

    assert isinstance(result, PersistFailure)
    assert result.target is OrderStatus.READY
    assert "database is locked" in result.message
    assert view.orders[0].status is OrderStatus.PENDING
    monkeypatch.undo()
    assert store.get(order.id).status is OrderStatus.PENDING


def test_live_view_follows_confirmed_writes(tmp_path: Path) -> None:
    store, _ = _build_store(tmp_path)
    first = store.create(_delivery_payload("A"))
    view = LiveOrderView(store.feed, limit=10, order_filter=OrderFilter(status=OrderStatus.PENDING))
    view.start()
    view.select_order(first.id)

    second = store.create(_delivery_payload("B"))
    assert [order.id for order in view.orders] == [second.id, first.id]

    change_order_status(store, first.id, "preparing")
    assert [order.id for order in view.orders] == [second.id]
    assert view.selected_order is None

    view.set_filter(OrderFilter(status=OrderStatus.PREPARING))
    assert [order.id for order in view.orders] == [first.id]
    view.close()


def test_limited_view_refills_from_store(tmp_path: Path) -> None:
    store, _ = _build_store(tmp_path)
    a = store.create(_delivery_payload("A"))
    b = store.create(_delivery_payload("B"))
    c = store.create(_delivery_payload("C"))
    view = LiveOrderView(store.feed, limit=2, order_filter=OrderFilter(status=OrderStatus.PENDING))
    view.start()
    assert [order.id for order in view.orders] == [c.id, b.id]

    change_order_status(store, c.id, "preparing")

    assert [order.id for order in view.orders] == [b.id, a.id]
    view.close()


def test_conditional_write_refuses_stale_status(tmp_path: Path) -> None:
    store, _ = _build_store(tmp_path)
    order = store.create(_delivery_payload())
    store.update_field(order.id, {"status": "ready"})

    with pytest.raises(StatusConflict) as conflict:
        store.update_field(order.id, {"status": "cancelled"}, expected_status=OrderStatus.PENDING)

    assert conflict.value.actual is OrderStatus.READY
    assert store.get(order.id).status is OrderStatus.READY


def test_cancel_loses_to_concurrent_delivery(tmp_path: Path, monkeypatch) -> None:
    store, _ = _build_store(tmp_path)
    order = store.create(_delivery_payload())
    read_order = store.get
    reads: list[str] = []

    def _read_then_deliver(order_id: str) -> OrderRecord | None:
        current = read_order(order_id)
        reads.append(order_id)
        if len(reads) == 1:
            # Another operator delivers the order right after this read.
            store.update_field(order_id, {"status": "delivered"})
        return current

    monkeypatch.setattr(store, "get", _read_then_deliver)
    result = cancel_order(store, order.id, confirmed=True)
    monkeypatch.undo()

    assert result == AlreadyTerminal(status=OrderStatus.DELIVERED)
    assert store.get(order.id).status is OrderStatus.DELIVERED
    assert len(reads) == 2


def test_concurrent_creates_get_unique_numbers(tmp_path: Path) -> None:
    store, _ = _build_store(tmp_path)
    workers = 8
    barrier = threading.Barrier(workers)
    created: list[OrderRecord] = []
    errors: list[Exception] = []

    def _create(index: int) -> None:
        barrier.wait()
        try:
            created.append(store.create(_delivery_payload(f"Guest {index}")))
        except PersistError as exc:
            errors.append(exc)

    threads = [threading.Thread(target=_create, args=(index,)) for index in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert sorted(order.order_number for order in created) == [f"ORD-{n:03d}" for n in range(1, workers + 1)]


def test_feed_delivers_writes_in_commit_order(tmp_path: Path) -> None:
    store, _ = _build_store(tmp_path)
    order = store.create(_delivery_payload())
    view = LiveOrderView(store.feed, limit=10)
    view.start()
    seen: list[OrderStatus] = []
    racers: list[threading.Thread] = []

    def _on_change(changed: LiveOrderView) -> None:
        current = changed.orders[0].status
        seen.append(current)
        if current is OrderStatus.READY and not racers:
            racer = threading.Thread(target=store.update_field, args=(order.id, {"status": "delivered"}))
            racers.append(racer)
            racer.start()
            # The racer cannot commit while this delivery is still running.
            racer.join(timeout=0.3)

    view.add_listener(_on_change)
    store.update_field(order.id, {"status": "ready"})
    racers[0].join()

    assert seen == [OrderStatus.READY, OrderStatus.DELIVERED]
    assert view.orders[0].status is OrderStatus.DELIVERED
    assert store.get(order.id).status is OrderStatus.DELIVERED
    view.close()
