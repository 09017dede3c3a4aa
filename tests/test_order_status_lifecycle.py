"""Order status lifecycle rules."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from order_desk.schemas.order import OrderLine, OrderRecord
from order_desk.services.order_status import (
    ENTRY_STATUS,
    ORDER_PROGRESSION,
    AlreadyTerminal,
    InvalidTransition,
    OrderStatus,
    advance,
    cancel,
    classify,
    display_label,
    kitchen_board,
    next_statuses,
    normalize_status,
    status_color,
)


def _order(order_id: str = "o1", status: OrderStatus | str = OrderStatus.PENDING, minute: int = 0) -> OrderRecord:
    return OrderRecord(
        id=order_id,
        order_number=f"ORD-{order_id}",
        customer_name="Jane Smith",
        customer_phone="+1 555 987 6543",
        order_type="takeaway",
        items=[OrderLine(name="Burger", quantity=2, price=Decimal("10"))],
        delivery_fee=Decimal("2"),
        total=Decimal("22"),
        status=status,
        created_at=datetime(2026, 1, 7, 12, minute, tzinfo=timezone.utc),
    )


NON_TERMINAL = [OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY]


def test_next_statuses_is_suffix_of_progression() -> None:
    assert next_statuses(OrderStatus.PENDING) == (OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.DELIVERED)
    assert next_statuses(OrderStatus.PREPARING) == (OrderStatus.READY, OrderStatus.DELIVERED)
    assert next_statuses(OrderStatus.READY) == (OrderStatus.DELIVERED,)
    assert next_statuses(OrderStatus.DELIVERED) == ()
    assert next_statuses(OrderStatus.CANCELLED) == ()
    assert next_statuses("unknown") == ()


@pytest.mark.parametrize("current", list(OrderStatus))
def test_advance_accepts_every_forward_status(current: OrderStatus) -> None:
    order = _order(status=current)
    for target in next_statuses(current):
        result = advance(order, target)
        assert isinstance(result, OrderRecord)
        assert result.status is target
        assert result.model_dump(exclude={"status"}) == order.model_dump(exclude={"status"})


@pytest.mark.parametrize("current", list(OrderStatus))
def test_advance_rejects_everything_else(current: OrderStatus) -> None:
    order = _order(status=current)
    allowed = set(next_statuses(current)) | {OrderStatus.CANCELLED}
    for target in OrderStatus:
        if target in allowed:
            continue
        result = advance(order, target)
        assert result == InvalidTransition(from_status=current, to_status=target)
    assert order.status is current


def test_advance_to_cancelled_from_terminal_reports_already_terminal() -> None:
    assert advance(_order(status=OrderStatus.DELIVERED), OrderStatus.CANCELLED) == AlreadyTerminal(
        status=OrderStatus.DELIVERED
    )
    assert advance(_order(status=OrderStatus.CANCELLED), OrderStatus.CANCELLED) == AlreadyTerminal(
        status=OrderStatus.CANCELLED
    )


def test_advance_can_cancel_non_terminal_orders() -> None:
    for status in NON_TERMINAL:
        result = advance(_order(status=status), OrderStatus.CANCELLED)
        assert isinstance(result, OrderRecord)
        assert result.status is OrderStatus.CANCELLED


def test_cancel_only_changes_status() -> None:
    for status in NON_TERMINAL:
        order = _order(status=status)
        result = cancel(order)
        assert isinstance(result, OrderRecord)
        assert result.status is OrderStatus.CANCELLED
        assert result.model_dump(exclude={"status"}) == order.model_dump(exclude={"status"})


def test_cancel_terminal_order_fails() -> None:
    assert cancel(_order(status=OrderStatus.DELIVERED)) == AlreadyTerminal(status=OrderStatus.DELIVERED)
    assert cancel(_order(status=OrderStatus.CANCELLED)) == AlreadyTerminal(status=OrderStatus.CANCELLED)


def test_advancing_twice_to_same_status_fails_second_time() -> None:
    first = advance(_order(status=OrderStatus.PREPARING), OrderStatus.READY)
    assert isinstance(first, OrderRecord)

    second = advance(first, OrderStatus.READY)

    assert second == InvalidTransition(from_status=OrderStatus.READY, to_status=OrderStatus.READY)


def test_burger_order_walkthrough_keeps_total() -> None:
    order = _order()
    assert order.total == order.items_total + order.delivery_fee

    preparing = advance(order, "preparing")
    assert isinstance(preparing, OrderRecord)
    assert preparing.status is OrderStatus.PREPARING
    assert preparing.total == Decimal("22")

    skipped = advance(preparing, "delivered")
    assert isinstance(skipped, OrderRecord)
    assert skipped.status is OrderStatus.DELIVERED

    backwards = advance(preparing, "pending")
    assert backwards == InvalidTransition(from_status=OrderStatus.PREPARING, to_status=OrderStatus.PENDING)

    ready = advance(preparing, "ready")
    assert isinstance(ready, OrderRecord)
    delivered = advance(ready, "delivered")
    assert isinstance(delivered, OrderRecord)
    assert delivered.status is OrderStatus.DELIVERED


def test_refusals_have_distinct_messages() -> None:
    invalid = advance(_order(status=OrderStatus.READY), OrderStatus.PREPARING)
    terminal = cancel(_order(status=OrderStatus.DELIVERED))

    assert isinstance(invalid, InvalidTransition)
    assert isinstance(terminal, AlreadyTerminal)
    assert invalid.message == "Cannot move order from Ready to Preparing."
    assert "already delivered" in terminal.message


def test_classify_preserves_input_order() -> None:
    orders = [
        _order("a", OrderStatus.PREPARING),
        _order("b", OrderStatus.PENDING),
        _order("c", OrderStatus.PREPARING),
        _order("d", OrderStatus.CANCELLED),
    ]

    grouped = classify(orders)

    assert set(grouped) == set(OrderStatus)
    assert [order.id for order in grouped[OrderStatus.PREPARING]] == ["a", "c"]
    assert [order.id for order in grouped[OrderStatus.PENDING]] == ["b"]
    assert [order.id for order in grouped[OrderStatus.CANCELLED]] == ["d"]
    assert grouped[OrderStatus.READY] == []


def test_kitchen_board_only_shows_active_columns() -> None:
    orders = [
        _order("a", OrderStatus.READY),
        _order("b", OrderStatus.DELIVERED),
        _order("c", OrderStatus.PENDING),
        _order("d", OrderStatus.CANCELLED),
    ]

    board = kitchen_board(orders)

    assert list(board) == [OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY]
    assert [order.id for order in board[OrderStatus.PENDING]] == ["c"]
    assert [order.id for order in board[OrderStatus.READY]] == ["a"]


def test_legacy_labels_normalize_to_canonical_statuses() -> None:
    assert ENTRY_STATUS is OrderStatus.PENDING
    assert normalize_status("new") is OrderStatus.PENDING
    assert normalize_status("completed") is OrderStatus.DELIVERED
    assert _order(status="new").status is OrderStatus.PENDING
    with pytest.raises(ValueError):
        normalize_status("cooking")


def test_display_label_and_colors_share_one_vocabulary() -> None:
    assert display_label(OrderStatus.PREPARING) == "Preparing"
    assert display_label("ready") == "Ready"
    assert [display_label(status) for status in ORDER_PROGRESSION] == ["Pending", "Preparing", "Ready", "Delivered"]
    assert status_color("new") == status_color(OrderStatus.PENDING)
    assert "red" in status_color(OrderStatus.CANCELLED)
    assert "gray" in status_color("bogus")
