"""Order status lifecycle: states, legal transitions and derived views."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from order_desk.core.config import settings

if TYPE_CHECKING:
    from order_desk.schemas.order import OrderRecord


class OrderStatus(str, Enum):
    """Canonical order status identifiers."""

    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_PROGRESSION: tuple[OrderStatus, ...] = (
    OrderStatus.PENDING,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
)
TERMINAL_STATUSES: frozenset[OrderStatus] = frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED})

# Labels written by older surfaces for the same semantic states.
LEGACY_STATUS_ALIASES: dict[str, OrderStatus] = {
    "new": OrderStatus.PENDING,
    "completed": OrderStatus.DELIVERED,
}

STATUS_COLORS: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "bg-blue-100 text-blue-800 border-blue-200",
    OrderStatus.PREPARING: "bg-yellow-100 text-yellow-800 border-yellow-200",
    OrderStatus.READY: "bg-green-100 text-green-800 border-green-200",
    OrderStatus.DELIVERED: "bg-gray-100 text-gray-800 border-gray-200",
    OrderStatus.CANCELLED: "bg-red-100 text-red-800 border-red-200",
}
DEFAULT_BADGE_COLOR = "bg-gray-100 text-gray-800 border-gray-200"

PRIORITY_COLORS: dict[str, str] = {
    "high": "bg-red-100 text-red-800",
    "normal": "bg-gray-100 text-gray-800",
}


def normalize_status(value: OrderStatus | str) -> OrderStatus:
    """Return the canonical status for a stored or legacy label."""
    if isinstance(value, OrderStatus):
        return value
    label = str(value).strip().lower()
    if label in LEGACY_STATUS_ALIASES:
        return LEGACY_STATUS_ALIASES[label]
    try:
        return OrderStatus(label)
    except ValueError as exc:
        raise ValueError(f"Unknown order status: {value!r}") from exc


def _resolve_entry_status(label: str) -> OrderStatus:
    status = normalize_status(label)
    if status in TERMINAL_STATUSES:
        raise ValueError(f"Entry status cannot be terminal: {label!r}")
    return status


ENTRY_STATUS: OrderStatus = _resolve_entry_status(settings.entry_status)


@dataclass(frozen=True)
class InvalidTransition:
    """Target status is not reachable from the current status."""

    from_status: OrderStatus
    to_status: OrderStatus

    @property
    def message(self) -> str:
        return (
            f"Cannot move order from {display_label(self.from_status)} "
            f"to {display_label(self.to_status)}."
        )


@dataclass(frozen=True)
class AlreadyTerminal:
    """Order is delivered or cancelled and accepts no further changes."""

    status: OrderStatus

    @property
    def message(self) -> str:
        return f"Order is already {self.status.value} and can no longer change status."


TransitionError = InvalidTransition | AlreadyTerminal


def is_terminal(status: OrderStatus | str) -> bool:
    return normalize_status(status) in TERMINAL_STATUSES


def next_statuses(current: OrderStatus | str) -> tuple[OrderStatus, ...]:
    """Return every status strictly after current in the canonical progression."""
    try:
        status = normalize_status(current)
    except ValueError:
        return ()
    if status not in ORDER_PROGRESSION:
        return ()
    index = ORDER_PROGRESSION.index(status)
    return ORDER_PROGRESSION[index + 1:]


def can_transition(current: OrderStatus | str, new: OrderStatus | str) -> bool:
    """Return whether an order can move from current to new status."""
    target = normalize_status(new)
    if target in next_statuses(current):
        return True
    return target is OrderStatus.CANCELLED and not is_terminal(current)


def advance(order: OrderRecord, target: OrderStatus | str) -> OrderRecord | TransitionError:
    """Move order to target, returning the updated order or the refusal."""
    current = normalize_status(order.status)
    target_status = normalize_status(target)
    if can_transition(current, target_status):
        return order.model_copy(update={"status": target_status})
    if current in TERMINAL_STATUSES and target_status is OrderStatus.CANCELLED:
        return AlreadyTerminal(status=current)
    return InvalidTransition(from_status=current, to_status=target_status)


def cancel(order: OrderRecord) -> OrderRecord | AlreadyTerminal:
    """Cancel a non-terminal order.

    Callers must obtain an explicit operator confirmation before calling this;
    the engine itself does not ask.
    """
    current = normalize_status(order.status)
    if current in TERMINAL_STATUSES:
        return AlreadyTerminal(status=current)
    return order.model_copy(update={"status": OrderStatus.CANCELLED})


def classify(orders: Iterable[OrderRecord]) -> dict[OrderStatus, list[OrderRecord]]:
    """Partition orders by status, preserving input order within each group."""
    by_status: dict[OrderStatus, list[OrderRecord]] = {status: [] for status in OrderStatus}
    for order in orders:
        by_status[normalize_status(order.status)].append(order)
    return by_status


def active_orders(orders: Iterable[OrderRecord]) -> list[OrderRecord]:
    """Return orders that still need kitchen or desk attention."""
    return [order for order in orders if not is_terminal(order.status)]


def kitchen_board(orders: Sequence[OrderRecord]) -> dict[OrderStatus, list[OrderRecord]]:
    """Group active orders into the kitchen display columns."""
    by_status = classify(active_orders(orders))
    return {status: by_status[status] for status in ORDER_PROGRESSION if status not in TERMINAL_STATUSES}


def display_label(status: OrderStatus | str) -> str:
    """Capitalize the first letter of a status identifier."""
    value = status.value if isinstance(status, OrderStatus) else str(status)
    return value[:1].upper() + value[1:]


def status_color(status: OrderStatus | str) -> str:
    try:
        return STATUS_COLORS[normalize_status(status)]
    except ValueError:
        return DEFAULT_BADGE_COLOR


def priority_color(priority: str | None) -> str:
    return PRIORITY_COLORS.get(priority or "normal", PRIORITY_COLORS["normal"])
