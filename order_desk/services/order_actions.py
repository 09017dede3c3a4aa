"""Operator actions that move orders through their lifecycle and persist the result."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from order_desk.schemas.order import OrderRecord
from order_desk.services.order_status import (
    AlreadyTerminal,
    InvalidTransition,
    OrderStatus,
    advance,
    cancel,
    normalize_status,
)
from order_desk.services.order_store import OrderStore, PersistError, StatusConflict

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrderNotFound:
    order_id: str

    @property
    def message(self) -> str:
        return f"Order {self.order_id} not found."


@dataclass(frozen=True)
class ConfirmationRequired:
    order_id: str

    @property
    def message(self) -> str:
        return "Cancelling an order must be confirmed."


@dataclass(frozen=True)
class PersistFailure:
    """The store did not apply the write; the order keeps its last confirmed status."""

    order_id: str
    target: OrderStatus
    reason: str

    @property
    def message(self) -> str:
        return f"Could not save status {self.target.value} for order {self.order_id}: {self.reason}"


ActionError = InvalidTransition | AlreadyTerminal | OrderNotFound | ConfirmationRequired | PersistFailure
Transition = Callable[[OrderRecord], "OrderRecord | InvalidTransition | AlreadyTerminal"]

STATUS_WRITE_ATTEMPTS = 3


def _apply(store: OrderStore, order_id: str, transition: Transition, action: str) -> OrderRecord | ActionError:
    """Read, check and conditionally write one transition.

    The write only lands while the stored status is still the one the check was
    made against. When another writer got there first, the order is re-read
    and the transition re-checked against the newer status.
    """
    for _ in range(STATUS_WRITE_ATTEMPTS):
        current = store.get(order_id)
        if current is None:
            return OrderNotFound(order_id=order_id)

        result = transition(current)
        if isinstance(result, (InvalidTransition, AlreadyTerminal)):
            logger.info("[ORDERS] Refused %s for %s: %s", action, order_id, result.message)
            return result

        logger.info("[ORDERS] Order %s: %s -> %s", order_id, current.status.value, result.status.value)
        try:
            return store.update_field(order_id, {"status": result.status}, expected_status=current.status)
        except StatusConflict as exc:
            logger.info("[ORDERS] Order %s changed while saving %s: %s", order_id, action, exc)
        except PersistError as exc:
            logger.exception("[ORDERS] Failed to persist status %s for order %s", result.status.value, order_id)
            return PersistFailure(order_id=order_id, target=result.status, reason=str(exc))

    return PersistFailure(order_id=order_id, target=result.status, reason="Order kept changing while saving")


def change_order_status(store: OrderStore, order_id: str, target: OrderStatus | str) -> OrderRecord | ActionError:
    """Advance an order and return the store-confirmed record or the reason it was refused."""
    status = normalize_status(target)
    return _apply(store, order_id, lambda current: advance(current, status), "status change")


def cancel_order(store: OrderStore, order_id: str, *, confirmed: bool) -> OrderRecord | ActionError:
    """Cancel an order once the operator has confirmed it."""
    if not confirmed:
        return ConfirmationRequired(order_id=order_id)
    return _apply(store, order_id, cancel, "cancel")
