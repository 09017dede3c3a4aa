"""New-order push notifications to registered devices."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol

from sqlalchemy.orm import Session

from order_desk.models.device_token import DeviceToken
from order_desk.schemas.order import OrderRecord

logger = logging.getLogger(__name__)

INVALID_TOKEN_CODES: frozenset[str] = frozenset(
    {
        "messaging/invalid-registration-token",
        "messaging/registration-token-not-registered",
    }
)


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    data: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class SendResult:
    """Outcome for one token; error_code is None on success."""

    message_id: str | None = None
    error_code: str | None = None


class PushSender(Protocol):
    def send(self, tokens: Sequence[str], message: PushMessage) -> Sequence[SendResult]: ...


class LoggingPushSender:
    """Sender used when no messaging backend is configured."""

    def send(self, tokens: Sequence[str], message: PushMessage) -> Sequence[SendResult]:
        logger.info("[NOTIFY] %s: %s -> %s device(s)", message.title, message.body, len(tokens))
        return [SendResult(message_id=f"logged-{index}") for index, _ in enumerate(tokens)]


def build_new_order_message(order: OrderRecord) -> PushMessage:
    return PushMessage(
        title="New Order!",
        body=f"Order #{order.order_number} has been placed",
        data={"orderId": order.id, "type": "new_order"},
    )


def register_token(db: Session, token: str) -> DeviceToken:
    """Store a device token, re-validating it if it was pruned before."""
    device = db.get(DeviceToken, token)
    if device is None:
        device = DeviceToken(token=token, valid=True)
    else:
        device.valid = True
    db.add(device)
    db.commit()
    db.refresh(device)
    return device


def notify_new_order(db: Session, order: OrderRecord, sender: PushSender) -> dict[str, Any]:
    """Push the new-order message to every valid token and prune rejected ones."""
    devices = db.query(DeviceToken).filter(DeviceToken.valid.is_(True)).order_by(DeviceToken.token.asc()).all()
    if not devices:
        logger.info("[NOTIFY] No valid device tokens found")
        return {"sent": 0, "pruned": 0}

    results = sender.send([device.token for device in devices], build_new_order_message(order))
    sent = 0
    pruned = 0
    for device, result in zip(devices, results):
        if result.error_code is None:
            sent += 1
            continue
        logger.warning("[NOTIFY] Error sending to token %s: %s", device.token[:12], result.error_code)
        if result.error_code in INVALID_TOKEN_CODES:
            device.valid = False
            pruned += 1
    if pruned:
        db.commit()
        logger.info("[NOTIFY] Pruned %s invalid token(s)", pruned)
    return {"sent": sent, "pruned": pruned}


def new_order_notifier(session_factory: Callable[[], Session], sender: PushSender) -> Callable[[OrderRecord], None]:
    """Return an order-created hook bound to a session factory and sender."""

    def hook(order: OrderRecord) -> None:
        with session_factory() as db:
            notify_new_order(db, order, sender)

    return hook
