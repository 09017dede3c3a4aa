"""Process-wide service instances shared by HTTP routes and the console."""

from sqlalchemy.orm import Session

from order_desk.db import session as db_session
from order_desk.services.notification_service import LoggingPushSender, new_order_notifier
from order_desk.services.order_store import OrderStore


def _open_session() -> Session:
    # Resolved per call so tests can swap SessionLocal.
    return db_session.SessionLocal()


order_store: OrderStore = OrderStore(_open_session)
order_store.on_created(new_order_notifier(_open_session, LoggingPushSender()))


def get_order_store() -> OrderStore:
    return order_store
