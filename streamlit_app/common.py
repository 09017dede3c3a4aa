"""Shared DB helpers for the Streamlit operator console."""

from datetime import datetime

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from order_desk.core.config import settings
from order_desk.db.base import Base
from order_desk.services.order_store import OrderStore

engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if settings.database_url.startswith("sqlite") else {},
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base.metadata.create_all(bind=engine)


def get_session() -> Session:
    return SessionLocal()


def get_store() -> OrderStore:
    return OrderStore(SessionLocal)


def now_string() -> str:
    return datetime.now().strftime("%Y-%m-%d %H:%M")


def show_refusal(st_module, result) -> bool:
    """Render a lifecycle/store refusal; returns True when result was one."""
    message = getattr(result, "message", None)
    if message is None:
        return False
    st_module.error(message)
    return True
