"""Shared SQLAlchemy base declarative class and model imports."""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for ORM models."""


# Import model modules so metadata is populated before create_all.
from order_desk.models import device_token as _device_token  # noqa: E402,F401
from order_desk.models import menu as _menu  # noqa: E402,F401
from order_desk.models import order as _order  # noqa: E402,F401
