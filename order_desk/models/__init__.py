"""Application models package."""

from order_desk.models.device_token import DeviceToken
from order_desk.models.menu import Category, MenuItem
from order_desk.models.order import Order

__all__ = ["Category", "DeviceToken", "MenuItem", "Order"]
