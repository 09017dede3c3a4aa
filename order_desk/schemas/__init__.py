"""Schema exports."""

from order_desk.schemas.menu import (
    AvailabilityUpdate,
    CategoryCreate,
    CategoryRecord,
    CategoryRename,
    CategoryResponse,
    ExtraOption,
    MenuItemCreate,
    MenuItemRecord,
    SizeOption,
)
from order_desk.schemas.notification import DeviceTokenRegister, DeviceTokenResponse
from order_desk.schemas.order import (
    CancelRequest,
    DeliveryAddress,
    KitchenBoardResponse,
    KitchenColumn,
    OrderCreate,
    OrderLine,
    OrderRecord,
    OrderResponse,
    StatusChangeRequest,
)

__all__ = [
    "AvailabilityUpdate",
    "CategoryCreate",
    "CategoryRecord",
    "CategoryRename",
    "CategoryResponse",
    "ExtraOption",
    "MenuItemCreate",
    "MenuItemRecord",
    "SizeOption",
    "DeviceTokenRegister",
    "DeviceTokenResponse",
    "CancelRequest",
    "DeliveryAddress",
    "KitchenBoardResponse",
    "KitchenColumn",
    "OrderCreate",
    "OrderLine",
    "OrderRecord",
    "OrderResponse",
    "StatusChangeRequest",
]
