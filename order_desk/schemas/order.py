"""Order API schemas and the order value handed to the lifecycle engine."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from order_desk.services.order_status import OrderStatus, normalize_status

OrderType = Literal["delivery", "takeaway"]
Priority = Literal["normal", "high"]


class OrderLine(BaseModel):
    """Line item copied into the order at creation time."""

    name: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    price: Decimal = Field(ge=0)
    size: str | None = None
    extras: list[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


class DeliveryAddress(BaseModel):
    """Street address for delivery orders."""

    street: str = Field(min_length=1)
    city: str | None = None
    zip_code: str | None = None
    apartment: str | None = None
    instructions: str | None = None

    model_config = ConfigDict(frozen=True)


def _normalize_order_type(value: object) -> object:
    if isinstance(value, str) and value.strip().lower() == "pickup":
        return "takeaway"
    return value


class OrderCreate(BaseModel):
    """Payload for creating an order; totals are computed by the store."""

    customer_name: str = Field(min_length=1)
    customer_phone: str = Field(min_length=1)
    order_type: OrderType
    delivery_address: DeliveryAddress | None = None
    items: list[OrderLine] = Field(min_length=1)
    delivery_fee: Decimal = Field(default=Decimal("0.00"), ge=0)
    notes: str | None = None
    priority: Priority | None = None
    paid_at: datetime | None = None

    @field_validator("order_type", mode="before")
    @classmethod
    def normalize_pickup_alias(cls, value: object) -> object:
        return _normalize_order_type(value)

    @model_validator(mode="after")
    def check_delivery_address(self) -> "OrderCreate":
        if self.order_type == "delivery" and self.delivery_address is None:
            raise ValueError("Delivery orders require a delivery address")
        return self


class OrderRecord(BaseModel):
    """Immutable order value consumed by the lifecycle engine and live views."""

    id: str
    order_number: str
    customer_name: str
    customer_phone: str
    order_type: OrderType
    delivery_address: DeliveryAddress | None = None
    items: tuple[OrderLine, ...]
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    notes: str | None = None
    priority: Priority | None = None
    created_at: datetime
    paid_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True, frozen=True)

    @field_validator("order_type", mode="before")
    @classmethod
    def normalize_pickup_alias(cls, value: object) -> object:
        return _normalize_order_type(value)

    @field_validator("status", mode="before")
    @classmethod
    def normalize_legacy_status(cls, value: object) -> OrderStatus:
        return normalize_status(value)  # type: ignore[arg-type]

    @property
    def items_total(self) -> Decimal:
        return sum((line.line_total for line in self.items), Decimal("0"))


class OrderResponse(BaseModel):
    """Serialized order with presentation fields derived from its status."""

    id: str
    order_number: str
    customer_name: str
    customer_phone: str
    order_type: OrderType
    delivery_address: DeliveryAddress | None
    items: list[OrderLine]
    delivery_fee: Decimal
    total: Decimal
    status: OrderStatus
    display_status: str
    status_color: str
    next_statuses: list[OrderStatus]
    notes: str | None
    priority: Priority | None
    created_at: datetime
    paid_at: datetime | None
    time_ago: str
    elapsed_minutes: int


class StatusChangeRequest(BaseModel):
    """Requested status transition."""

    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def normalize_legacy_status(cls, value: object) -> OrderStatus:
        return normalize_status(value)  # type: ignore[arg-type]


class CancelRequest(BaseModel):
    """Cancellation request; the operator must confirm explicitly."""

    confirm: bool = False
    reason: str | None = None


class KitchenColumn(BaseModel):
    status: OrderStatus
    label: str
    color: str
    orders: list[OrderResponse]


class KitchenBoardResponse(BaseModel):
    """Active orders grouped into kitchen display columns."""

    generated_at: datetime
    columns: list[KitchenColumn]
