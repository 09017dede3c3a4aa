"""Menu and category API schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field


class SizeOption(BaseModel):
    """Size variant; price may be a negative adjustment."""

    id: str = ""
    name: str = Field(min_length=1)
    price: Decimal = Decimal("0")


class ExtraOption(BaseModel):
    """Optional add-on."""

    id: str = ""
    name: str = Field(min_length=1)
    price: Decimal = Field(default=Decimal("0"), ge=0)


class CategoryCreate(BaseModel):
    """Payload for creating a category."""

    name: str = Field(min_length=1, max_length=50)
    description: str | None = None
    color: str | None = Field(default=None, pattern=r"^#[0-9A-Fa-f]{6}$")
    sort_order: int = 0
    active: bool = True


class CategoryRename(BaseModel):
    name: str = Field(min_length=1, max_length=50)


class CategoryRecord(BaseModel):
    """Category value used by the referential guard."""

    id: int | None = None
    name: str
    description: str | None = None
    color: str | None = None
    sort_order: int = 0
    active: bool = True

    model_config = ConfigDict(from_attributes=True, frozen=True)


class CategoryResponse(BaseModel):
    """Serialized category with its effective display colour and usage."""

    id: int
    name: str
    description: str | None
    color: str
    sort_order: int
    active: bool
    item_count: int
    available_count: int


class MenuItemCreate(BaseModel):
    """Payload for creating a menu item."""

    name: str = Field(min_length=1, max_length=100)
    category: str = Field(min_length=1)
    price: Decimal = Field(ge=0)
    description: str = Field(default="", max_length=500)
    comes_with: str | None = None
    available: bool = True
    image: str | None = None
    sizes: list[SizeOption] = Field(default_factory=list)
    extras: list[ExtraOption] = Field(default_factory=list)


class MenuItemRecord(BaseModel):
    """Serialized menu item."""

    id: int
    name: str
    category: str
    price: Decimal
    description: str
    comes_with: str | None
    available: bool
    image: str | None
    sizes: list[SizeOption]
    extras: list[ExtraOption]

    model_config = ConfigDict(from_attributes=True)


class AvailabilityUpdate(BaseModel):
    available: bool
