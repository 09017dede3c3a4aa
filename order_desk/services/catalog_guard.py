"""Referential rules between categories and the menu items that name them."""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol

from order_desk.schemas.menu import CategoryRecord, ExtraOption, SizeOption

CATEGORY_PALETTE: tuple[str, ...] = (
    "#FF6B6B",
    "#4ECDC4",
    "#45B7D1",
    "#96CEB4",
    "#FFEAA7",
    "#DDA0DD",
    "#98D8C8",
    "#F7DC6F",
    "#BB8FCE",
    "#85C1E9",
)
BASE_SIZE_NAME = "Regular"


class CategorizedItem(Protocol):
    category: str


@dataclass(frozen=True)
class CategoryInUse:
    """Category still referenced by menu items."""

    category: str
    count: int

    @property
    def message(self) -> str:
        noun = "menu item" if self.count == 1 else "menu items"
        return (
            f'Cannot delete category "{self.category}" because it contains {self.count} {noun}. '
            "Please move or delete these items first."
        )


def items_in_category(category: CategoryRecord, items: Iterable[CategorizedItem]) -> list[CategorizedItem]:
    """Return items whose category field equals the category name exactly."""
    return [item for item in items if item.category == category.name]


def can_delete_category(category: CategoryRecord, items: Iterable[CategorizedItem]) -> bool:
    return not items_in_category(category, items)


def delete_category(category: CategoryRecord, items: Iterable[CategorizedItem]) -> CategoryInUse | None:
    """Check whether category may be removed.

    Returns None when the deletion may proceed; the caller performs the actual
    store delete.
    """
    referencing = items_in_category(category, items)
    if referencing:
        return CategoryInUse(category=category.name, count=len(referencing))
    return None


def rename_category(category: CategoryRecord, new_name: str) -> CategoryRecord:
    """Return category under a new name.

    Menu items keep the old name in their category field; renames do not cascade.
    """
    return category.model_copy(update={"name": new_name.strip()})


def _utf16_code_units(text: str) -> Iterable[int]:
    for char in text:
        code = ord(char)
        if code > 0xFFFF:
            code -= 0x10000
            yield 0xD800 + (code >> 10)
            yield 0xDC00 + (code & 0x3FF)
        else:
            yield code


def default_color(category_name: str) -> str:
    """Pick a stable palette colour from the category name."""
    index = sum(_utf16_code_units(category_name))
    return CATEGORY_PALETTE[index % len(CATEGORY_PALETTE)]


def effective_color(category: CategoryRecord) -> str:
    return category.color or default_color(category.name)


def option_id(name: str) -> str:
    """Derive a size/extra id from its name: lower-cased, trimmed, spaces to hyphens."""
    return re.sub(r"\s+", "-", name.strip().lower())


def seed_sizes(sizes: Sequence[SizeOption]) -> list[SizeOption]:
    """Assign ids and make sure at least one base size exists."""
    if not sizes:
        return [SizeOption(id=option_id(BASE_SIZE_NAME), name=BASE_SIZE_NAME, price=Decimal("0"))]
    return [size.model_copy(update={"id": option_id(size.name)}) for size in sizes]


def normalize_extras(extras: Sequence[ExtraOption]) -> list[ExtraOption]:
    return [extra.model_copy(update={"id": option_id(extra.name)}) for extra in extras]
