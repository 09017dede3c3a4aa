"""Menu and category service helpers shared by API and console."""

import logging

from sqlalchemy.orm import Session

from order_desk.models.menu import Category, MenuItem
from order_desk.schemas.menu import CategoryCreate, CategoryRecord, MenuItemCreate
from order_desk.services.catalog_guard import (
    CategoryInUse,
    delete_category,
    items_in_category,
    normalize_extras,
    rename_category as rename_category_record,
    seed_sizes,
)

logger = logging.getLogger(__name__)


def list_categories(db: Session) -> list[Category]:
    """Return categories in display order."""
    return db.query(Category).order_by(Category.sort_order.asc(), Category.name.asc()).all()


def list_menu_items(db: Session, category: str | None = None) -> list[MenuItem]:
    """Return menu items, optionally only those naming category."""
    query = db.query(MenuItem)
    if category is not None:
        query = query.filter(MenuItem.category == category)
    return query.order_by(MenuItem.category.asc(), MenuItem.name.asc()).all()


def create_category(db: Session, payload: CategoryCreate) -> Category:
    """Create and persist a category."""
    category = Category(
        name=payload.name.strip(),
        description=payload.description,
        color=payload.color,
        sort_order=payload.sort_order,
        active=payload.active,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    logger.info("[MENU] Created category %s", category.name)
    return category


def rename_category(db: Session, category: Category, new_name: str) -> Category:
    """Persist a category rename.

    Menu items keep their old category value; renaming never rewrites them.
    """
    old_name = category.name
    renamed = rename_category_record(CategoryRecord.model_validate(category), new_name)
    category.name = renamed.name
    db.add(category)
    db.commit()
    db.refresh(category)
    stale = len(items_in_category(CategoryRecord(name=old_name), list_menu_items(db)))
    if stale:
        logger.warning("[MENU] Category %s renamed to %s; %s items still reference the old name", old_name, category.name, stale)
    return category


def remove_category(db: Session, category: Category) -> CategoryInUse | None:
    """Delete a category unless menu items still reference it by name."""
    blocked = delete_category(CategoryRecord.model_validate(category), list_menu_items(db))
    if blocked is not None:
        logger.info("[MENU] Refused delete of category %s: %s items", category.name, blocked.count)
        return blocked
    db.delete(category)
    db.commit()
    logger.info("[MENU] Deleted category %s", category.name)
    return None


def create_menu_item(db: Session, payload: MenuItemCreate) -> MenuItem:
    """Create and persist a menu item with normalized size and extra ids."""
    item = MenuItem(
        name=payload.name.strip(),
        category=payload.category,
        price=payload.price,
        description=payload.description,
        comes_with=payload.comes_with,
        available=payload.available,
        image=payload.image,
        sizes=[size.model_dump(mode="json") for size in seed_sizes(payload.sizes)],
        extras=[extra.model_dump(mode="json") for extra in normalize_extras(payload.extras)],
    )
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def set_menu_item_availability(db: Session, item: MenuItem, available: bool) -> MenuItem:
    """Toggle whether an item can be newly ordered; existing orders are unaffected."""
    item.available = available
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def delete_menu_item(db: Session, item: MenuItem) -> None:
    db.delete(item)
    db.commit()
