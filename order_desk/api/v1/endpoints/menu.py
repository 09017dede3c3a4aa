"""Menu item and category endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from order_desk.db.session import get_db
from order_desk.models.menu import Category, MenuItem
from order_desk.schemas.menu import (
    AvailabilityUpdate,
    CategoryCreate,
    CategoryRecord,
    CategoryRename,
    CategoryResponse,
    MenuItemCreate,
    MenuItemRecord,
)
from order_desk.services.catalog_guard import effective_color, items_in_category
from order_desk.services.menu_service import (
    create_category,
    create_menu_item,
    delete_menu_item,
    list_categories,
    list_menu_items,
    remove_category,
    rename_category,
    set_menu_item_availability,
)

router: APIRouter = APIRouter()


def _serialize_category(category: Category, items: list[MenuItem]) -> CategoryResponse:
    record = CategoryRecord.model_validate(category)
    members = items_in_category(record, items)
    return CategoryResponse(
        id=category.id,
        name=category.name,
        description=category.description,
        color=effective_color(record),
        sort_order=category.sort_order,
        active=category.active,
        item_count=len(members),
        available_count=sum(1 for item in members if item.available),
    )


def _get_category_or_404(db: Session, category_id: int) -> Category:
    category = db.get(Category, category_id)
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


def _get_item_or_404(db: Session, item_id: int) -> MenuItem:
    item = db.get(MenuItem, item_id)
    if item is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Menu item not found")
    return item


@router.get("/categories", response_model=list[CategoryResponse])
def get_categories(db: Session = Depends(get_db)) -> list[CategoryResponse]:
    """List categories with their display colour and item counts."""
    items = list_menu_items(db)
    return [_serialize_category(category, items) for category in list_categories(db)]


@router.post("/categories", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def post_category(payload: CategoryCreate, db: Session = Depends(get_db)) -> CategoryResponse:
    try:
        category = create_category(db, payload)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists") from exc
    return _serialize_category(category, list_menu_items(db))


@router.patch("/categories/{category_id}", response_model=CategoryResponse)
def patch_category(category_id: int, payload: CategoryRename, db: Session = Depends(get_db)) -> CategoryResponse:
    """Rename a category; menu items keep the old category name."""
    category = _get_category_or_404(db, category_id)
    try:
        category = rename_category(db, category, payload.name)
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists") from exc
    return _serialize_category(category, list_menu_items(db))


@router.delete("/categories/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(category_id: int, db: Session = Depends(get_db)) -> Response:
    """Delete a category that no menu item references."""
    category = _get_category_or_404(db, category_id)
    blocked = remove_category(db, category)
    if blocked is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": blocked.message, "count": blocked.count},
        )
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/items", response_model=list[MenuItemRecord])
def get_menu_items(
    category: str | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[MenuItem]:
    return list_menu_items(db, category=category)


@router.post("/items", response_model=MenuItemRecord, status_code=status.HTTP_201_CREATED)
def post_menu_item(payload: MenuItemCreate, db: Session = Depends(get_db)) -> MenuItem:
    """Create a menu item; an empty sizes list is seeded with the base size."""
    return create_menu_item(db, payload)


@router.patch("/items/{item_id}/availability", response_model=MenuItemRecord)
def patch_menu_item_availability(
    item_id: int,
    payload: AvailabilityUpdate,
    db: Session = Depends(get_db),
) -> MenuItem:
    return set_menu_item_availability(db, _get_item_or_404(db, item_id), payload.available)


@router.delete("/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_menu_item(item_id: int, db: Session = Depends(get_db)) -> Response:
    delete_menu_item(db, _get_item_or_404(db, item_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
