"""Menu editor: categories and items."""

from decimal import Decimal

import streamlit as st

from order_desk.schemas.menu import CategoryCreate, CategoryRecord, MenuItemCreate
from order_desk.services.catalog_guard import effective_color, items_in_category
from order_desk.services.menu_service import (
    create_category,
    create_menu_item,
    list_categories,
    list_menu_items,
    remove_category,
    rename_category,
    set_menu_item_availability,
)
from streamlit_app.common import get_session, now_string

st.set_page_config(page_title="Menu", layout="wide")
st.title("Menu Management")
st.caption(f"Last refresh: {now_string()}")

with get_session() as db:
    categories = list_categories(db)
    items = list_menu_items(db)

    st.subheader("Categories")
    with st.form("new_category"):
        new_name = st.text_input("Category name")
        if st.form_submit_button("Add category") and new_name.strip():
            create_category(db, CategoryCreate(name=new_name.strip()))
            st.rerun()

    for category in categories:
        record = CategoryRecord.model_validate(category)
        members = items_in_category(record, items)
        color = effective_color(record)
        left, middle, right = st.columns([3, 2, 2])
        left.markdown(f"<span style='color:{color}'>●</span> **{category.name}** ({len(members)} items)", unsafe_allow_html=True)
        renamed = middle.text_input("Rename", value=category.name, key=f"rename_{category.id}", label_visibility="collapsed")
        if renamed.strip() and renamed.strip() != category.name and middle.button("Save", key=f"save_{category.id}"):
            rename_category(db, category, renamed)
            if members:
                st.warning(f"{len(members)} items still list the old category name.")
            st.rerun()
        if right.button("Delete", key=f"delete_{category.id}"):
            blocked = remove_category(db, category)
            if blocked is not None:
                st.error(blocked.message)
            else:
                st.rerun()

    st.subheader("Menu items")
    category_names = [category.name for category in categories]
    with st.form("new_item"):
        item_name = st.text_input("Item name")
        item_category = st.selectbox("Category", category_names) if category_names else None
        item_price = st.number_input("Price", min_value=0.0, value=10.0, step=0.5)
        item_description = st.text_area("Description")
        if st.form_submit_button("Save item") and item_name and item_category:
            create_menu_item(
                db,
                MenuItemCreate(
                    name=item_name,
                    category=item_category,
                    price=Decimal(str(item_price)),
                    description=item_description,
                ),
            )
            st.rerun()

    for item in items:
        available = st.checkbox(f"{item.name} · {item.category} · {item.price:.2f}", value=item.available, key=f"available_{item.id}")
        if available != item.available:
            set_menu_item_availability(db, item, available)
            st.rerun()
