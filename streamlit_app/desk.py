"""Order desk: filter, inspect, advance and cancel orders."""

import streamlit as st

from order_desk.core.config import settings
from order_desk.services.order_actions import cancel_order, change_order_status
from order_desk.services.order_feed import OrderFilter
from order_desk.services.order_status import OrderStatus, display_label, is_terminal, next_statuses
from order_desk.utils.time import format_relative_time
from streamlit_app.common import get_store, now_string, show_refusal

st.set_page_config(page_title="Orders", layout="wide")
st.title("All Orders")
st.caption(f"Last refresh: {now_string()}")

store = get_store()
status_options = ["all", *(status.value for status in OrderStatus)]
selected_filter = st.selectbox("Status", status_options, format_func=display_label)
search = st.text_input("Search by order number, customer or phone").strip().lower()

orders = store.list_orders(OrderFilter.parse(selected_filter), settings.order_view_limit)
if search:
    orders = [
        order
        for order in orders
        if search in order.order_number.lower() or search in order.customer_name.lower() or search in order.customer_phone
    ]

st.dataframe(
    [
        {
            "Order": order.order_number,
            "Customer": order.customer_name,
            "Type": order.order_type,
            "Status": display_label(order.status),
            "Total": f"{order.total:.2f}",
            "Placed": format_relative_time(order.created_at),
        }
        for order in orders
    ],
    use_container_width=True,
)

order_map = {f"{order.order_number} · {order.customer_name}": order for order in orders}
if order_map:
    label = st.selectbox("Order details", list(order_map.keys()))
    order = order_map[label]
    st.subheader(f"{order.order_number} - {display_label(order.status)}")
    st.write(f"Phone: {order.customer_phone}")
    if order.delivery_address is not None:
        st.write(f"Deliver to: {order.delivery_address.street}")
    for line in order.items:
        st.write(f"{line.quantity}× {line.name} @ {line.price:.2f}")
    st.write(f"Delivery fee: {order.delivery_fee:.2f} · Total: {order.total:.2f}")

    for target in next_statuses(order.status):
        if st.button(f"Mark as {display_label(target)}", key=f"to_{target.value}"):
            result = change_order_status(store, order.id, target)
            if not show_refusal(st, result):
                st.rerun()

    if not is_terminal(order.status):
        confirmed = st.checkbox("I confirm this order should be cancelled", key=f"confirm_{order.id}")
        if st.button("Cancel order", type="secondary"):
            result = cancel_order(store, order.id, confirmed=confirmed)
            if not show_refusal(st, result):
                st.rerun()
