"""Kitchen display board."""

import streamlit as st

from order_desk.core.config import settings
from order_desk.services.order_actions import change_order_status
from order_desk.services.order_feed import ALL_ORDERS
from order_desk.services.order_status import display_label, kitchen_board, next_statuses, priority_color
from order_desk.utils.time import format_relative_time
from streamlit_app.common import get_store, now_string, show_refusal

st.set_page_config(page_title="Kitchen", layout="wide")
st.title("Kitchen View")
st.caption(f"Last refresh: {now_string()}")

store = get_store()
recent = store.list_orders(ALL_ORDERS, settings.kitchen_board_limit)
board = kitchen_board(list(reversed(recent)))

for column, (status, orders) in zip(st.columns(len(board)), board.items()):
    with column:
        st.subheader(f"{display_label(status)} ({len(orders)})")
        for order in orders:
            with st.container(border=True):
                st.markdown(f"**{order.order_number}** · {order.customer_name}")
                st.caption(f"{format_relative_time(order.created_at)} · {order.order_type}")
                if order.priority == "high":
                    st.markdown(f":red[High priority] `{priority_color(order.priority)}`")
                for line in order.items:
                    size = f" ({line.size})" if line.size else ""
                    st.write(f"{line.quantity}× {line.name}{size}")
                if order.notes:
                    st.info(order.notes)
                upcoming = next_statuses(order.status)
                if upcoming and st.button(f"Mark {display_label(upcoming[0])}", key=f"advance_{order.id}"):
                    result = change_order_status(store, order.id, upcoming[0])
                    if not show_refusal(st, result):
                        st.rerun()
