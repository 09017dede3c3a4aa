"""Order desk, kitchen board and live order feed endpoints."""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, status
from fastapi.concurrency import run_in_threadpool
from fastapi.websockets import WebSocketDisconnect

from order_desk.api.deps import get_order_store
from order_desk.core.config import settings
from order_desk.schemas.order import (
    CancelRequest,
    KitchenBoardResponse,
    KitchenColumn,
    OrderCreate,
    OrderRecord,
    OrderResponse,
    StatusChangeRequest,
)
from order_desk.services.live_orders import LiveOrderView
from order_desk.services.order_actions import (
    ConfirmationRequired,
    OrderNotFound,
    PersistFailure,
    cancel_order,
    change_order_status,
)
from order_desk.services.order_feed import ALL_ORDERS, OrderFilter
from order_desk.services.order_status import (
    AlreadyTerminal,
    InvalidTransition,
    display_label,
    kitchen_board,
    next_statuses,
    status_color,
)
from order_desk.services.order_store import OrderStore, PersistError
from order_desk.utils.time import elapsed_minutes, format_relative_time

router: APIRouter = APIRouter()
logger = logging.getLogger(__name__)

_ERROR_STATUS_CODES: dict[type, int] = {
    InvalidTransition: status.HTTP_409_CONFLICT,
    AlreadyTerminal: status.HTTP_409_CONFLICT,
    OrderNotFound: status.HTTP_404_NOT_FOUND,
    ConfirmationRequired: status.HTTP_400_BAD_REQUEST,
    PersistFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def serialize_order(order: OrderRecord, now: datetime | None = None) -> OrderResponse:
    current = now or datetime.now(timezone.utc)
    return OrderResponse(
        id=order.id,
        order_number=order.order_number,
        customer_name=order.customer_name,
        customer_phone=order.customer_phone,
        order_type=order.order_type,
        delivery_address=order.delivery_address,
        items=list(order.items),
        delivery_fee=order.delivery_fee,
        total=order.total,
        status=order.status,
        display_status=display_label(order.status),
        status_color=status_color(order.status),
        next_statuses=list(next_statuses(order.status)),
        notes=order.notes,
        priority=order.priority,
        created_at=order.created_at,
        paid_at=order.paid_at,
        time_ago=format_relative_time(order.created_at, current),
        elapsed_minutes=elapsed_minutes(order.created_at, current),
    )


def _parse_filter(value: str | None) -> OrderFilter:
    try:
        return OrderFilter.parse(value)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _unwrap(result: Any) -> OrderResponse:
    status_code = _ERROR_STATUS_CODES.get(type(result))
    if status_code is not None:
        raise HTTPException(status_code=status_code, detail=result.message)
    return serialize_order(result)


@router.get("", response_model=list[OrderResponse])
def list_orders(
    status_value: str | None = Query(default=None, alias="status"),
    limit: int = Query(default=settings.order_view_limit, ge=1, le=500),
    store: OrderStore = Depends(get_order_store),
) -> list[OrderResponse]:
    """Return orders matching the status filter, newest first."""
    now = datetime.now(timezone.utc)
    return [serialize_order(order, now) for order in store.list_orders(_parse_filter(status_value), limit)]


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(payload: OrderCreate, store: OrderStore = Depends(get_order_store)) -> OrderResponse:
    """Create an order in the entry status."""
    try:
        order = store.create(payload)
    except PersistError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    return serialize_order(order)


@router.get("/kitchen", response_model=KitchenBoardResponse)
def get_kitchen_board(store: OrderStore = Depends(get_order_store)) -> KitchenBoardResponse:
    """Active orders per kitchen column, oldest first so the queue reads top-down."""
    now = datetime.now(timezone.utc)
    recent = store.list_orders(ALL_ORDERS, settings.kitchen_board_limit)
    board = kitchen_board(list(reversed(recent)))
    return KitchenBoardResponse(
        generated_at=now,
        columns=[
            KitchenColumn(
                status=column_status,
                label=display_label(column_status),
                color=status_color(column_status),
                orders=[serialize_order(order, now) for order in orders],
            )
            for column_status, orders in board.items()
        ],
    )


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, store: OrderStore = Depends(get_order_store)) -> OrderResponse:
    order = store.get(order_id)
    if order is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    return serialize_order(order)


@router.post("/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: str,
    payload: StatusChangeRequest,
    store: OrderStore = Depends(get_order_store),
) -> OrderResponse:
    """Move an order forward; the response reflects the stored status."""
    return _unwrap(change_order_status(store, order_id, payload.status))


@router.post("/{order_id}/cancel", response_model=OrderResponse)
def cancel_existing_order(
    order_id: str,
    payload: CancelRequest,
    store: OrderStore = Depends(get_order_store),
) -> OrderResponse:
    """Cancel an order; requires `confirm: true`."""
    if payload.reason:
        logger.info("[ORDERS] Cancel requested for %s: %s", order_id, payload.reason)
    return _unwrap(cancel_order(store, order_id, confirmed=payload.confirm))


def _view_payload(view: LiveOrderView) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    selected = view.selected_order
    return {
        "filter": view.order_filter.label,
        "loading": view.is_loading,
        "orders": [serialize_order(order, now).model_dump(mode="json") for order in view.orders],
        "selected": serialize_order(selected, now).model_dump(mode="json") if selected is not None else None,
    }


_CLOSED = object()


async def _switch_filter(view: LiveOrderView, order_filter: OrderFilter) -> None:
    # The snapshot query blocks, so it runs in the threadpool; events come back via the scheduler.
    await run_in_threadpool(view.switch_filter(order_filter).start)


async def _receive_commands(websocket: WebSocket, view: LiveOrderView, outbox: asyncio.Queue) -> None:
    """Apply client commands: {"status": ...} switches filter, {"select": id} opens a detail."""
    try:
        async for text in websocket.iter_text():
            try:
                message = json.loads(text)
            except ValueError:
                outbox.put_nowait({"error": "Commands must be JSON"})
                continue
            if not isinstance(message, dict):
                outbox.put_nowait({"error": "Commands must be JSON objects"})
                continue
            if "status" in message:
                try:
                    order_filter = OrderFilter.parse(message["status"])
                except (TypeError, AttributeError, ValueError) as exc:
                    outbox.put_nowait({"error": f"Invalid status filter: {message['status']!r}"})
                    logger.debug("[LIVE] rejected filter %r: %s", message["status"], exc)
                else:
                    await _switch_filter(view, order_filter)
            if "select" in message:
                selected = message["select"]
                view.select_order(selected if isinstance(selected, str) else None)
    finally:
        outbox.put_nowait(_CLOSED)


@router.websocket("/live")
async def live_orders(
    websocket: WebSocket,
    status_value: str | None = Query(default=None, alias="status"),
    store: OrderStore = Depends(get_order_store),
) -> None:
    """Push the live order view to the client on every change."""
    await websocket.accept()
    try:
        order_filter = OrderFilter.parse(status_value)
    except ValueError as exc:
        await websocket.send_json({"error": str(exc)})
        await websocket.close(code=1003)
        return

    loop = asyncio.get_running_loop()
    outbox: asyncio.Queue = asyncio.Queue()
    view = LiveOrderView(
        store.feed,
        order_filter=order_filter,
        scheduler=lambda callback: loop.call_soon_threadsafe(callback),
    )
    view.add_listener(lambda changed: outbox.put_nowait(_view_payload(changed)))
    await _switch_filter(view, order_filter)
    receiver = asyncio.create_task(_receive_commands(websocket, view, outbox))
    try:
        while True:
            item = await outbox.get()
            if item is _CLOSED:
                break
            await websocket.send_json(item)
    except WebSocketDisconnect:
        logger.debug("[LIVE] client disconnected")
    finally:
        view.close()
        receiver.cancel()
