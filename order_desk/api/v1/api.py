"""API v1 router composition."""

from fastapi import APIRouter

from order_desk.api.v1.endpoints import menu, notifications, orders

api_router: APIRouter = APIRouter()
api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(menu.router, prefix="/menu", tags=["menu"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
