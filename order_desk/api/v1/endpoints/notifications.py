"""Push notification device registration."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from order_desk.db.session import get_db
from order_desk.models.device_token import DeviceToken
from order_desk.schemas.notification import DeviceTokenRegister, DeviceTokenResponse
from order_desk.services.notification_service import register_token

router: APIRouter = APIRouter()


@router.post("/tokens", response_model=DeviceTokenResponse, status_code=status.HTTP_201_CREATED)
def post_device_token(payload: DeviceTokenRegister, db: Session = Depends(get_db)) -> DeviceToken:
    """Register a device to receive new-order notifications."""
    return register_token(db, payload.token)
