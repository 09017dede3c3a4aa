"""FastAPI entrypoint for the restaurant order desk."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from order_desk.api.v1.api import api_router
from order_desk.core.config import settings
from order_desk.db import session as db_session
from order_desk.db.base import Base
from order_desk.services.order_status import ENTRY_STATUS

logger = logging.getLogger(__name__)

app = FastAPI(title="Restaurant Order Desk", debug=settings.debug)
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup() -> None:
    logger.info("[BOOTSTRAP] env=%s entry status=%s", settings.app_env, ENTRY_STATUS.value)
    Base.metadata.create_all(bind=db_session.engine)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok", "app": settings.app_name}
