"""Application configuration."""

from os import getenv

from pydantic import BaseModel


class Settings(BaseModel):
    """Runtime settings for the application."""

    app_name: str = "order-desk API"
    app_env: str = getenv("APP_ENV", "dev")
    debug: bool = getenv("DEBUG", "0") == "1"
    database_url: str = getenv("DATABASE_URL", "sqlite:///./order_desk.db")
    entry_status: str = getenv("ENTRY_STATUS", "pending")
    order_view_limit: int = int(getenv("ORDER_VIEW_LIMIT", "50"))
    kitchen_board_limit: int = int(getenv("KITCHEN_BOARD_LIMIT", "50"))
    api_base_url: str = getenv("API_BASE_URL", "http://localhost:8000/api/v1")


settings: Settings = Settings()
