"""Push notification schemas."""

from pydantic import BaseModel, Field


class DeviceTokenRegister(BaseModel):
    """Device token registration payload."""

    token: str = Field(min_length=1, max_length=512)


class DeviceTokenResponse(BaseModel):
    token: str
    valid: bool
