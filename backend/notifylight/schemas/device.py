"""Device registration schemas."""
from datetime import datetime
from typing import Optional

from pydantic import Field

from ..database import utcnow
from .base import CamelModel


class DeviceRegisterRequest(CamelModel):
    """Request to register a device for push notifications.

    Fields are optional at the schema level so the validator can report
    every missing or malformed field at once.
    """
    token: Optional[str] = None
    platform: Optional[str] = None
    user_id: Optional[str] = None


class DeviceInfo(CamelModel):
    """Public view of a registered device."""
    id: str
    platform: str
    user_id: str


class DeviceRegisterResponse(CamelModel):
    """Response after registering a device."""
    success: bool = True
    message: str = "Device registered successfully"
    device: DeviceInfo
    timestamp: datetime = Field(default_factory=utcnow)
