"""Health and statistics schemas."""
from datetime import datetime

from pydantic import Field

from ..database import utcnow
from .base import CamelModel


class PushServiceStatus(CamelModel):
    """Delivery channel configuration."""
    initialized: bool
    apns: str  # configured, not configured
    fcm: str
    log_only: bool


class ServicesStatus(CamelModel):
    database: str
    push_service: PushServiceStatus


class MessageCounts(CamelModel):
    active: int = 0
    read: int = 0
    total: int = 0


class HealthMetrics(CamelModel):
    in_app_messages: MessageCounts


class HealthResponse(CamelModel):
    """Health check payload."""
    status: str
    uptime: str
    services: ServicesStatus
    metrics: HealthMetrics
    timestamp: datetime = Field(default_factory=utcnow)


class DeviceCounts(CamelModel):
    total: int = 0
    ios: int = 0
    android: int = 0


class StatsResponse(CamelModel):
    """Device and message counts."""
    devices: DeviceCounts
    messages: MessageCounts
