"""Notification request/response schemas."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import Field

from ..database import utcnow
from .base import CamelModel


class NotificationAction(CamelModel):
    """Button rendered by the SDK for an in-app or push message."""
    id: str
    title: str
    style: Optional[str] = None  # primary, secondary


class NotifyRequest(CamelModel):
    """Request to send a push notification or create in-app messages."""
    title: Optional[str] = None
    message: Optional[str] = None
    type: Optional[str] = None  # push (default), in-app
    users: Optional[List[str]] = None  # user ids or ["all"]
    actions: Optional[List[NotificationAction]] = None
    data: Optional[Dict[str, Any]] = None


class DispatchResults(CamelModel):
    """Aggregate outcome of one dispatch."""
    total: int
    successful: int
    failed: int
    delivery_rate: int
    errors: Optional[List[str]] = None  # in-app pipeline only


class NotifyResponse(CamelModel):
    """Response after processing a notification."""
    success: bool = True
    message: str
    notification_id: str
    type: str
    results: DispatchResults
    timestamp: datetime = Field(default_factory=utcnow)


class DeliveryLogEntry(CamelModel):
    """Single ledger row."""
    id: str
    notification_id: str
    device_token: str
    status: str  # sent, failed
    error_message: Optional[str] = None
    timestamp: datetime


class DeliveryReport(CamelModel):
    """Ledger summary for one notification."""
    notification_id: str
    sent: int
    failed: int
    delivery_rate: int
    entries: List[DeliveryLogEntry]
