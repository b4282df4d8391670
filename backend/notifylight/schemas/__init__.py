"""Pydantic schemas for API request/response models."""
from .device import (
    DeviceRegisterRequest,
    DeviceRegisterResponse,
    DeviceInfo,
)
from .notification import (
    NotificationAction,
    NotifyRequest,
    NotifyResponse,
    DispatchResults,
    DeliveryLogEntry,
    DeliveryReport,
)
from .message import (
    MessageItem,
    MessageListResponse,
    NextMessageResponse,
    MarkReadResponse,
)
from .status import (
    HealthResponse,
    StatsResponse,
)

__all__ = [
    "DeviceRegisterRequest",
    "DeviceRegisterResponse",
    "DeviceInfo",
    "NotificationAction",
    "NotifyRequest",
    "NotifyResponse",
    "DispatchResults",
    "DeliveryLogEntry",
    "DeliveryReport",
    "MessageItem",
    "MessageListResponse",
    "NextMessageResponse",
    "MarkReadResponse",
    "HealthResponse",
    "StatsResponse",
]
