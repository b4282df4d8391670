"""Services for device registration, delivery, and in-app messaging."""
from .device_registry import DeviceRegistry
from .message_store import MessageStore
from .delivery_engine import DeliveryEngine, PushPayload, DeliveryResult, BatchResult
from .delivery_ledger import DeliveryLedger
from .orchestrator import NotificationOrchestrator, delivery_rate
from .rate_limiter import RateLimiter

__all__ = [
    "DeviceRegistry",
    "MessageStore",
    "DeliveryEngine",
    "PushPayload",
    "DeliveryResult",
    "BatchResult",
    "DeliveryLedger",
    "NotificationOrchestrator",
    "delivery_rate",
    "RateLimiter",
]
