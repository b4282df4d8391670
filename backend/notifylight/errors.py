"""Exception hierarchy shared by services and the HTTP layer.

Every error carries the HTTP status and short title the API reports for it,
so routers can let them propagate to the exception handlers in ``main``.
"""
from typing import List, Optional


class NotifyLightError(Exception):
    """Base class for all application errors."""

    status_code = 500
    title = "Internal server error"


class ValidationError(NotifyLightError):
    """Malformed or missing request fields."""

    status_code = 400
    title = "Invalid payload"

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(", ".join(self.errors))


class AuthenticationError(NotifyLightError):
    """Missing or wrong X-API-Key header."""

    status_code = 401

    def __init__(self, title: str, message: str):
        self.title = title
        super().__init__(message)


class NotFoundError(NotifyLightError):
    """Message absent or already read."""

    status_code = 404
    title = "Message not found"


class NoDevicesFoundError(NotifyLightError):
    """No registered devices match the requested users."""

    status_code = 404
    title = "No devices found"


class RateLimitExceededError(NotifyLightError):
    """Client exceeded its request budget."""

    status_code = 429
    title = "Too many requests"


class PersistenceError(NotifyLightError):
    """Database I/O failure."""

    title = "Database error"


class NotConfiguredError(NotifyLightError):
    """No push channel is configured for a platform."""

    def __init__(self, platform: str):
        self.platform = platform
        super().__init__(f"No push service configured for {platform}")


class DeliveryError(NotifyLightError):
    """A push channel rejected or failed to deliver a notification."""

    title = "Delivery failed"
    retryable = True

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code
        super().__init__(message)


class RetryableDeliveryError(DeliveryError):
    """Transient network or protocol fault."""


class NonRetryableDeliveryError(DeliveryError):
    """Permanently invalid token or sender mismatch."""

    retryable = False
