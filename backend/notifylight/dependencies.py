"""FastAPI dependencies: components from app state, API key, rate limits."""
import hmac
import logging
from typing import Optional

from fastapi import Header, Request

from .errors import AuthenticationError, RateLimitExceededError
from .services import (
    DeliveryEngine,
    DeliveryLedger,
    DeviceRegistry,
    MessageStore,
    NotificationOrchestrator,
)

logger = logging.getLogger(__name__)


def get_registry(request: Request) -> DeviceRegistry:
    return request.app.state.registry


def get_message_store(request: Request) -> MessageStore:
    return request.app.state.message_store


def get_ledger(request: Request) -> DeliveryLedger:
    return request.app.state.ledger


def get_delivery_engine(request: Request) -> DeliveryEngine:
    return request.app.state.delivery_engine


def get_orchestrator(request: Request) -> NotificationOrchestrator:
    return request.app.state.orchestrator


async def require_api_key(request: Request, x_api_key: Optional[str] = Header(default=None)):
    """Reject requests without the configured X-API-Key header."""
    if not x_api_key:
        raise AuthenticationError("API key missing", "Please provide X-API-Key header")

    if not hmac.compare_digest(x_api_key.encode(), request.app.state.settings.api_key.encode()):
        logger.warning(f"Invalid API key from {_client_key(request)}")
        raise AuthenticationError("Invalid API key", "The provided API key is not valid")


def _client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


async def rate_limit(request: Request):
    """Global per-client request budget."""
    if not request.app.state.rate_limiter.allow(_client_key(request)):
        raise RateLimitExceededError("Too many requests, please try again later")


async def notify_rate_limit(request: Request):
    """Separate, tighter budget for message creation."""
    if not request.app.state.notify_rate_limiter.allow(_client_key(request)):
        raise RateLimitExceededError("Please wait before creating more messages")
