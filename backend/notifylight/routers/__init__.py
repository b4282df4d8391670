"""API routers."""
from .devices import router as devices_router
from .notifications import router as notifications_router
from .messages import router as messages_router
from .status import router as status_router

__all__ = ["devices_router", "notifications_router", "messages_router", "status_router"]
