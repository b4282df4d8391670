"""Main FastAPI application."""
import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, settings as default_settings
from .database import create_engine, create_session_factory, init_db, close_db
from .dependencies import rate_limit
from .errors import NotifyLightError, ValidationError
from .routers import devices_router, notifications_router, messages_router, status_router
from .services import (
    DeliveryEngine,
    DeliveryLedger,
    DeviceRegistry,
    MessageStore,
    NotificationOrchestrator,
    RateLimiter,
)
from .services.validator import format_validation_errors

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown."""
    config: Settings = app.state.settings
    logger.info("Starting NotifyLight")

    if config.api_key == "default-api-key":
        logger.warning("API_KEY is not set - using the insecure default key")

    db_engine = create_engine(config)
    await init_db(db_engine, config)
    logger.info("Database initialized")

    session_factory = create_session_factory(db_engine)
    delivery_engine: DeliveryEngine = app.state.delivery_engine
    await delivery_engine.initialize()

    app.state.registry = DeviceRegistry(session_factory)
    app.state.message_store = MessageStore(session_factory)
    app.state.ledger = DeliveryLedger(session_factory)
    app.state.orchestrator = NotificationOrchestrator(
        registry=app.state.registry,
        message_store=app.state.message_store,
        delivery_engine=delivery_engine,
        ledger=app.state.ledger,
    )
    app.state.started_at = time.monotonic()

    yield

    # Shutdown
    await delivery_engine.shutdown()
    await close_db(db_engine)
    logger.info("Shutdown complete")


def _error_body(title: str, message: str) -> dict:
    return {"error": title, "message": message}


def register_exception_handlers(app: FastAPI):
    """Map application errors onto JSON responses."""

    @app.exception_handler(NotifyLightError)
    async def handle_app_error(request: Request, exc: NotifyLightError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        body = _error_body(exc.title, str(exc))
        if isinstance(exc, ValidationError):
            body["errors"] = exc.errors
        return JSONResponse(status_code=exc.status_code, content=body)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = format_validation_errors(exc.errors())
        body = _error_body(ValidationError.title, ", ".join(errors))
        body["errors"] = errors
        return JSONResponse(status_code=400, content=body)

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException):
        if exc.status_code == 404:
            body = _error_body(
                "Endpoint not found",
                f"{request.method} {request.url.path} is not a valid endpoint",
            )
        else:
            body = _error_body(str(exc.detail), str(exc.detail))
        return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.exception(f"Server error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=500,
            content=_error_body("Internal server error", "Something went wrong processing your request"),
        )


def create_app(
    config: Optional[Settings] = None,
    delivery_engine: Optional[DeliveryEngine] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings to use (defaults to environment settings)
        delivery_engine: Pre-built engine, e.g. with fake channels in tests
    """
    config = config or default_settings

    app = FastAPI(
        title="NotifyLight",
        description="Self-hosted push and in-app notification backend",
        version="1.0.0",
        lifespan=lifespan,
        dependencies=[Depends(rate_limit)],
    )
    app.state.settings = config
    app.state.delivery_engine = delivery_engine or DeliveryEngine(config)
    app.state.rate_limiter = RateLimiter(config.rate_limit_per_minute)
    app.state.notify_rate_limiter = RateLimiter(config.notify_rate_limit_per_minute)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.cors_origin],
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-API-Key"],
    )

    app.include_router(status_router)
    app.include_router(devices_router)
    app.include_router(notifications_router)
    app.include_router(messages_router)

    register_exception_handlers(app)

    return app


# Configure logging
logging.basicConfig(
    level=default_settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=default_settings.web_port)
