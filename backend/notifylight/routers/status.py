"""Health check and statistics endpoints."""
import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from ..dependencies import get_delivery_engine, get_message_store, get_registry, require_api_key
from ..database import utcnow
from ..errors import PersistenceError
from ..schemas import HealthResponse, StatsResponse
from ..services import DeliveryEngine, DeviceRegistry, MessageStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["status"])


@router.get("/health", response_model=HealthResponse)
async def health_check(
    request: Request,
    engine: DeliveryEngine = Depends(get_delivery_engine),
    store: MessageStore = Depends(get_message_store),
):
    """Service health, push channel configuration and message counts."""
    try:
        message_stats = await store.stats()
    except PersistenceError as e:
        logger.error(f"Health check error: {e}")
        return JSONResponse(
            status_code=500,
            content={
                "status": "unhealthy",
                "error": str(e),
                "timestamp": utcnow().isoformat(),
            },
        )

    uptime = int(time.monotonic() - request.app.state.started_at)
    return HealthResponse(
        status="healthy",
        uptime=f"{uptime}s",
        services={
            "database": "connected",
            "push_service": engine.status(),
        },
        metrics={"in_app_messages": message_stats},
    )


@router.get("/stats", response_model=StatsResponse, dependencies=[Depends(require_api_key)])
async def get_stats(
    registry: DeviceRegistry = Depends(get_registry),
    store: MessageStore = Depends(get_message_store),
):
    """Device and message counts (for admin dashboards)."""
    return StatsResponse(
        devices=await registry.stats(),
        messages=await store.stats(),
    )
