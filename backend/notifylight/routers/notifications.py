"""Notification dispatch and delivery report endpoints."""
import logging
import uuid

from fastapi import APIRouter, Depends

from ..dependencies import get_ledger, get_orchestrator, notify_rate_limit, require_api_key
from ..schemas import DeliveryLogEntry, DeliveryReport, DispatchResults, NotifyRequest, NotifyResponse
from ..services import DeliveryLedger, NotificationOrchestrator, delivery_rate
from ..services.validator import sanitize_notification, validate_notification

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"], dependencies=[Depends(require_api_key)])


@router.post(
    "/notify",
    response_model=NotifyResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(notify_rate_limit)],
)
async def notify(
    request: NotifyRequest,
    orchestrator: NotificationOrchestrator = Depends(get_orchestrator),
):
    """Send a push notification or create in-app messages.

    Push is the default type; users defaults to every registered user.
    """
    validate_notification(request)
    payload = sanitize_notification(request)
    notification_id = str(uuid.uuid4())

    results = await orchestrator.dispatch(notification_id, payload)

    label = "In-app messages" if payload.type == "in-app" else "Push notifications"
    return NotifyResponse(
        message=f"{label} processed successfully",
        notification_id=notification_id,
        type=payload.type,
        results=DispatchResults(**results),
    )


@router.get("/notifications/{notification_id}/deliveries", response_model=DeliveryReport)
async def get_delivery_report(
    notification_id: str,
    ledger: DeliveryLedger = Depends(get_ledger),
):
    """Ledger entries and delivery rate for a push notification."""
    stats = await ledger.stats_for(notification_id)
    entries = await ledger.entries_for(notification_id)

    return DeliveryReport(
        notification_id=notification_id,
        sent=stats["sent"],
        failed=stats["failed"],
        delivery_rate=delivery_rate(stats["sent"], stats["failed"]),
        entries=[DeliveryLogEntry.model_validate(entry) for entry in entries],
    )
