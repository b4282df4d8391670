"""Delivery ledger - append-only log of per-device push outcomes."""
import logging
from typing import Dict, List, Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import async_sessionmaker

from ..database import session_scope, utcnow
from ..errors import ValidationError
from ..models import DeliveryLog

logger = logging.getLogger(__name__)

SENT = "sent"
FAILED = "failed"
STATUSES = (SENT, FAILED)


class DeliveryLedger:
    """Records delivery attempts; rows are never updated."""

    def __init__(self, session_factory: async_sessionmaker):
        self._session_factory = session_factory

    async def record_delivery(
        self,
        notification_id: str,
        device_token: str,
        status: str,
        error_message: Optional[str] = None,
    ) -> DeliveryLog:
        """Append one entry, timestamped now."""
        if not notification_id or not device_token or not status:
            raise ValidationError(["notificationId, deviceToken, and status are required"])
        if status not in STATUSES:
            raise ValidationError(['Status must be "sent" or "failed"'])

        entry = DeliveryLog(
            notification_id=notification_id,
            device_token=device_token,
            status=status,
            error_message=error_message,
            timestamp=utcnow(),
        )
        async with session_scope(self._session_factory) as session:
            session.add(entry)
            await session.commit()

        logger.debug(f"Delivery {status} for {device_token[:16]}... (notification {notification_id})")
        return entry

    async def stats_for(self, notification_id: str) -> Dict[str, int]:
        """Counts of sent and failed entries for a notification."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(DeliveryLog.status, func.count(DeliveryLog.id))
                .where(DeliveryLog.notification_id == notification_id)
                .group_by(DeliveryLog.status)
            )
            stats = {SENT: 0, FAILED: 0}
            for status, count in result.all():
                stats[status] = count
        return stats

    async def entries_for(self, notification_id: str) -> List[DeliveryLog]:
        """All entries for a notification in the order they were recorded."""
        async with session_scope(self._session_factory) as session:
            result = await session.execute(
                select(DeliveryLog)
                .where(DeliveryLog.notification_id == notification_id)
                .order_by(DeliveryLog.timestamp.asc())
            )
            return list(result.scalars().all())
