"""Notification orchestrator - picks the pipeline and aggregates results."""
import asyncio
import logging
import math
import uuid
from typing import Any, Dict, List, Optional

from ..errors import NoDevicesFoundError, NotifyLightError, PersistenceError
from .delivery_engine import DeliveryEngine, DeliveryResult, PushPayload
from .delivery_ledger import DeliveryLedger, FAILED, SENT
from .device_registry import DeviceRegistry
from .message_store import MessageStore
from .validator import NotificationPayload

logger = logging.getLogger(__name__)


def delivery_rate(successful: int, failed: int) -> int:
    """Percentage of successful deliveries, rounded half up; 0 for no attempts."""
    total = successful + failed
    if total == 0:
        return 0
    return int(math.floor(successful * 100 / total + 0.5))


class NotificationOrchestrator:
    """Fans a notification out to devices (push) or users (in-app)."""

    def __init__(
        self,
        registry: DeviceRegistry,
        message_store: MessageStore,
        delivery_engine: DeliveryEngine,
        ledger: DeliveryLedger,
        concurrency_limit: Optional[int] = None,
    ):
        self.registry = registry
        self.message_store = message_store
        self.delivery_engine = delivery_engine
        self.ledger = ledger
        if concurrency_limit is None:
            concurrency_limit = delivery_engine.concurrency_limit
        if concurrency_limit < 1:
            raise ValueError("concurrency_limit must be at least 1")
        self.concurrency_limit = concurrency_limit

    async def dispatch(self, notification_id: str, payload: NotificationPayload) -> Dict[str, Any]:
        """Process a sanitized notification.

        Returns:
            Dict with total, successful, failed, delivery_rate and, for
            in-app messages only, errors
        """
        logger.info(
            f"Notification processing started: id={notification_id} type={payload.type} "
            f"users={payload.users}"
        )
        if payload.type == "in-app":
            results = await self.process_in_app(payload)
        else:
            results = await self.process_push(notification_id, payload)

        logger.info(
            f"Notification processing completed: id={notification_id} "
            f"successful={results['successful']} failed={results['failed']}"
        )
        return results

    async def _target_users(self, payload: NotificationPayload) -> List[str]:
        if payload.targets_all:
            return await self.registry.distinct_user_ids()
        # Preserve order, drop repeats
        return list(dict.fromkeys(payload.users))

    async def _create_for_user(self, user_id: str, payload: NotificationPayload):
        await self.message_store.create_message(
            str(uuid.uuid4()), payload.title, payload.message, user_id
        )

    async def process_in_app(self, payload: NotificationPayload) -> Dict[str, Any]:
        """Create one in-app message per target user.

        Users are processed in bounded chunks; a failure for one user is
        recorded and does not stop the others.
        """
        users = await self._target_users(payload)
        successful = 0
        errors: List[str] = []

        for start in range(0, len(users), self.concurrency_limit):
            chunk = users[start:start + self.concurrency_limit]
            outcomes = await asyncio.gather(
                *(self._create_for_user(user_id, payload) for user_id in chunk),
                return_exceptions=True,
            )
            for user_id, outcome in zip(chunk, outcomes):
                if isinstance(outcome, NotifyLightError):
                    logger.error(f"Failed to create in-app message for user {user_id}: {outcome}")
                    errors.append(f"User {user_id}: {outcome}")
                elif isinstance(outcome, BaseException):
                    raise outcome
                else:
                    successful += 1

        failed = len(errors)
        return {
            "total": successful + failed,
            "successful": successful,
            "failed": failed,
            "delivery_rate": delivery_rate(successful, failed),
            "errors": errors or None,
        }

    async def process_push(self, notification_id: str, payload: NotificationPayload) -> Dict[str, Any]:
        """Deliver to every device of the target users and record each outcome."""
        devices = await self.registry.resolve_devices(payload.users)
        if not devices:
            raise NoDevicesFoundError("No registered devices found for the specified users")

        async def record(result: DeliveryResult):
            try:
                await self.ledger.record_delivery(
                    notification_id,
                    result.token,
                    SENT if result.success else FAILED,
                    None if result.success else result.error,
                )
            except PersistenceError as e:
                logger.error(f"Failed to log delivery for {result.token[:16]}...: {e}")

        batch = await self.delivery_engine.send_batch(
            devices,
            PushPayload(
                title=payload.title,
                message=payload.message,
                actions=payload.actions,
                data=payload.data,
            ),
            notification_id,
            concurrency_limit=self.concurrency_limit,
            on_result=record,
        )

        return {
            "total": batch.total,
            "successful": batch.successful,
            "failed": batch.failed,
            "delivery_rate": delivery_rate(batch.successful, batch.failed),
        }
