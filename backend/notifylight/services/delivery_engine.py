"""Delivery engine - sends push payloads through APNs/FCM with retries.

One engine is created at startup and shared by reference. Devices are
dispatched in chunks of ``concurrency_limit``: a chunk runs concurrently and
must finish before the next one starts, which caps in-flight requests to the
push gateways. A device that exhausts its retries only fails itself.
"""
import asyncio
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from ..config import Settings, fcm_private_key
from ..errors import NotConfiguredError, NonRetryableDeliveryError, RetryableDeliveryError
from .push_channels import APNsChannel, FCMChannel, PushChannel
from .validator import check_push_config

logger = logging.getLogger(__name__)

LOG_ONLY_MESSAGE = "Logged (no push service configured)"


@dataclass
class PushPayload:
    """Content delivered to each device."""
    title: Optional[str] = None
    message: Optional[str] = None
    actions: List[Dict[str, Any]] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)


@dataclass
class DeliveryResult:
    """Outcome of delivering to one device."""
    success: bool
    platform: str
    token: str
    attempt_count: int
    message_id: Optional[str] = None
    error: Optional[str] = None
    log_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "success": self.success,
            "platform": self.platform,
            "token": self.token,
            "attemptCount": self.attempt_count,
            "logOnly": self.log_only,
        }
        if self.success:
            result["messageId"] = self.message_id
        else:
            result["error"] = self.error
        return result


@dataclass
class BatchResult:
    """Aggregate outcome of a batch."""
    total: int = 0
    successful: int = 0
    failed: int = 0
    results: List[DeliveryResult] = field(default_factory=list)


ResultCallback = Callable[[DeliveryResult], Awaitable[None]]


class DeliveryEngine:
    """Dispatches push notifications to APNs (iOS) and FCM (Android)."""

    def __init__(
        self,
        config: Settings,
        channels: Optional[Dict[str, PushChannel]] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self._config = config
        self._channels: Dict[str, PushChannel] = dict(channels or {})
        # Injected channels replace the ones built from settings
        self._channels_injected = channels is not None
        self._sleep = sleep
        self.initialized = False

        self.max_attempts = max(1, config.push_max_attempts)
        self.backoff_base = config.push_backoff_base_seconds
        self.timeout = config.push_timeout_seconds
        self.concurrency_limit = config.push_concurrency_limit

    async def initialize(self):
        """Build the channels that have a complete configuration."""
        if not self._channels_injected:
            status = check_push_config(self._config)
            if status.errors:
                logger.warning(f"Push configuration warnings: {status.errors}")

            if status.has_apns:
                self._add_channel("ios", self._build_apns)
            if status.has_fcm:
                self._add_channel("android", self._build_fcm)

        if self.log_only:
            logger.warning("No push notification services configured. Notifications will be logged only.")

        self.initialized = True
        logger.info(f"Delivery engine initialized (channels: {sorted(self._channels) or 'none'})")

    def _add_channel(self, platform: str, builder: Callable[[], PushChannel]):
        try:
            self._channels[platform] = builder()
        except Exception as e:
            logger.error(f"Failed to configure {platform} push channel: {e}")

    def _build_apns(self) -> PushChannel:
        key_path = self._config.apns_key_path
        if not os.path.exists(key_path):
            raise FileNotFoundError(f"APNs key file not found at: {key_path}")
        return APNsChannel(
            key_path=key_path,
            key_id=self._config.apns_key_id,
            team_id=self._config.apns_team_id,
            bundle_id=self._config.apns_bundle_id,
            production=self._config.apns_production,
        )

    def _build_fcm(self) -> PushChannel:
        return FCMChannel(
            project_id=self._config.fcm_project_id,
            private_key=fcm_private_key(self._config),
            client_email=self._config.fcm_client_email,
        )

    @property
    def log_only(self) -> bool:
        """True when no channel is configured and nothing reaches the network."""
        return not self._channels

    def channel_for(self, platform: str) -> PushChannel:
        channel = self._channels.get(platform)
        if channel is None:
            raise NotConfiguredError(platform)
        return channel

    def backoff_delay(self, attempt: int) -> float:
        """Delay after a failed attempt: base * 2**attempt (2s, 4s, 8s for base 1s)."""
        return self.backoff_base * (2 ** attempt)

    async def send_one(self, device, payload: PushPayload, notification_id: str) -> DeliveryResult:
        """Deliver to one device, retrying transient failures.

        Args:
            device: Object with ``token`` and ``platform`` attributes
            payload: Notification content
            notification_id: Dispatch this delivery belongs to

        Returns:
            DeliveryResult; failures are reported, not raised
        """
        if not self.initialized:
            raise RuntimeError("Delivery engine not initialized")

        token_hint = f"{device.token[:16]}..."
        try:
            channel = self.channel_for(device.platform)
        except NotConfiguredError:
            logger.info(f"No push service configured for {device.platform}, logging only ({token_hint})")
            return DeliveryResult(
                success=True,
                platform=device.platform,
                token=device.token,
                attempt_count=1,
                message_id=LOG_ONLY_MESSAGE,
                log_only=True,
            )

        last_error = "Unknown error"
        for attempt in range(1, self.max_attempts + 1):
            try:
                message_id = await asyncio.wait_for(
                    channel.send(device.token, payload),
                    timeout=self.timeout,
                )
                logger.info(f"{channel.name} notification {notification_id} sent to {token_hint} (attempt {attempt})")
                return DeliveryResult(
                    success=True,
                    platform=device.platform,
                    token=device.token,
                    attempt_count=attempt,
                    message_id=message_id,
                )
            except NonRetryableDeliveryError as e:
                logger.warning(f"Permanent failure for {token_hint}, not retrying: {e}")
                return DeliveryResult(
                    success=False,
                    platform=device.platform,
                    token=device.token,
                    attempt_count=attempt,
                    error=str(e),
                )
            except RetryableDeliveryError as e:
                last_error = str(e)
            except asyncio.TimeoutError:
                last_error = f"{channel.name} request timed out after {self.timeout}s"

            logger.warning(
                f"Push attempt {attempt}/{self.max_attempts} failed for {device.platform} "
                f"device {token_hint}: {last_error}"
            )
            if attempt < self.max_attempts:
                await self._sleep(self.backoff_delay(attempt))

        return DeliveryResult(
            success=False,
            platform=device.platform,
            token=device.token,
            attempt_count=self.max_attempts,
            error=last_error,
        )

    async def send_batch(
        self,
        devices: Sequence,
        payload: PushPayload,
        notification_id: str,
        concurrency_limit: Optional[int] = None,
        on_result: Optional[ResultCallback] = None,
    ) -> BatchResult:
        """Deliver to many devices in bounded-concurrency chunks.

        ``on_result`` is awaited for every result as soon as its chunk
        finishes, so earlier chunks are recorded even if a later one never
        runs.
        """
        limit = self.concurrency_limit if concurrency_limit is None else concurrency_limit
        if limit < 1:
            raise ValueError("concurrency_limit must be at least 1")

        batch = BatchResult(total=len(devices))
        if not devices:
            return batch

        logger.info(f"Sending notifications to {len(devices)} devices (concurrency: {limit})")

        for start in range(0, len(devices), limit):
            chunk = devices[start:start + limit]
            outcomes = await asyncio.gather(
                *(self.send_one(device, payload, notification_id) for device in chunk),
                return_exceptions=True,
            )

            for device, outcome in zip(chunk, outcomes):
                if isinstance(outcome, BaseException):
                    if not isinstance(outcome, Exception):
                        raise outcome
                    logger.error(f"Unexpected error delivering to {device.token[:16]}...: {outcome}")
                    outcome = DeliveryResult(
                        success=False,
                        platform=device.platform,
                        token=device.token,
                        attempt_count=1,
                        error=str(outcome) or outcome.__class__.__name__,
                    )

                batch.results.append(outcome)
                if outcome.success:
                    batch.successful += 1
                else:
                    batch.failed += 1

                if on_result is not None:
                    await on_result(outcome)

        logger.info(f"Batch notification complete: {batch.successful} successful, {batch.failed} failed")
        return batch

    async def shutdown(self):
        """Release channel connections."""
        for platform, channel in list(self._channels.items()):
            try:
                await channel.close()
            except Exception as e:
                logger.error(f"Error closing {platform} push channel: {e}")
        if not self._channels_injected:
            self._channels.clear()
        self.initialized = False

    def status(self) -> Dict[str, Any]:
        """Channel configuration for health reporting."""
        return {
            "initialized": self.initialized,
            "apns": "configured" if "ios" in self._channels else "not configured",
            "fcm": "configured" if "android" in self._channels else "not configured",
            "log_only": self.log_only,
        }
