"""Push channels: APNs for iOS (aioapns) and FCM for Android (firebase-admin).

Each channel maps the structured error codes of its gateway onto
RETRYABLE or NON_RETRYABLE through a static table. Codes missing from the
table are treated as retryable.
"""
import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional, TYPE_CHECKING

import firebase_admin
from aioapns import APNs, NotificationRequest, PushType
from firebase_admin import credentials, messaging
from firebase_admin import exceptions as firebase_exceptions

from ..errors import DeliveryError, NonRetryableDeliveryError, RetryableDeliveryError

if TYPE_CHECKING:
    from .delivery_engine import PushPayload

logger = logging.getLogger(__name__)


class ErrorClass(str, Enum):
    RETRYABLE = "retryable"
    NON_RETRYABLE = "non_retryable"


# APNs "reason" values returned with non-200 responses
APNS_ERROR_CLASSES: Dict[str, ErrorClass] = {
    "BadDeviceToken": ErrorClass.NON_RETRYABLE,
    "DeviceTokenNotForTopic": ErrorClass.NON_RETRYABLE,
    "Unregistered": ErrorClass.NON_RETRYABLE,
    "MissingDeviceToken": ErrorClass.NON_RETRYABLE,
    "BadTopic": ErrorClass.NON_RETRYABLE,
    "TopicDisallowed": ErrorClass.NON_RETRYABLE,
    "PayloadTooLarge": ErrorClass.NON_RETRYABLE,
    "BadCertificateEnvironment": ErrorClass.NON_RETRYABLE,
    "TooManyRequests": ErrorClass.RETRYABLE,
    "TooManyProviderTokenUpdates": ErrorClass.RETRYABLE,
    "ExpiredProviderToken": ErrorClass.RETRYABLE,
    "IdleTimeout": ErrorClass.RETRYABLE,
    "InternalServerError": ErrorClass.RETRYABLE,
    "ServiceUnavailable": ErrorClass.RETRYABLE,
    "Shutdown": ErrorClass.RETRYABLE,
}

# FCM v1 error codes, plus the legacy HTTP API names still seen in the wild
FCM_ERROR_CLASSES: Dict[str, ErrorClass] = {
    "UNREGISTERED": ErrorClass.NON_RETRYABLE,
    "SENDER_ID_MISMATCH": ErrorClass.NON_RETRYABLE,
    "INVALID_ARGUMENT": ErrorClass.NON_RETRYABLE,
    "THIRD_PARTY_AUTH_ERROR": ErrorClass.NON_RETRYABLE,
    "NOT_FOUND": ErrorClass.NON_RETRYABLE,
    "NotRegistered": ErrorClass.NON_RETRYABLE,
    "InvalidRegistration": ErrorClass.NON_RETRYABLE,
    "MismatchSenderId": ErrorClass.NON_RETRYABLE,
    "QUOTA_EXCEEDED": ErrorClass.RETRYABLE,
    "RESOURCE_EXHAUSTED": ErrorClass.RETRYABLE,
    "UNAVAILABLE": ErrorClass.RETRYABLE,
    "INTERNAL": ErrorClass.RETRYABLE,
    "DEADLINE_EXCEEDED": ErrorClass.RETRYABLE,
}

# firebase-admin raises dedicated classes for FCM-specific codes
_FCM_EXCEPTION_CODES = (
    (messaging.UnregisteredError, "UNREGISTERED"),
    (messaging.SenderIdMismatchError, "SENDER_ID_MISMATCH"),
    (messaging.QuotaExceededError, "QUOTA_EXCEEDED"),
    (messaging.ThirdPartyAuthError, "THIRD_PARTY_AUTH_ERROR"),
)


def classify(table: Dict[str, ErrorClass], code: Optional[str]) -> ErrorClass:
    """Look up an error code, defaulting to retryable."""
    return table.get(code or "", ErrorClass.RETRYABLE)


class PushChannel:
    """A downstream push gateway."""

    name = "push"
    platform = ""
    error_classes: Dict[str, ErrorClass] = {}

    async def send(self, token: str, payload: "PushPayload") -> str:
        """Deliver to one token and return the gateway's message id.

        Raises RetryableDeliveryError or NonRetryableDeliveryError.
        """
        raise NotImplementedError

    async def close(self):
        """Release gateway connections."""

    def error_for(self, code: Optional[str], description: str) -> DeliveryError:
        """Build the delivery error matching the code's classification."""
        message = f"{self.name} delivery failed: {description}"
        if classify(self.error_classes, code) is ErrorClass.NON_RETRYABLE:
            return NonRetryableDeliveryError(message, code=code)
        return RetryableDeliveryError(message, code=code)


class APNsChannel(PushChannel):
    """Apple Push Notification service via token-based auth."""

    name = "APNs"
    platform = "ios"
    error_classes = APNS_ERROR_CLASSES

    def __init__(self, key_path: str, key_id: str, team_id: str, bundle_id: str, production: bool = False):
        self._client: Optional[APNs] = APNs(
            key=key_path,
            key_id=key_id,
            team_id=team_id,
            topic=bundle_id,
            use_sandbox=not production,
        )
        logger.info(f"APNs client configured ({'production' if production else 'sandbox'} mode)")

    @staticmethod
    def build_message(payload: "PushPayload") -> Dict[str, Any]:
        """APNs JSON body for a payload."""
        alert = {}
        if payload.title:
            alert["title"] = payload.title
        if payload.message:
            alert["body"] = payload.message

        message: Dict[str, Any] = {"aps": {"alert": alert, "sound": "default", "badge": 1}}
        if payload.data:
            message.update(payload.data)
        if payload.actions:
            message["actions"] = payload.actions
        return message

    async def send(self, token: str, payload: "PushPayload") -> str:
        if self._client is None:
            raise RetryableDeliveryError("APNs client has been shut down")

        request = NotificationRequest(
            device_token=token,
            message=self.build_message(payload),
            push_type=PushType.ALERT,
        )
        try:
            response = await self._client.send_notification(request)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise RetryableDeliveryError(f"APNs connection error: {e}") from e

        if not response.is_successful:
            raise self.error_for(response.description, f"{response.description} (status {response.status})")
        return response.notification_id

    async def close(self):
        self._client = None
        logger.info("APNs client shut down")


class FCMChannel(PushChannel):
    """Firebase Cloud Messaging with a service account."""

    name = "FCM"
    platform = "android"
    error_classes = FCM_ERROR_CLASSES

    def __init__(self, project_id: str, private_key: str, client_email: str):
        certificate = credentials.Certificate({
            "type": "service_account",
            "project_id": project_id,
            "private_key": private_key,
            "client_email": client_email,
            "token_uri": "https://oauth2.googleapis.com/token",
        })
        # Named app so several engines (or tests) can coexist in one process
        self._app: Optional[firebase_admin.App] = firebase_admin.initialize_app(
            certificate,
            {"projectId": project_id},
            name=f"notifylight-{id(self)}",
        )
        logger.info("FCM initialized successfully")

    @staticmethod
    def build_message(token: str, payload: "PushPayload") -> messaging.Message:
        """FCM message for a payload; data values must be strings."""
        data = {key: str(value) for key, value in payload.data.items()}
        if payload.actions:
            data["actions"] = ",".join(action["id"] for action in payload.actions)

        return messaging.Message(
            token=token,
            notification=messaging.Notification(title=payload.title, body=payload.message),
            data=data or None,
            android=messaging.AndroidConfig(
                priority="high",
                notification=messaging.AndroidNotification(channel_id="default"),
            ),
            apns=messaging.APNSConfig(
                payload=messaging.APNSPayload(aps=messaging.Aps(sound="default")),
            ),
        )

    @staticmethod
    def error_code(error: firebase_exceptions.FirebaseError) -> str:
        for exc_type, code in _FCM_EXCEPTION_CODES:
            if isinstance(error, exc_type):
                return code
        return error.code

    async def send(self, token: str, payload: "PushPayload") -> str:
        if self._app is None:
            raise RetryableDeliveryError("FCM app has been shut down")

        message = self.build_message(token, payload)
        try:
            # firebase-admin is synchronous
            return await asyncio.to_thread(messaging.send, message, app=self._app)
        except firebase_exceptions.FirebaseError as e:
            raise self.error_for(self.error_code(e), str(e)) from e
        except ValueError as e:
            # Raised locally for malformed tokens or messages
            raise NonRetryableDeliveryError(f"FCM rejected message: {e}", code="INVALID_ARGUMENT") from e
        except OSError as e:
            raise RetryableDeliveryError(f"FCM transport error: {e}") from e

    async def close(self):
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
            logger.info("FCM app shut down")
