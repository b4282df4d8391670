"""Payload validation and sanitization.

Validation collects every problem with a payload before rejecting it, so
clients get an itemized list instead of fixing one field per round trip.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..config import Settings, fcm_private_key
from ..database import utcnow
from ..errors import ValidationError
from ..schemas.notification import NotifyRequest

PLATFORMS = ("ios", "android")
NOTIFICATION_TYPES = ("push", "in-app")
ALL_USERS = "all"

MIN_TOKEN_LENGTH = 10
MAX_TOKEN_LENGTH = 1000
MAX_USER_ID_LENGTH = 255
MAX_TITLE_LENGTH = 200
MAX_MESSAGE_LENGTH = 2000


@dataclass
class NotificationPayload:
    """Sanitized notification ready for dispatch."""
    type: str
    users: List[str]
    title: Optional[str] = None
    message: Optional[str] = None
    actions: List[Dict[str, Any]] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)
    timestamp: str = ""

    @property
    def targets_all(self) -> bool:
        return ALL_USERS in self.users


@dataclass
class PushConfigStatus:
    """Which push channels have a complete configuration."""
    has_apns: bool = False
    has_fcm: bool = False
    errors: List[str] = field(default_factory=list)


def device_errors(token: Any, platform: Any, user_id: Any) -> List[str]:
    """Return every problem with a device registration."""
    errors = []

    if not token or not isinstance(token, str):
        errors.append("Token is required and must be a string")
    if not platform or not isinstance(platform, str):
        errors.append("Platform is required and must be a string")
    if not user_id or not isinstance(user_id, str):
        errors.append("UserId is required and must be a string")

    if isinstance(platform, str) and platform and platform not in PLATFORMS:
        errors.append('Platform must be "ios" or "android"')

    if isinstance(token, str) and token:
        if len(token) < MIN_TOKEN_LENGTH:
            errors.append(f"Token appears to be too short (minimum {MIN_TOKEN_LENGTH} characters)")
        if len(token) > MAX_TOKEN_LENGTH:
            errors.append(f"Token appears to be too long (maximum {MAX_TOKEN_LENGTH} characters)")

    if isinstance(user_id, str) and len(user_id) > MAX_USER_ID_LENGTH:
        errors.append(f"UserId must be {MAX_USER_ID_LENGTH} characters or less")

    return errors


def validate_device(token: Any, platform: Any, user_id: Any):
    """Raise ValidationError if the registration is not acceptable."""
    errors = device_errors(token, platform, user_id)
    if errors:
        raise ValidationError(errors)


def notification_errors(request: NotifyRequest) -> List[str]:
    """Return every problem with a notification request."""
    errors = []
    # Checked as sanitize_notification will send them
    title = (request.title or "").strip()
    message = (request.message or "").strip()

    if not title and not message:
        errors.append("Either title or message is required")

    if len(title) > MAX_TITLE_LENGTH:
        errors.append(f"Title must be {MAX_TITLE_LENGTH} characters or less")
    if len(message) > MAX_MESSAGE_LENGTH:
        errors.append(f"Message must be {MAX_MESSAGE_LENGTH} characters or less")

    if request.type is not None and request.type not in NOTIFICATION_TYPES:
        errors.append('Type must be "push" or "in-app"')

    if request.users is not None:
        if len(request.users) == 0:
            errors.append("Users array cannot be empty")
        elif not any(user.strip() for user in request.users):
            errors.append("Users array must contain at least one non-blank user ID")

    if request.type == "in-app":
        if not title:
            errors.append("Title is required for in-app messages")
        if not message:
            errors.append("Message is required for in-app messages")

    return errors


def validate_notification(request: NotifyRequest):
    """Raise ValidationError if the notification is not acceptable."""
    errors = notification_errors(request)
    if errors:
        raise ValidationError(errors)


def sanitize_notification(request: NotifyRequest) -> NotificationPayload:
    """Normalize a validated request for dispatch.

    Trims and truncates text, drops blank user ids, defaults the type to
    push and the target to every user.
    """
    title = (request.title or "").strip()[:MAX_TITLE_LENGTH] or None
    message = (request.message or "").strip()[:MAX_MESSAGE_LENGTH] or None

    if request.users is not None:
        users = [user.strip() for user in request.users if user.strip()]
    else:
        users = [ALL_USERS]

    return NotificationPayload(
        type=request.type if request.type in NOTIFICATION_TYPES else "push",
        users=users,
        title=title,
        message=message,
        actions=[action.model_dump(exclude_none=True) for action in request.actions or []],
        data=dict(request.data or {}),
        timestamp=utcnow().isoformat() + "Z",
    )


def check_push_config(config: Settings) -> PushConfigStatus:
    """Validate push channel settings.

    A channel counts as configured only when every one of its settings is
    present; a partial configuration is reported as an error.
    """
    status = PushConfigStatus()

    apns = {
        "APNS_KEY_PATH": config.apns_key_path,
        "APNS_KEY_ID": config.apns_key_id,
        "APNS_TEAM_ID": config.apns_team_id,
        "APNS_BUNDLE_ID": config.apns_bundle_id,
    }
    if any(apns.values()):
        missing = [name for name, value in apns.items() if not value]
        status.errors.extend(f"{name} is required when APNs is configured" for name in missing)
        status.has_apns = not missing

    fcm = {
        "FCM_PROJECT_ID": config.fcm_project_id,
        "FCM_PRIVATE_KEY": fcm_private_key(config),
        "FCM_CLIENT_EMAIL": config.fcm_client_email,
    }
    if any(fcm.values()):
        missing = [name for name, value in fcm.items() if not value]
        status.errors.extend(f"{name} is required when FCM is configured" for name in missing)
        status.has_fcm = not missing

    return status


def format_validation_errors(errors: List[dict]) -> List[str]:
    """Flatten pydantic error dicts into readable messages."""
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        text = error.get("msg", "Invalid value")
        messages.append(f"{location}: {text}" if location else text)
    return messages
