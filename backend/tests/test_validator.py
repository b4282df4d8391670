"""Tests for payload validation, sanitization and push config checks."""
import pytest

from notifylight.config import Settings
from notifylight.errors import ValidationError
from notifylight.schemas import NotifyRequest
from notifylight.services.validator import (
    check_push_config,
    device_errors,
    format_validation_errors,
    notification_errors,
    sanitize_notification,
    validate_device,
    validate_notification,
)


class TestDeviceValidation:
    """Device registration payloads."""

    def test_valid_device(self):
        assert device_errors("a" * 64, "ios", "user-1") == []

    def test_missing_fields_are_all_reported(self):
        errors = device_errors(None, None, None)
        assert "Token is required and must be a string" in errors
        assert "Platform is required and must be a string" in errors
        assert "UserId is required and must be a string" in errors

    def test_unknown_platform(self):
        assert device_errors("a" * 64, "windows", "u1") == ['Platform must be "ios" or "android"']

    def test_token_length_bounds(self):
        assert "too short" in device_errors("short", "ios", "u1")[0]
        assert "too long" in device_errors("x" * 1001, "ios", "u1")[0]
        assert device_errors("x" * 10, "android", "u1") == []

    def test_user_id_length(self):
        assert device_errors("a" * 64, "ios", "u" * 256) == ["UserId must be 255 characters or less"]

    def test_validate_device_raises_itemized(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_device("short", "windows", "")
        assert len(exc_info.value.errors) == 3


class TestNotificationValidation:
    """Notification payloads."""

    def test_title_or_message_required(self):
        errors = notification_errors(NotifyRequest(users=["u1"]))
        assert errors == ["Either title or message is required"]

    def test_message_only_push_is_valid(self):
        assert notification_errors(NotifyRequest(message="Hello")) == []

    def test_in_app_requires_title_and_message(self):
        errors = notification_errors(NotifyRequest(type="in-app", message="Hello"))
        assert errors == ["Title is required for in-app messages"]

    def test_unknown_type(self):
        errors = notification_errors(NotifyRequest(title="Hi", type="sms"))
        assert errors == ['Type must be "push" or "in-app"']

    def test_length_limits(self):
        errors = notification_errors(NotifyRequest(title="t" * 201, message="m" * 2001))
        assert "Title must be 200 characters or less" in errors
        assert "Message must be 2000 characters or less" in errors

    def test_blank_text_counts_as_missing(self):
        errors = notification_errors(NotifyRequest(title="   ", message="\t"))
        assert errors == ["Either title or message is required"]

        errors = notification_errors(NotifyRequest(type="in-app", title="   ", message="hi", users=["u1"]))
        assert errors == ["Title is required for in-app messages"]

    def test_blank_title_with_message_is_dropped(self):
        payload = sanitize_notification(NotifyRequest(title="  ", message="Hello"))
        assert payload.title is None
        assert payload.message == "Hello"

    def test_empty_and_blank_users(self):
        assert notification_errors(NotifyRequest(title="Hi", users=[])) == ["Users array cannot be empty"]
        errors = notification_errors(NotifyRequest(title="Hi", users=["  ", ""]))
        assert errors == ["Users array must contain at least one non-blank user ID"]

    def test_validate_notification_raises(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_notification(NotifyRequest(type="in-app"))
        assert "Either title or message is required" in exc_info.value.errors


class TestSanitize:
    """Normalization of accepted payloads."""

    def test_defaults(self):
        payload = sanitize_notification(NotifyRequest(title="Hi"))
        assert payload.type == "push"
        assert payload.users == ["all"]
        assert payload.targets_all
        assert payload.timestamp.endswith("Z")

    def test_trims_text_and_users(self):
        payload = sanitize_notification(
            NotifyRequest(title="  Hi  ", message=" Hello ", type="in-app", users=[" u1 ", "", "u2"])
        )
        assert payload.title == "Hi"
        assert payload.message == "Hello"
        assert payload.type == "in-app"
        assert payload.users == ["u1", "u2"]

    def test_actions_and_data_pass_through(self):
        payload = sanitize_notification(NotifyRequest(
            title="Offer",
            actions=[{"id": "claim", "title": "Claim Offer", "style": "primary"}, {"id": "no", "title": "No"}],
            data={"offer_code": "SAVE50"},
        ))
        assert payload.actions == [
            {"id": "claim", "title": "Claim Offer", "style": "primary"},
            {"id": "no", "title": "No"},
        ]
        assert payload.data == {"offer_code": "SAVE50"}


class TestPushConfig:
    """Channel configuration detection."""

    def _settings(self, **overrides):
        values = dict(
            _env_file=None,
            apns_key_path=None, apns_key_id=None, apns_team_id=None, apns_bundle_id=None,
            fcm_project_id=None, fcm_private_key=None, fcm_client_email=None,
        )
        values.update(overrides)
        return Settings(**values)

    def test_nothing_configured(self):
        status = check_push_config(self._settings())
        assert not status.has_apns
        assert not status.has_fcm
        assert status.errors == []

    def test_complete_apns(self):
        status = check_push_config(self._settings(
            apns_key_path="/keys/AuthKey.p8", apns_key_id="KEY", apns_team_id="TEAM", apns_bundle_id="com.example",
        ))
        assert status.has_apns
        assert not status.has_fcm

    def test_partial_fcm_reports_missing(self):
        status = check_push_config(self._settings(fcm_project_id="proj"))
        assert not status.has_fcm
        assert "FCM_PRIVATE_KEY is required when FCM is configured" in status.errors
        assert "FCM_CLIENT_EMAIL is required when FCM is configured" in status.errors


def test_format_validation_errors():
    errors = [
        {"loc": ("body", "title"), "msg": "Input should be a valid string"},
        {"loc": ("body",), "msg": "Field required"},
    ]
    assert format_validation_errors(errors) == [
        "title: Input should be a valid string",
        "Field required",
    ]
