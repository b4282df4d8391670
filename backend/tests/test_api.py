"""HTTP API tests through FastAPI's TestClient."""
import pytest
from fastapi.testclient import TestClient

from notifylight.main import create_app
from notifylight.services import DeliveryEngine

from conftest import API_KEY, FakeChannel, permanent

HEADERS = {"X-API-Key": API_KEY}
IOS_TOKEN = "ios-token-0000000001"
ANDROID_TOKEN = "android-token-000001"


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def register(client, token, platform, user_id):
    return client.post(
        "/register-device",
        json={"token": token, "platform": platform, "userId": user_id},
        headers=HEADERS,
    )


class TestAuthentication:
    """X-API-Key enforcement."""

    def test_missing_key(self, client):
        response = client.post("/notify", json={"title": "Hi"})
        assert response.status_code == 401
        assert response.json()["error"] == "API key missing"

    def test_wrong_key(self, client):
        response = client.get("/stats", headers={"X-API-Key": "nope"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid API key"

    def test_key_prefix_rejected(self, client):
        response = client.get("/stats", headers={"X-API-Key": API_KEY[:-1]})
        assert response.status_code == 401

    def test_health_is_public(self, client):
        response = client.get("/health")
        assert response.status_code == 200


class TestRegisterDevice:
    """POST /register-device"""

    def test_register(self, client):
        response = register(client, IOS_TOKEN, "ios", "u1")

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["device"]["platform"] == "ios"
        assert data["device"]["userId"] == "u1"

    def test_reregister_keeps_id(self, client):
        first = register(client, IOS_TOKEN, "ios", "u1").json()
        second = register(client, IOS_TOKEN, "ios", "u2").json()

        assert first["device"]["id"] == second["device"]["id"]
        assert second["device"]["userId"] == "u2"

    def test_invalid_payload(self, client):
        response = register(client, "short", "windows", "u1")

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Invalid payload"
        assert 'Platform must be "ios" or "android"' in data["errors"]


class TestNotify:
    """POST /notify and the delivery report."""

    def test_push_end_to_end(self, client):
        register(client, IOS_TOKEN, "ios", "u1")
        register(client, ANDROID_TOKEN, "android", "u2")

        response = client.post(
            "/notify",
            json={"title": "Hello", "message": "World", "type": "push", "users": ["u1"]},
            headers=HEADERS,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "Push notifications processed successfully"
        assert data["type"] == "push"
        assert data["results"] == {"total": 1, "successful": 1, "failed": 0, "deliveryRate": 100}

        report = client.get(f"/notifications/{data['notificationId']}/deliveries", headers=HEADERS).json()
        assert report["sent"] == 1
        assert report["failed"] == 0
        assert [(e["deviceToken"], e["status"]) for e in report["entries"]] == [(IOS_TOKEN, "sent")]

    def test_push_with_failing_device(self, settings):
        engine = DeliveryEngine(settings, channels={"ios": FakeChannel({IOS_TOKEN: permanent()})})
        with TestClient(create_app(settings, delivery_engine=engine)) as client:
            register(client, IOS_TOKEN, "ios", "u1")
            register(client, "ios-token-0000000002", "ios", "u1")

            data = client.post("/notify", json={"title": "Hi"}, headers=HEADERS).json()

            assert data["results"] == {"total": 2, "successful": 1, "failed": 1, "deliveryRate": 50}
            report = client.get(f"/notifications/{data['notificationId']}/deliveries", headers=HEADERS).json()
            failed = [e for e in report["entries"] if e["status"] == "failed"]
            assert [e["deviceToken"] for e in failed] == [IOS_TOKEN]
            assert "BadDeviceToken" in failed[0]["errorMessage"]

    def test_push_without_devices(self, client):
        response = client.post("/notify", json={"title": "Hi", "users": ["ghost"]}, headers=HEADERS)

        assert response.status_code == 404
        assert response.json()["error"] == "No devices found"

    def test_validation_errors(self, client):
        response = client.post("/notify", json={"type": "in-app", "users": []}, headers=HEADERS)

        assert response.status_code == 400
        errors = response.json()["errors"]
        assert "Either title or message is required" in errors
        assert "Users array cannot be empty" in errors

    def test_blank_in_app_title_rejected_before_dispatch(self, client):
        response = client.post(
            "/notify",
            json={"title": "   ", "message": "hi", "type": "in-app", "users": ["u1", "u2"]},
            headers=HEADERS,
        )

        assert response.status_code == 400
        assert response.json()["errors"] == ["Title is required for in-app messages"]
        assert client.get("/stats", headers=HEADERS).json()["messages"]["total"] == 0

    def test_blank_push_text_rejected_before_dispatch(self, client):
        register(client, IOS_TOKEN, "ios", "u1")

        response = client.post("/notify", json={"title": "   ", "users": ["u1"]}, headers=HEADERS)

        assert response.status_code == 400
        assert response.json()["errors"] == ["Either title or message is required"]

    def test_malformed_body(self, client):
        response = client.post("/notify", json={"title": "Hi", "users": "u1"}, headers=HEADERS)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid payload"

    def test_in_app(self, client):
        response = client.post(
            "/notify",
            json={"title": "Offer", "message": "50% off", "type": "in-app", "users": ["u1", "u2"]},
            headers=HEADERS,
        )

        data = response.json()
        assert data["message"] == "In-app messages processed successfully"
        assert data["results"] == {"total": 2, "successful": 2, "failed": 0, "deliveryRate": 100}


class TestMessages:
    """In-app polling endpoints."""

    def _send(self, client, title, user="u1"):
        client.post(
            "/notify",
            json={"title": title, "message": "Body", "type": "in-app", "users": [user]},
            headers=HEADERS,
        )

    def test_poll_and_read_once(self, client):
        self._send(client, "First")

        listing = client.get("/messages/u1", headers=HEADERS).json()
        assert listing["count"] == 1
        message = listing["messages"][0]
        assert message["title"] == "First"
        assert message["status"] == "active"

        first = client.post(f"/messages/{message['id']}/read", headers=HEADERS)
        assert first.status_code == 200
        assert first.json()["messageId"] == message["id"]

        second = client.post(f"/messages/{message['id']}/read", headers=HEADERS)
        assert second.status_code == 404
        assert second.json()["error"] == "Message not found"

        assert client.get("/messages/u1", headers=HEADERS).json()["count"] == 0

    def test_next_message(self, client):
        assert client.get("/messages/u1/next", headers=HEADERS).json()["message"] is None

        self._send(client, "First")
        self._send(client, "Second")

        data = client.get("/messages/u1/next", headers=HEADERS).json()
        assert data["userId"] == "u1"
        assert data["message"]["title"] == "First"


class TestStatus:
    """GET /health and GET /stats"""

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["uptime"].endswith("s")
        assert data["services"]["database"] == "connected"
        assert data["services"]["pushService"]["logOnly"] is True
        assert data["metrics"]["inAppMessages"] == {"active": 0, "read": 0, "total": 0}

    def test_stats(self, client):
        register(client, IOS_TOKEN, "ios", "u1")
        register(client, ANDROID_TOKEN, "android", "u1")

        data = client.get("/stats", headers=HEADERS).json()

        assert data["devices"] == {"total": 2, "ios": 1, "android": 1}
        assert data["messages"] == {"active": 0, "read": 0, "total": 0}


def test_notify_rate_limit(settings):
    settings.notify_rate_limit_per_minute = 2
    with TestClient(create_app(settings)) as client:
        body = {"title": "Hi", "type": "in-app", "message": "Hello", "users": ["u1"]}
        statuses = [client.post("/notify", json=body, headers=HEADERS).status_code for _ in range(3)]

        assert statuses == [200, 200, 429]
        # Other endpoints keep working
        assert client.get("/messages/u1", headers=HEADERS).status_code == 200


def test_unknown_endpoint(client):
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "Endpoint not found"
