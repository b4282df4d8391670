"""Pytest configuration and shared fixtures."""
import asyncio
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest
import pytest_asyncio

from notifylight.config import Settings
from notifylight.database import create_engine, create_session_factory, init_db, close_db
from notifylight.errors import NonRetryableDeliveryError, RetryableDeliveryError
from notifylight.services import (
    DeliveryEngine,
    DeliveryLedger,
    DeviceRegistry,
    MessageStore,
    NotificationOrchestrator,
)
from notifylight.services.push_channels import PushChannel

API_KEY = "test-api-key"


class FakeChannel(PushChannel):
    """Push channel that records calls and fails on request.

    ``outcomes`` maps a token to an exception raised on every send to it.
    """

    name = "Fake"

    def __init__(self, outcomes=None, delay: float = 0.0):
        self.outcomes = dict(outcomes or {})
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def send(self, token, payload):
        self.calls.append(token)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            error = self.outcomes.get(token)
            if error is not None:
                raise error
            return f"fake-{len(self.calls)}"
        finally:
            self.in_flight -= 1

    async def close(self):
        self.closed = True


def retryable(code="ServiceUnavailable"):
    return RetryableDeliveryError(f"Fake delivery failed: {code}", code=code)


def permanent(code="BadDeviceToken"):
    return NonRetryableDeliveryError(f"Fake delivery failed: {code}", code=code)


def make_device(token, platform="ios", user_id="u1"):
    return SimpleNamespace(token=token, platform=platform, user_id=user_id)


class RecordingSleep:
    """Replacement for asyncio.sleep that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def settings(tmp_path):
    """Settings pointing at a throwaway SQLite file with no push channels."""
    return Settings(
        _env_file=None,
        api_key=API_KEY,
        data_path=str(tmp_path),
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        apns_key_path=None,
        apns_key_id=None,
        apns_team_id=None,
        apns_bundle_id=None,
        fcm_project_id=None,
        fcm_private_key=None,
        fcm_client_email=None,
        rate_limit_per_minute=1000,
        notify_rate_limit_per_minute=1000,
    )


@pytest.fixture
def clock(monkeypatch):
    """Deterministic, strictly increasing timestamps for stored rows."""
    state = {"now": datetime(2026, 1, 1, 12, 0, 0)}

    def tick():
        state["now"] += timedelta(seconds=1)
        return state["now"]

    for module in (
        "notifylight.services.device_registry",
        "notifylight.services.message_store",
        "notifylight.services.delivery_ledger",
    ):
        monkeypatch.setattr(f"{module}.utcnow", tick)
    return state


@pytest_asyncio.fixture
async def session_factory(settings):
    engine = create_engine(settings)
    await init_db(engine, settings)
    yield create_session_factory(engine)
    await close_db(engine)


@pytest.fixture
def registry(session_factory):
    return DeviceRegistry(session_factory)


@pytest.fixture
def message_store(session_factory):
    return MessageStore(session_factory)


@pytest.fixture
def ledger(session_factory):
    return DeliveryLedger(session_factory)


@pytest.fixture
def sleeper():
    return RecordingSleep()


@pytest_asyncio.fixture
async def log_only_engine(settings):
    engine = DeliveryEngine(settings)
    await engine.initialize()
    yield engine
    await engine.shutdown()


@pytest.fixture
def orchestrator(registry, message_store, log_only_engine, ledger):
    return NotificationOrchestrator(registry, message_store, log_only_engine, ledger)
