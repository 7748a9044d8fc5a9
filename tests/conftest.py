"""
Pytest configuration and fixtures.
"""

import pytest
from fastapi.testclient import TestClient

from appointments.core.config import Settings
from appointments.core.exceptions import IntegrationError
from appointments.main import app
from appointments.services.container import build_services
from appointments.services.db_service import InMemoryBookingStore
from appointments.services.notification_service import NotificationSink


class RecordingSink(NotificationSink):
    def __init__(self, name: str = "recording"):
        self.name = name
        self.delivered = []

    async def deliver(self, booking):
        self.delivered.append(booking)


class FailingSink(NotificationSink):
    def __init__(self, name: str = "calendar"):
        self.name = name

    async def deliver(self, booking):
        raise IntegrationError(self.name, "Google API Error: 500")


@pytest.fixture
def test_settings():
    return Settings(
        _env_file=None,
        BUSINESS_TIMEZONE="Asia/Kolkata",
        NOTIFICATION_SINKS="realtime",
        SUPABASE_URL="",
        SUPABASE_KEY="",
        SINK_TIMEOUT_SECONDS=1.0,
    )


@pytest.fixture
def store():
    return InMemoryBookingStore(retention_days=30)


@pytest.fixture
def recording_sink():
    return RecordingSink()


@pytest.fixture
def services(test_settings, store, recording_sink):
    return build_services(test_settings, store=store, sinks=[recording_sink])


@pytest.fixture
def client(services):
    with TestClient(app) as c:
        app.state.services = services
        yield c
