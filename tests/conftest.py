import pytest
from fastapi.testclient import TestClient

from cleaning_api.config import Settings, get_settings
from cleaning_api.database import get_database
from cleaning_api.main import app
from cleaning_api.notification import NotificationDispatcher, get_dispatcher

from .support import FakeDatabase, FakeEmailTransport, FakeSmsTransport

ADMIN_PHONE = "+15550001111"
ADMIN_EMAIL = "owner@cleaning.test"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        JWT_SECRET="test-secret",
        ADMIN_PHONE_NUMBER=ADMIN_PHONE,
        ADMIN_EMAIL=ADMIN_EMAIL,
        SMS_NOTIFICATIONS_ENABLED=True,
        EMAIL_NOTIFICATIONS_ENABLED=False,
        NOTIFICATION_TIMEOUT_SECONDS=0.5,
        BUSINESS_TIMEZONE="UTC",
    )


@pytest.fixture
def fake_db():
    return FakeDatabase()


@pytest.fixture
def sms_transport():
    return FakeSmsTransport()


@pytest.fixture
def email_transport():
    return FakeEmailTransport()


@pytest.fixture
def dispatcher(settings, sms_transport, email_transport):
    return NotificationDispatcher(settings, sms_transport=sms_transport, email_transport=email_transport)


@pytest.fixture
def client(settings, fake_db, dispatcher):
    async def override_get_database():
        return fake_db

    app.dependency_overrides[get_database] = override_get_database
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    # Not used as a context manager so startup never reaches a real MongoDB.
    yield TestClient(app)
    app.dependency_overrides.clear()
