import os

# Set testing environment before the application modules read their settings
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

import pytest
from fastapi.testclient import TestClient

from carebook.core.database import Base, engine, SessionLocal
from carebook.core.exceptions import UpstreamUnavailableError
from carebook.core.pubsub import DispatchOutcome
from carebook.core.security import UserRole
from carebook.api.deps import get_identity_client, get_notification_channel
from carebook.schemas.auth import Identity
from carebook.booking_main import app as booking_app
from carebook.notification_main import app as notification_app
import carebook.models  # noqa: F401 - registers every table on Base


def make_identity(user_id, role, fullname=None):
    return Identity(
        id=user_id,
        fullname=fullname or user_id.title(),
        email=f"{user_id}@example.com",
        role=role,
    )


def token_for(user_id):
    return f"token-{user_id}"


def auth_headers(user_id):
    return {"Authorization": f"Bearer {token_for(user_id)}"}


class FakeIdentityClient:
    """In-memory Credential Store keyed by ``token-<user id>`` tokens."""

    def __init__(self, identities):
        self.identities = {identity.id: identity for identity in identities}
        self.unavailable = False

    async def get_identity(self, token):
        if self.unavailable:
            raise UpstreamUnavailableError("Auth service unavailable")
        if not token.startswith("token-"):
            return None
        return self.identities.get(token[len("token-"):])

    async def get_doctor(self, doctor_id, token):
        if self.unavailable:
            raise UpstreamUnavailableError("Auth service unavailable")
        return self.identities.get(doctor_id)

    async def aclose(self):
        pass


class RecordingChannel:
    """Notification channel that keeps published events in a list."""

    def __init__(self):
        self.events = []
        self.fail = False

    async def publish(self, event):
        if self.fail:
            return DispatchOutcome.ENQUEUE_FAILED
        self.events.append(event)
        return DispatchOutcome.ENQUEUED


@pytest.fixture(scope="function")
def test_db():
    # Create tables
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(test_db):
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def identity_client():
    return FakeIdentityClient([
        make_identity("patient-1", UserRole.PATIENT, "Alice Patient"),
        make_identity("patient-2", UserRole.PATIENT, "Bob Patient"),
        make_identity("doctor-1", UserRole.DOCTOR, "Carol Doctor"),
        make_identity("doctor-2", UserRole.DOCTOR, "Dan Doctor"),
        make_identity("admin-1", UserRole.ADMIN, "Eve Admin"),
    ])


@pytest.fixture
def channel():
    return RecordingChannel()


@pytest.fixture
def booking_client(test_db, identity_client, channel):
    booking_app.dependency_overrides[get_identity_client] = lambda: identity_client
    booking_app.dependency_overrides[get_notification_channel] = lambda: channel
    yield TestClient(booking_app, base_url="http://testserver")
    booking_app.dependency_overrides.clear()


@pytest.fixture
def notification_client(test_db, identity_client):
    notification_app.dependency_overrides[get_identity_client] = lambda: identity_client
    yield TestClient(notification_app, base_url="http://testserver")
    notification_app.dependency_overrides.clear()
