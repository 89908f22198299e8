"""Shared test fixtures."""

from collections.abc import Callable

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel
from sqlmodel.pool import StaticPool

from attendance.core.config import settings
from attendance.core.database import build_engine, create_db_and_tables, get_session
from attendance.main import app
from attendance.models import Event
from attendance.registry.service import AttendanceRegistry


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = build_engine("sqlite://", poolclass=StaticPool)
    create_db_and_tables(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Create a test client with the test database session."""

    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="admin_client")
def admin_client_fixture(client: TestClient, monkeypatch):
    """Test client that sends a valid admin token."""
    monkeypatch.setattr(settings, "admin_token", "test-admin-token")
    client.headers["X-Admin-Token"] = "test-admin-token"
    return client


@pytest.fixture(name="registry")
def registry_fixture(session: Session) -> AttendanceRegistry:
    """Registry bound to the test session, without retry delays."""
    return AttendanceRegistry(session, retry_backoff=0)


@pytest.fixture(name="make_event")
def make_event_fixture(session: Session) -> Callable[..., Event]:
    """Factory for published events with attendance enabled."""

    def make_event(**overrides) -> Event:
        fields = {
            "title": "Test Event",
            "published": True,
            "attendance_enabled": True,
        }
        fields.update(overrides)
        event = Event(**fields)
        session.add(event)
        session.commit()
        session.refresh(event)
        return event

    return make_event


@pytest.fixture(name="sample_event")
def sample_event_fixture(make_event) -> Event:
    """Capacity 2 with an unlimited waitlist."""
    return make_event(title="Info Session", capacity=2, waitlist_enabled=True)
