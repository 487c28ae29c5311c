import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import togglsync.models  # noqa: F401
from togglsync.api.deps import get_job_context
from togglsync.auth import get_current_active_user
from togglsync.config import Settings
from togglsync.database import Base, get_db
from togglsync.main import app
from togglsync.schemas.auth import User
from togglsync.services.jobs import JobContext

from fakes import FakeCalendar, FakeNotifier, FakeTogglConnector


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        secret_key="test-secret",
        user_email="tester@example.com",
        time_zone="UTC",
        watermark_scope="user",
        calendar_ids={"Work": "cal-work", "Private": "cal-private"},
        created_with="togglsync-tests",
        record_table_name_template="Toggl_Record_{{year}}_{{userName}}",
    )


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory) -> Session:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def toggl() -> FakeTogglConnector:
    return FakeTogglConnector()


@pytest.fixture
def calendar() -> FakeCalendar:
    return FakeCalendar()


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def ctx(db, settings, toggl, calendar, notifier) -> JobContext:
    return JobContext(db, settings, toggl, calendar, notifier)


@pytest.fixture
def client(session_factory) -> TestClient:
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def api_client(session_factory, settings, toggl, calendar, notifier) -> TestClient:
    """Client with an in-memory database, fake connectors and an authenticated admin."""
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    async def override_get_job_context():
        session = session_factory()
        try:
            yield JobContext(session, settings, toggl, calendar, notifier)
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_job_context] = override_get_job_context
    app.dependency_overrides[get_current_active_user] = lambda: User(username="admin", disabled=False)
    yield TestClient(app)
    app.dependency_overrides.clear()
