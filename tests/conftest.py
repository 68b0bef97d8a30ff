"""Shared fixtures: an in-memory database wired into the FastAPI app."""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from testdesk_core.api.main import app
from testdesk_core.database import get_db
from testdesk_core.models import Base


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def api(session_factory):
    """The app with ``get_db`` pointed at the in-memory database."""

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api):
    with TestClient(api) as test_client:
        yield test_client


@pytest.fixture
def alice():
    return {"X-User-Id": "alice"}


@pytest.fixture
def bob():
    return {"X-User-Id": "bob"}
