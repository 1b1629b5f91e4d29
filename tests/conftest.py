import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

from popcorn_dashboard.config import Settings
from popcorn_dashboard.dependencies import get_ingestor, get_settings
from popcorn_dashboard.ingest import OrderIngestor
from popcorn_dashboard.main import app
from popcorn_dashboard.utils.db import get_session, init_db


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def settings():
    return Settings(typeform_api_key="tf-test-key", database_url="sqlite://")


@pytest.fixture
def typeform_items():
    """Responses the fake Typeform serves; tests append to this list."""
    return []


@pytest.fixture
def typeform_requests():
    return []


@pytest.fixture
def transport(typeform_items, typeform_requests):
    def handler(request: httpx.Request) -> httpx.Response:
        typeform_requests.append(request)
        return httpx.Response(
            200,
            json={"items": typeform_items, "total_items": len(typeform_items), "page_count": 1},
        )

    return httpx.MockTransport(handler)


@pytest.fixture
def ingestor(session, settings, transport):
    return OrderIngestor(session=session, settings=settings, transport=transport)


@pytest.fixture
def client(session, settings, ingestor):
    app.dependency_overrides[get_session] = lambda: session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_ingestor] = lambda: ingestor
    yield TestClient(app)
    app.dependency_overrides.clear()
