import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, create_engine
from sqlmodel.pool import StaticPool

from database import create_db_and_tables, get_session
from main import app
from models import Metal
from routers.deps import get_today
from factories import TODAY


@pytest.fixture(name="engine")
def engine_fixture():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    create_db_and_tables(engine)
    return engine


@pytest.fixture(name="session")
def session_fixture(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture(name="client")
def client_fixture(session):
    def get_session_override():
        return session

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_today] = lambda: TODAY
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="platinum")
def platinum_fixture():
    return Metal(id="platinum", name="Platinum", symbol="Pt", color="zinc", display_order=3)
