"""Shared fixtures: a throwaway SQLite database per test and an HTTP client bound to it."""

import pytest
from httpx import ASGITransport, AsyncClient

from vanpool_booking.database import create_database_engine, create_schema, create_session_factory, get_db
from vanpool_booking.main import app
from vanpool_booking.services import EventService, QueueService, VanService


@pytest.fixture
async def engine(tmp_path):
    engine = create_database_engine(f"sqlite+aiosqlite:///{tmp_path}/vanpool.db")
    await create_schema(engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
async def session(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def queue_service(session):
    return QueueService(session)


@pytest.fixture
def van_service(session):
    return VanService(session)


@pytest.fixture
def event_service(session):
    return EventService(session)


@pytest.fixture
async def client(session_factory):
    """HTTP client whose requests use the test database."""

    async def override_get_db():
        async with session_factory() as db:
            try:
                yield db
                await db.commit()
            except Exception:
                await db.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http_client:
        yield http_client
    app.dependency_overrides.clear()
