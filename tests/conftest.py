import pytest
import pytest_asyncio
from datetime import datetime, timezone
from uuid import uuid4

from freezegun import freeze_time
from httpx import AsyncClient, ASGITransport
from sqlalchemy.pool import StaticPool

from wealthboard.api import dependencies
from wealthboard.core.database import get_db_engine, get_session_factory
from wealthboard.infrastructure.db.base import Base
from wealthboard.infrastructure.db.uow import UnitOfWork
from wealthboard.main import app
from wealthboard.services.goal_progress import GoalProgressCoordinator, InMemoryLastWriteStore
from wealthboard.services.service import FinanceService

@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """
    In-memory SQLite. Таблицы создаются заново для каждого теста.
    """
    engine = get_db_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()

@pytest.fixture
def session_maker(test_engine):
    return get_session_factory(test_engine)

@pytest_asyncio.fixture(scope="function")
async def db_session(session_maker):
    async with session_maker() as session:
        yield session
        await session.rollback()

@pytest.fixture
def user_id():
    return uuid4()

@pytest.fixture
def last_write_store():
    return InMemoryLastWriteStore()

@pytest.fixture
def coordinator(last_write_store):
    return GoalProgressCoordinator(last_write_store)

@pytest.fixture
def service(session_maker, coordinator):
    return FinanceService(UnitOfWork(session_maker), coordinator)

@pytest_asyncio.fixture(scope="function")
async def client(service):
    """
    Клиент к приложению без lifespan: сервис подменяется через dependency_overrides.
    """
    app.dependency_overrides[dependencies.get_finance_service] = lambda: service
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides = {}

@pytest.fixture
def freeze_utc_now():
    with freeze_time(datetime(2025, 10, 29, 12, 0, tzinfo=timezone.utc)) as frozen:
        yield frozen
