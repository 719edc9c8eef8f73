import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from core.auth import current_active_user
from db.database import Base, get_async_session, load_models
from main import app
from tests.factories import make_user


@pytest_asyncio.fixture
async def engine(tmp_path):
    """A fresh SQLite database file per test."""
    load_models()
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'cafe_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_maker):
    async with session_maker() as session:
        yield session


@pytest_asyncio.fixture
async def client(session_maker):
    """HTTP client against the app with the test database wired in."""
    async def override_get_async_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def act_as():
    """Authenticate subsequent requests as the given user."""
    def _act_as(user):
        app.dependency_overrides[current_active_user] = lambda: user
        return user

    yield _act_as
    app.dependency_overrides.pop(current_active_user, None)


@pytest_asyncio.fixture
async def admin(db):
    return await make_user(db, role="admin")


@pytest_asyncio.fixture
async def employee(db):
    return await make_user(db, role="employee")


@pytest_asyncio.fixture
async def delivery_person(db):
    return await make_user(db, role="delivery")


@pytest_asyncio.fixture
async def customer(db):
    return await make_user(db, role="customer")
