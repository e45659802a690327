# tests/conftest.py
from typing import List, Optional

import pytest
from httpx import AsyncClient
from httpx._transports.asgi import ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from unittest.mock import AsyncMock, MagicMock

from rbac_api.core.db import Base
from rbac_api.core.db.seed import seed_defaults
from rbac_api.core.db.session import get_db
from rbac_api.main import app
from rbac_api.api.v1 import models  # noqa: F401
from rbac_api.api.v1.schemas.user import UserCreate
from rbac_api.api.v1.security.jwt import create_access_token
from rbac_api.api.v1.services.email import EmailService, get_email_service
from rbac_api.api.v1.services.user import UserService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
DEFAULT_PASSWORD = "secret123"


class OutboxEmailService(EmailService):
    """Collects sent messages instead of delivering them."""

    def __init__(self):
        self.messages = []

    async def send(self, message):
        self.messages.append(message)


@pytest.fixture
async def db_engine():
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(db_engine):
    AsyncSessionMaker = sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with AsyncSessionMaker() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def seeded_db(db_session):
    """Database with the default roles, permissions and templates."""
    await seed_defaults(db_session)
    return db_session


@pytest.fixture
def outbox():
    return OutboxEmailService()


@pytest.fixture
async def async_client(seeded_db, outbox):
    async def override_get_db():
        yield seeded_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_email_service] = lambda: outbox

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides = {}


@pytest.fixture
def make_user(seeded_db):
    async def _make_user(
        email: str = "user@example.com",
        roles: Optional[List[str]] = None,
        password: str = DEFAULT_PASSWORD,
        name: str = "Test User",
    ):
        user_in = UserCreate(email=email, password=password, name=name, roles=roles or ["user"])
        return await UserService.create_user(seeded_db, user_in)

    return _make_user


@pytest.fixture
async def admin_user(make_user):
    return await make_user(email="admin@example.com", roles=["admin"], name="Admin User")


@pytest.fixture
async def regular_user(make_user):
    return await make_user(email="user@example.com", roles=["user"], name="Regular User")


@pytest.fixture
def auth_headers():
    def _auth_headers(user) -> dict:
        token = create_access_token(subject=user.id, email=user.email)
        return {"Authorization": f"Bearer {token}"}

    return _auth_headers


@pytest.fixture
async def mock_db():
    """Mock AsyncSession for service-level unit tests."""
    mock_session = AsyncMock(spec=AsyncSession)
    mock_session.execute = AsyncMock()
    mock_session.commit = AsyncMock()
    mock_session.rollback = AsyncMock()
    mock_session.add = MagicMock()
    mock_session.delete = AsyncMock()
    mock_session.refresh = AsyncMock()
    mock_session.get = AsyncMock()
    return mock_session
