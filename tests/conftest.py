import os

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-hospital-resources")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
from typing import AsyncGenerator
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.config import settings
from app.core.security import create_access_token
from app.infrastructure.database import get_db, Base
from app.domain.auth.models import User, UserRole
from app.domain.auth.repository import UserRepository
from app.domain.beds import models as _bed_models  # noqa: F401
from app.domain.equipment import models as _equipment_models  # noqa: F401


# Test database URL
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def session_factory() -> AsyncGenerator[async_sessionmaker, None]:
    """A fresh in-memory database per test; every session shares one connection."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for calling services and repositories directly."""
    async with session_factory() as session:
        yield session


@pytest.fixture(scope="function")
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Create a test client with database dependency override."""

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def api_prefix() -> str:
    return settings.API_V1_STR


@pytest.fixture(autouse=True)
def default_access_policy(monkeypatch):
    """Pin access-gate settings so tests do not depend on the environment."""
    monkeypatch.setattr(settings, "ROLE_RESOLUTION", "header_override")
    monkeypatch.setattr(settings, "ADMIN_TOKEN", "admin-token")
    monkeypatch.setattr(settings, "ADMIN_TOKEN_ENABLED", True)
    monkeypatch.setattr(settings, "ADMIN_DEFAULT_ROLE", "bedManager")


async def _create_user(session_factory, username: str, role: UserRole) -> User:
    async with session_factory() as session:
        return await UserRepository(session).create({
            "username": username,
            "email": f"{username}@hospital.example",
            "password": "password123",
            "role": role,
        })


@pytest.fixture(scope="function")
async def bed_manager(session_factory) -> User:
    return await _create_user(session_factory, "bedmanager", UserRole.BED_MANAGER)


@pytest.fixture(scope="function")
async def equipment_manager(session_factory) -> User:
    return await _create_user(session_factory, "equipmentmanager", UserRole.EQUIPMENT_MANAGER)


def auth_headers(user: User, **extra) -> dict:
    token = create_access_token(user.id, {"username": user.username, "role": user.role.value})
    headers = {"Authorization": f"Bearer {token}"}
    headers.update(extra)
    return headers


@pytest.fixture
def bed_manager_headers(bed_manager: User) -> dict:
    return auth_headers(bed_manager)


@pytest.fixture
def equipment_manager_headers(equipment_manager: User) -> dict:
    return auth_headers(equipment_manager)


@pytest.fixture
def admin_headers() -> dict:
    return {"Authorization": "Bearer admin-token"}


@pytest.fixture
def headers_for():
    """Build Authorization headers for a user, with optional extra headers."""
    return auth_headers
