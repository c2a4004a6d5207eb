"""
Pytest configuration and core fixtures.

Provides fixtures for integration tests against an in-memory SQLite database
with per-test rollback. All fixtures are function-scoped for complete test
isolation.
"""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

TEST_PASSWORD = "password123"


def pytest_configure(config):
    """Configure the environment before the application is imported."""
    os.environ["ENVIRONMENT"] = "test"
    os.environ["DATABASE_URL"] = os.environ.get(
        "TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:"
    )
    os.environ.setdefault("JWT_SECRET_KEY", "test_jwt_secret_key")
    os.environ["ENABLE_MESSAGING"] = "false"
    os.environ["SENTRY_DSN"] = ""


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Provide a test database session with transaction rollback.

    Strategy:
    1. Create a fresh in-memory database and its tables
    2. Start an outer transaction (for final rollback)
    3. Create a session bound to that connection
    4. When routers call `async with session.begin():`, use begin_nested()
       so their commit is a savepoint release within the outer transaction
    5. After the test, roll back the outer transaction
    """
    from app.core.config import settings
    from app.core.db import Base
    import app.core.db.models  # noqa: F401

    engine = create_async_engine(
        settings.TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; emit BEGIN ourselves
    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    connection = await engine.connect()
    outer_transaction = await connection.begin()
    await connection.run_sync(Base.metadata.create_all)

    session = AsyncSession(
        bind=connection,
        expire_on_commit=False,
        autobegin=True,
    )

    def _patched_begin():
        return session.begin_nested()

    session.begin = _patched_begin

    try:
        yield session
    finally:
        await session.close()
        await outer_transaction.rollback()
        await connection.close()
        await engine.dispose()


@pytest.fixture
def app():
    """Create FastAPI application for testing."""
    from app.main import app as fastapi_app

    return fastapi_app


@pytest.fixture
async def client(app, db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Provide async HTTP client sharing the test session with the app."""
    from app.core.dependencies import get_async_session

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_session

    try:
        async with AsyncClient(
            transport=ASGITransport(app=app),
            base_url="http://test",
        ) as ac:
            yield ac
    finally:
        app.dependency_overrides.pop(get_async_session, None)


@pytest.fixture(autouse=True)
def mock_message_publisher():
    """Auto-mock the message publisher so no test reaches RabbitMQ.

    Yields the mock of ``enqueue_event`` as seen by the auth service, which
    always reports the event as accepted.
    """
    from app.core.enums import DispatchResult

    with patch(
        "app.infrastructure.messaging.publisher.publish_event",
        new_callable=AsyncMock,
    ), patch(
        "app.core.services.auth.enqueue_event",
        new_callable=AsyncMock,
        return_value=DispatchResult.ACCEPTED,
    ) as mock_enqueue:
        yield mock_enqueue


@pytest.fixture(autouse=True)
async def reset_rate_limiter():
    """Clear rate limit counters around every test."""
    from app.core.services.rate_limit import limiter

    await limiter.reset()
    yield
    await limiter.reset()


@pytest.fixture
def make_user(db_session: AsyncSession):
    """Factory creating users with a known password."""
    from app.core.db.models import User
    from app.core.enums import UserStatus
    from app.core.utils import hash_password

    async def _make_user(
        email: str | None = None,
        status: UserStatus = UserStatus.ACTIVE,
        password: str = TEST_PASSWORD,
        name: str = "Test User",
    ) -> User:
        user = User(
            id=uuid4(),
            name=name,
            email=email or f"user-{uuid4().hex[:8]}@example.com",
            password_hash=hash_password(password),
            status=status,
        )
        db_session.add(user)
        await db_session.flush()
        return user

    return _make_user


@pytest.fixture
async def test_user(make_user):
    return await make_user(email="testuser@example.com")


@pytest.fixture
async def pending_user(make_user):
    from app.core.enums import UserStatus

    return await make_user(email="pending@example.com", status=UserStatus.PENDING)


@pytest.fixture
async def auth_headers(db_session: AsyncSession, test_user) -> dict[str, str]:
    """Generate authentication headers backed by a stored token."""
    from app.core.services.token import TokenService

    issued = await TokenService.issue(db_session, test_user)
    return {"Authorization": f"Bearer {issued.access_token}"}


@pytest.fixture
async def authenticated_client(
    client: AsyncClient,
    auth_headers: dict[str, str],
) -> AsyncClient:
    """Provide authenticated async client."""
    client.headers.update(auth_headers)
    return client


@pytest.fixture
def make_company(db_session: AsyncSession):
    """Factory creating companies."""
    from app.core.db.models import Company

    async def _make_company(name: str | None = None, **fields) -> Company:
        company = Company(
            id=uuid4(),
            name=name or f"Company {uuid4().hex[:8]}",
            **fields,
        )
        db_session.add(company)
        await db_session.flush()
        return company

    return _make_company
