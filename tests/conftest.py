"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass
from pathlib import Path
from uuid import UUID, uuid4

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from passlib.context import CryptContext
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from infrastructure.auth.jwt_provider import JWTSigner
from infrastructure.auth.password import PasslibPasswordHasher
from infrastructure.database.models import Base

# Test database URL (SQLite in memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_PASSWORD = "correct-horse-battery"


@dataclass
class SignedInUser:
    """An account created through the API together with its first session."""

    id: UUID
    email: str
    password: str
    access_token: str
    refresh_token: str

    @property
    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.access_token}"}


@pytest.fixture(scope="session")
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )
    yield engine
    await engine.dispose()


@pytest.fixture(scope="session")
async def setup_database(engine: AsyncEngine) -> AsyncGenerator[None, None]:
    """Create all tables once per session."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="session")
async def session_factory(
    engine: AsyncEngine, setup_database: None
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Create session factory."""
    factory = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )
    yield factory


@pytest.fixture(scope="session")
def password_hasher() -> PasslibPasswordHasher:
    """Argon2 hasher with cheap parameters so the suite stays fast."""
    return PasslibPasswordHasher(
        CryptContext(
            schemes=["argon2"],
            argon2__time_cost=1,
            argon2__memory_cost=1024,
            argon2__parallelism=1,
        )
    )


@pytest.fixture(scope="session")
def token_signer() -> JWTSigner:
    """Create token signer for testing."""
    return JWTSigner(secret_key="test-secret-key", algorithm="HS256", issuer="warden-test")


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    password_hasher: PasslibPasswordHasher,
    token_signer: JWTSigner,
) -> FastAPI:
    """
    Create the application wired to the in-memory database.

    Every service is rebuilt on top of a UoW factory that uses the test
    session factory, so nothing touches the configured PostgreSQL URL.
    """
    from api.dependencies.services import (
        get_auth_service,
        get_invitation_service,
        get_workspace_service,
    )
    from domain.services.auth_service import AuthService
    from domain.services.invitation_service import InvitationService
    from domain.services.lockout_service import LockoutService
    from domain.services.token_service import TokenService
    from domain.services.workspace_service import WorkspaceService
    from infrastructure.database.session import get_async_session
    from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
    from main import create_app

    app = create_app()

    def test_uow_factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(session_factory)

    tokens = TokenService(test_uow_factory, signer=token_signer)
    auth_service = AuthService(
        test_uow_factory,
        hasher=password_hasher,
        tokens=tokens,
        lockout=LockoutService(test_uow_factory),
    )
    workspace_service = WorkspaceService(test_uow_factory)
    invitation_service = InvitationService(test_uow_factory)

    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_auth_service] = lambda: auth_service
    app.dependency_overrides[get_workspace_service] = lambda: workspace_service
    app.dependency_overrides[get_invitation_service] = lambda: invitation_service
    app.dependency_overrides[get_async_session] = override_get_async_session
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def sign_up(client: AsyncClient) -> Callable[..., Awaitable[SignedInUser]]:
    """Register an account through the API and log it in."""

    async def _sign_up(email: str | None = None, password: str = TEST_PASSWORD) -> SignedInUser:
        email = email or f"user-{uuid4().hex[:12]}@example.com"
        response = await client.post(
            "/api/v1/auth/signup", json={"email": email, "password": password}
        )
        assert response.status_code == 201, response.text
        account_id = UUID(response.json()["id"])

        response = await client.post(
            "/api/v1/auth/login", json={"email": email, "password": password}
        )
        assert response.status_code == 200, response.text
        body = response.json()
        return SignedInUser(
            id=account_id,
            email=email.lower(),
            password=password,
            access_token=body["access_token"],
            refresh_token=body["refresh_token"],
        )

    return _sign_up


@pytest.fixture
async def test_user(sign_up: Callable[..., Awaitable[SignedInUser]]) -> SignedInUser:
    """A freshly registered, logged-in account."""
    return await sign_up()


@pytest.fixture
def auth_headers(test_user: SignedInUser) -> dict[str, str]:
    """Create authorization headers."""
    return test_user.headers
