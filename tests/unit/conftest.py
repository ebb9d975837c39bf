"""Shared fixtures for unit tests."""

from datetime import datetime, timedelta
from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest


class FakeUnitOfWork:
    """Fake Unit of Work with all 4 repository mocks for unit testing."""

    def __init__(self) -> None:
        self.accounts = AsyncMock()
        self.refresh_tokens = AsyncMock()
        self.workspaces = AsyncMock()
        self.invitations = AsyncMock()
        self.committed = False
        self.rolled_back = False
        self.commit_count = 0

    async def commit(self) -> None:
        self.committed = True
        self.commit_count += 1

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


class FakeClock:
    """Settable clock for services that take a ``clock`` callable."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now += delta


class FakePasswordHasher:
    """Reversible stand-in for the argon2 hasher."""

    def __init__(self) -> None:
        self.verify_calls = 0

    def hash(self, plain: str) -> str:
        return f"hashed:{plain}"

    def verify(self, plain: str, digest: str) -> bool:
        self.verify_calls += 1
        return digest == f"hashed:{plain}"


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def clock() -> FakeClock:
    """A clock frozen at a fixed instant."""
    return FakeClock(datetime(2026, 3, 1, 12, 0, 0))


@pytest.fixture
def hasher() -> FakePasswordHasher:
    return FakePasswordHasher()


@pytest.fixture
def user_id() -> UUID:
    """A random user ID."""
    return uuid4()


@pytest.fixture
def workspace_id() -> UUID:
    """A random workspace ID."""
    return uuid4()


@pytest.fixture
def actor_id() -> UUID:
    """A random actor ID (distinct from user_id)."""
    return uuid4()
