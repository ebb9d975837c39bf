"""Database session management."""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core.config import settings

_connect_args: dict = {}
_engine_kwargs: dict = {}
if settings.async_database_url.startswith("postgresql+asyncpg"):
    # Per-statement timeout enforced by asyncpg
    _connect_args["command_timeout"] = settings.store_timeout_seconds
    _engine_kwargs["pool_timeout"] = settings.store_timeout_seconds

# Create async engine
engine = create_async_engine(
    settings.async_database_url,
    echo=settings.debug,
    pool_pre_ping=True,
    connect_args=_connect_args,
    **_engine_kwargs,
)

# Create async session factory
async_session_factory = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autocommit=False,
    autoflush=False,
)


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database sessions."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.close()
