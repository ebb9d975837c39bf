"""SQLAlchemy Unit of Work implementation."""

from typing import Any, Optional

import structlog
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import StoreUnavailableError
from infrastructure.database.repositories.sqlalchemy_account_repo import SQLAlchemyAccountRepository
from infrastructure.database.repositories.sqlalchemy_invitation_repo import SQLAlchemyInvitationRepository
from infrastructure.database.repositories.sqlalchemy_refresh_token_repo import SQLAlchemyRefreshTokenRepository
from infrastructure.database.repositories.sqlalchemy_workspace_repo import SQLAlchemyWorkspaceRepository

logger = structlog.get_logger()

# Driver/pool failures that mean "try again later" rather than "bad request".
_TRANSIENT_ERRORS = (OperationalError, PoolTimeoutError, TimeoutError, ConnectionError)


class SQLAlchemyUnitOfWork:
    """Unit of Work implementation using SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    @property
    def accounts(self) -> SQLAlchemyAccountRepository:
        """Get account repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyAccountRepository(self._session)

    @property
    def refresh_tokens(self) -> SQLAlchemyRefreshTokenRepository:
        """Get refresh token repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyRefreshTokenRepository(self._session)

    @property
    def invitations(self) -> SQLAlchemyInvitationRepository:
        """Get invitation repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyInvitationRepository(self._session)

    @property
    def workspaces(self) -> SQLAlchemyWorkspaceRepository:
        """Get workspace repository."""
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return SQLAlchemyWorkspaceRepository(self._session)

    async def commit(self) -> None:
        """Commit the current transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        if self._session:
            await self._session.rollback()

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        """Enter the context manager and create session."""
        self._session = self._session_factory()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        """Exit the context manager and cleanup.

        Transient store failures are re-raised as StoreUnavailableError.
        """
        if self._session:
            try:
                if exc_type:
                    await self.rollback()
            finally:
                await self._session.close()
                self._session = None

        if isinstance(exc_val, _TRANSIENT_ERRORS) or (
            isinstance(exc_val, DBAPIError) and exc_val.connection_invalidated
        ):
            logger.warning("store_unavailable", error_type=type(exc_val).__name__)
            raise StoreUnavailableError() from exc_val
