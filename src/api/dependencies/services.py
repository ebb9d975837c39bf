"""Dependency injection factories for services."""

from functools import lru_cache
from typing import Callable

from domain.services.auth_service import AuthService
from domain.services.invitation_service import InvitationService
from domain.services.lockout_service import LockoutService
from domain.services.token_service import TokenService
from domain.services.workspace_service import WorkspaceService
from infrastructure.auth.jwt_provider import JWTSigner
from infrastructure.auth.password import PasslibPasswordHasher
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_password_hasher() -> PasslibPasswordHasher:
    """Get password hasher instance."""
    return PasslibPasswordHasher()


@lru_cache
def get_token_signer() -> JWTSigner:
    """Get JWT signer instance."""
    return JWTSigner()


@lru_cache
def get_lockout_service() -> LockoutService:
    """Get Lockout service instance."""
    return LockoutService(get_uow_factory())


@lru_cache
def get_token_service() -> TokenService:
    """Get Token service instance."""
    return TokenService(get_uow_factory(), signer=get_token_signer())


@lru_cache
def get_auth_service() -> AuthService:
    """Get Auth service instance."""
    return AuthService(
        get_uow_factory(),
        hasher=get_password_hasher(),
        tokens=get_token_service(),
        lockout=get_lockout_service(),
    )


@lru_cache
def get_workspace_service() -> WorkspaceService:
    """Get Workspace service instance."""
    return WorkspaceService(get_uow_factory())


@lru_cache
def get_invitation_service() -> InvitationService:
    """Get Invitation service instance."""
    return InvitationService(get_uow_factory())
