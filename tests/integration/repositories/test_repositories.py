"""Repository tests against the in-memory SQLite schema."""

from datetime import timedelta
from uuid import UUID, uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import DuplicateInvitationError, EmailAlreadyRegisteredError
from domain.entities.account import Account, AccountStatus, LockState
from domain.entities.invitation import Invitation, InvitationStatus
from domain.entities.token import RefreshTokenRecord, RefreshTokenStatus
from domain.entities.workspace import WorkspaceRole
from domain.ports import utcnow
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


def _email() -> str:
    return f"repo-{uuid4().hex[:12]}@example.com"


async def _make_account(factory: async_sessionmaker[AsyncSession]) -> Account:
    async with SQLAlchemyUnitOfWork(factory) as uow:
        account = await uow.accounts.create(Account(email=_email(), password_hash="x"))
        await uow.commit()
    return account


class TestAccountRepository:
    async def test_email_is_unique_among_live_accounts(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        account = await _make_account(session_factory)

        with pytest.raises(EmailAlreadyRegisteredError):
            async with SQLAlchemyUnitOfWork(session_factory) as uow:
                await uow.accounts.create(Account(email=account.email, password_hash="y"))

    async def test_deleted_account_frees_email(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        account = await _make_account(session_factory)
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.accounts.update_status(account.id, AccountStatus.DELETED)
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            assert await uow.accounts.get(account.id) is None
            fresh = await uow.accounts.create(Account(email=account.email, password_hash="y"))
            await uow.commit()

        assert fresh.id != account.id

    async def test_lock_compare_and_set(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        account = await _make_account(session_factory)
        now = utcnow()
        first = LockState(failed_attempts=1, last_failed_at=now, version=1)

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            assert await uow.accounts.compare_and_set_lock(account.id, 0, first) is True
            # A writer that read version 0 has lost
            assert await uow.accounts.compare_and_set_lock(account.id, 0, first) is False
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            stored = await uow.accounts.get(account.id)

        assert stored is not None
        assert stored.lock.failed_attempts == 1
        assert stored.lock.version == 1


class TestRefreshTokenRepository:
    async def test_supersede_only_once(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        account = await _make_account(session_factory)
        now = utcnow()
        root = RefreshTokenRecord(
            account_id=account.id, token_hash=uuid4().hex, expires_at=now + timedelta(days=1)
        )
        successor_id = uuid4()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.refresh_tokens.create(root)
            assert await uow.refresh_tokens.supersede(root.id, successor_id) is True
            assert await uow.refresh_tokens.supersede(root.id, uuid4()) is False
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            stored = await uow.refresh_tokens.get_by_token_hash(root.token_hash)

        assert stored is not None
        assert stored.status == RefreshTokenStatus.SUPERSEDED
        assert stored.superseded_by == successor_id

    async def test_revoke_lineage_is_scoped(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        account = await _make_account(session_factory)
        now = utcnow()
        expires = now + timedelta(days=1)
        one = RefreshTokenRecord(account_id=account.id, token_hash=uuid4().hex, expires_at=expires)
        two = RefreshTokenRecord(account_id=account.id, token_hash=uuid4().hex, expires_at=expires)

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.refresh_tokens.create(one)
            await uow.refresh_tokens.create(two)
            assert await uow.refresh_tokens.revoke_lineage(one.lineage_id, now) == 1
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            assert await uow.refresh_tokens.lineage_is_active(one.lineage_id, now) is False
            assert await uow.refresh_tokens.lineage_is_active(two.lineage_id, now) is True
            assert await uow.refresh_tokens.revoke_all_for_account(account.id, now) == 1


class TestInvitationRepository:
    @staticmethod
    def _invitation(workspace_id: UUID, email: str, inviter_id: UUID) -> Invitation:
        return Invitation(
            workspace_id=workspace_id,
            email=email,
            role=WorkspaceRole.MEMBER,
            token_hash=uuid4().hex,
            invited_by=inviter_id,
        )

    async def test_one_pending_invitation_per_email(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        workspace_id, inviter_id, email = uuid4(), uuid4(), _email()
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.invitations.create(self._invitation(workspace_id, email, inviter_id))
            await uow.commit()

        with pytest.raises(DuplicateInvitationError):
            async with SQLAlchemyUnitOfWork(session_factory) as uow:
                await uow.invitations.create(self._invitation(workspace_id, email, inviter_id))

    async def test_transition_only_from_pending(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        invitation = self._invitation(uuid4(), _email(), uuid4())
        accepted = invitation.accepted(utcnow())

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.invitations.create(invitation)
            assert await uow.invitations.transition_from_pending(accepted) is True
            assert await uow.invitations.transition_from_pending(accepted) is False
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            stored = await uow.invitations.get_by_id(invitation.id)

        assert stored is not None
        assert stored.status == InvitationStatus.ACCEPTED
        assert stored.accepted_at is not None

    async def test_expire_stale(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        now = utcnow()
        workspace_id = uuid4()
        lapsed = Invitation(
            workspace_id=workspace_id,
            email=_email(),
            role=WorkspaceRole.GUEST,
            token_hash=uuid4().hex,
            invited_by=uuid4(),
            created_at=now - timedelta(days=8),
            expires_at=now - timedelta(days=1),
        )

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.invitations.create(lapsed)
            assert await uow.invitations.expire_stale(now, workspace_id=workspace_id) == 1
            await uow.commit()

        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            stored = await uow.invitations.get_by_id(lapsed.id)

        assert stored is not None
        assert stored.status == InvitationStatus.EXPIRED
