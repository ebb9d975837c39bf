"""Unit tests for InvitationService."""

import hashlib
from dataclasses import replace
from datetime import timedelta
from typing import Any
from uuid import UUID, uuid4

import pytest

from core.exceptions import (
    AlreadyAMemberError,
    DuplicateInvitationError,
    InsufficientPermissionsError,
    InvitationAlreadyAcceptedError,
    InvitationEmailMismatchError,
    InvitationExpiredError,
    InvitationNotFoundError,
    NotAMemberError,
    WorkspaceNotFoundError,
)
from domain.entities.account import Account
from domain.entities.invitation import Invitation, InvitationStatus
from domain.entities.workspace import Workspace, WorkspaceMember, WorkspaceRole
from domain.services.invitation_service import InvitationService
from tests.unit.conftest import FakeClock, FakeUnitOfWork

EXPIRY = timedelta(days=7)
INVITEE_EMAIL = "invitee@example.com"


@pytest.fixture
def service(uow: FakeUnitOfWork, clock: FakeClock) -> InvitationService:
    return InvitationService(lambda: uow, clock=clock, expiry=EXPIRY)


@pytest.fixture
def workspace(workspace_id: UUID, user_id: UUID) -> Workspace:
    return Workspace(id=workspace_id, name="Test WS", slug="test-ws", owner_id=user_id)


@pytest.fixture
def admin_member(workspace_id: UUID, user_id: UUID) -> WorkspaceMember:
    return WorkspaceMember(workspace_id=workspace_id, user_id=user_id, role=WorkspaceRole.ADMIN)


@pytest.fixture
def invitee() -> Account:
    return Account(email=INVITEE_EMAIL, password_hash="x")


@pytest.fixture
def pending(workspace_id: UUID, user_id: UUID, clock: FakeClock) -> Invitation:
    return Invitation(
        workspace_id=workspace_id,
        email=INVITEE_EMAIL,
        role=WorkspaceRole.MEMBER,
        token_hash=hashlib.sha256(b"raw-token").hexdigest(),
        invited_by=user_id,
        created_at=clock.now,
        expires_at=clock.now + EXPIRY,
    )


# --- invite ---


class TestInvite:
    @pytest.fixture(autouse=True)
    def _defaults(
        self, uow: FakeUnitOfWork, workspace: Workspace, admin_member: WorkspaceMember
    ) -> None:
        uow.workspaces.get.return_value = workspace
        uow.workspaces.get_member.return_value = admin_member
        uow.accounts.get_by_email.return_value = None
        uow.invitations.expire_stale.return_value = 0
        uow.invitations.get_pending_for_workspace_email.return_value = None
        uow.invitations.create.side_effect = lambda inv: inv

    async def test_creates_invitation_and_returns_token(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
        clock: FakeClock,
    ) -> None:
        result, raw_token = await service.invite(
            workspace_id=workspace_id, user_id=user_id, email=" Invitee@Example.com "
        )

        assert result.email == INVITEE_EMAIL
        assert result.workspace_id == workspace_id
        assert result.role == WorkspaceRole.MEMBER
        assert result.status == InvitationStatus.PENDING
        assert result.invited_by == user_id
        assert result.expires_at == clock.now + EXPIRY
        assert raw_token
        assert uow.committed

    async def test_token_hash_is_sha256(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        captured: list[Any] = []

        async def capture_create(inv: Any) -> Any:
            captured.append(inv)
            return inv

        uow.invitations.create.side_effect = capture_create

        _, raw_token = await service.invite(
            workspace_id=workspace_id, user_id=user_id, email=INVITEE_EMAIL
        )

        assert captured[0].token_hash == hashlib.sha256(raw_token.encode()).hexdigest()

    async def test_raises_workspace_not_found(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        uow.workspaces.get.return_value = None

        with pytest.raises(WorkspaceNotFoundError):
            await service.invite(workspace_id=workspace_id, user_id=user_id, email=INVITEE_EMAIL)

    async def test_member_cannot_invite(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        uow.workspaces.get_member.return_value = WorkspaceMember(
            workspace_id=workspace_id, user_id=user_id, role=WorkspaceRole.MEMBER
        )

        with pytest.raises(InsufficientPermissionsError):
            await service.invite(workspace_id=workspace_id, user_id=user_id, email=INVITEE_EMAIL)

        uow.invitations.create.assert_not_called()

    async def test_non_member_cannot_invite(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        uow.workspaces.get_member.return_value = None

        with pytest.raises(NotAMemberError):
            await service.invite(workspace_id=workspace_id, user_id=user_id, email=INVITEE_EMAIL)

    async def test_admin_cannot_invite_owner(
        self, service: InvitationService, workspace_id: UUID, user_id: UUID
    ) -> None:
        with pytest.raises(InsufficientPermissionsError):
            await service.invite(
                workspace_id=workspace_id,
                user_id=user_id,
                email=INVITEE_EMAIL,
                role=WorkspaceRole.OWNER,
            )

    async def test_owner_can_invite_owner(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        uow.workspaces.get_member.return_value = WorkspaceMember(
            workspace_id=workspace_id, user_id=user_id, role=WorkspaceRole.OWNER
        )

        result, _ = await service.invite(
            workspace_id=workspace_id,
            user_id=user_id,
            email=INVITEE_EMAIL,
            role=WorkspaceRole.OWNER,
        )

        assert result.role == WorkspaceRole.OWNER

    async def test_raises_duplicate_when_pending_exists(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        pending: Invitation,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        uow.invitations.get_pending_for_workspace_email.return_value = pending

        with pytest.raises(DuplicateInvitationError):
            await service.invite(workspace_id=workspace_id, user_id=user_id, email=INVITEE_EMAIL)

    async def test_lapsed_invitation_is_expired_before_reinviting(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
        clock: FakeClock,
    ) -> None:
        uow.invitations.expire_stale.return_value = 1

        await service.invite(workspace_id=workspace_id, user_id=user_id, email=INVITEE_EMAIL)

        uow.invitations.expire_stale.assert_awaited_once_with(
            clock.now, workspace_id=workspace_id, email=INVITEE_EMAIL
        )
        uow.invitations.create.assert_awaited_once()

    async def test_raises_already_member(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        admin_member: WorkspaceMember,
        invitee: Account,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        uow.accounts.get_by_email.return_value = invitee
        invitee_member = WorkspaceMember(
            workspace_id=workspace_id, user_id=invitee.id, role=WorkspaceRole.GUEST
        )
        uow.workspaces.get_member.side_effect = lambda ws, uid: (
            admin_member if uid == user_id else invitee_member
        )

        with pytest.raises(AlreadyAMemberError):
            await service.invite(workspace_id=workspace_id, user_id=user_id, email=INVITEE_EMAIL)


# --- accept ---


class TestAccept:
    @pytest.fixture(autouse=True)
    def _defaults(
        self,
        uow: FakeUnitOfWork,
        workspace: Workspace,
        invitee: Account,
        pending: Invitation,
    ) -> None:
        uow.invitations.get_by_token_hash.return_value = pending
        uow.invitations.transition_from_pending.return_value = True
        uow.accounts.get.return_value = invitee
        uow.workspaces.get.return_value = workspace
        uow.workspaces.get_member.return_value = None
        uow.workspaces.add_member.side_effect = lambda m: m

    async def test_accepts_and_creates_membership(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        invitee: Account,
        pending: Invitation,
        clock: FakeClock,
    ) -> None:
        member = await service.accept("raw-token", invitee.id)

        assert member.user_id == invitee.id
        assert member.workspace_id == pending.workspace_id
        assert member.role == WorkspaceRole.MEMBER
        assert member.invited_by == pending.invited_by
        written = uow.invitations.transition_from_pending.await_args.args[0]
        assert written.status == InvitationStatus.ACCEPTED
        assert written.accepted_at == clock.now
        # Status change and membership land in the same transaction
        assert uow.commit_count == 1

    async def test_unknown_token(
        self, service: InvitationService, uow: FakeUnitOfWork, invitee: Account
    ) -> None:
        uow.invitations.get_by_token_hash.return_value = None

        with pytest.raises(InvitationNotFoundError):
            await service.accept("bogus", invitee.id)

    async def test_email_mismatch(
        self, service: InvitationService, uow: FakeUnitOfWork, invitee: Account
    ) -> None:
        uow.accounts.get.return_value = replace(invitee, email="someone-else@example.com")

        with pytest.raises(InvitationEmailMismatchError):
            await service.accept("raw-token", invitee.id)

        uow.workspaces.add_member.assert_not_called()

    async def test_already_accepted(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        invitee: Account,
        pending: Invitation,
        clock: FakeClock,
    ) -> None:
        uow.invitations.get_by_token_hash.return_value = pending.accepted(clock.now)

        with pytest.raises(InvitationAlreadyAcceptedError):
            await service.accept("raw-token", invitee.id)

    async def test_cancelled_reads_as_not_found(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        invitee: Account,
        pending: Invitation,
        clock: FakeClock,
    ) -> None:
        uow.invitations.get_by_token_hash.return_value = pending.cancelled(clock.now)

        with pytest.raises(InvitationNotFoundError):
            await service.accept("raw-token", invitee.id)

    async def test_lapsed_invitation_is_expired_and_stored(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        invitee: Account,
        clock: FakeClock,
    ) -> None:
        clock.advance(EXPIRY)

        with pytest.raises(InvitationExpiredError):
            await service.accept("raw-token", invitee.id)

        written = uow.invitations.transition_from_pending.await_args.args[0]
        assert written.status == InvitationStatus.EXPIRED
        uow.workspaces.add_member.assert_not_called()

    async def test_already_a_member(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        invitee: Account,
        pending: Invitation,
    ) -> None:
        uow.workspaces.get_member.return_value = WorkspaceMember(
            workspace_id=pending.workspace_id, user_id=invitee.id
        )

        with pytest.raises(AlreadyAMemberError):
            await service.accept("raw-token", invitee.id)

        uow.invitations.transition_from_pending.assert_not_called()

    async def test_losing_accept_race_reports_current_state(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        invitee: Account,
        pending: Invitation,
        clock: FakeClock,
    ) -> None:
        uow.invitations.transition_from_pending.return_value = False
        uow.invitations.get_by_id.return_value = pending.accepted(clock.now)

        with pytest.raises(InvitationAlreadyAcceptedError):
            await service.accept("raw-token", invitee.id)

        assert uow.rolled_back
        uow.workspaces.add_member.assert_not_called()

    async def test_deleted_workspace(
        self, service: InvitationService, uow: FakeUnitOfWork, invitee: Account
    ) -> None:
        uow.workspaces.get.return_value = None

        with pytest.raises(WorkspaceNotFoundError):
            await service.accept("raw-token", invitee.id)


# --- cancel ---


class TestCancel:
    @pytest.fixture(autouse=True)
    def _defaults(
        self,
        uow: FakeUnitOfWork,
        workspace: Workspace,
        admin_member: WorkspaceMember,
        pending: Invitation,
    ) -> None:
        uow.workspaces.get.return_value = workspace
        uow.workspaces.get_member.return_value = admin_member
        uow.invitations.get_by_id.return_value = pending
        uow.invitations.transition_from_pending.return_value = True

    async def test_cancels_pending(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        pending: Invitation,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        await service.cancel(workspace_id, pending.id, user_id)

        written = uow.invitations.transition_from_pending.await_args.args[0]
        assert written.status == InvitationStatus.CANCELLED
        assert uow.committed

    async def test_invitation_of_other_workspace(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        pending: Invitation,
        user_id: UUID,
    ) -> None:
        with pytest.raises(InvitationNotFoundError):
            await service.cancel(uuid4(), pending.id, user_id)

    async def test_cannot_cancel_accepted(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        pending: Invitation,
        workspace_id: UUID,
        user_id: UUID,
        clock: FakeClock,
    ) -> None:
        uow.invitations.get_by_id.return_value = pending.accepted(clock.now)

        with pytest.raises(InvitationAlreadyAcceptedError):
            await service.cancel(workspace_id, pending.id, user_id)

        uow.invitations.transition_from_pending.assert_not_called()

    async def test_member_cannot_cancel(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        pending: Invitation,
        workspace_id: UUID,
        user_id: UUID,
    ) -> None:
        uow.workspaces.get_member.return_value = WorkspaceMember(
            workspace_id=workspace_id, user_id=user_id, role=WorkspaceRole.MEMBER
        )

        with pytest.raises(InsufficientPermissionsError):
            await service.cancel(workspace_id, pending.id, user_id)


# --- listing and sweeping ---


class TestListing:
    async def test_list_reports_lapsed_as_expired(
        self,
        service: InvitationService,
        uow: FakeUnitOfWork,
        workspace: Workspace,
        admin_member: WorkspaceMember,
        pending: Invitation,
        workspace_id: UUID,
        user_id: UUID,
        clock: FakeClock,
    ) -> None:
        uow.workspaces.get.return_value = workspace
        uow.workspaces.get_member.return_value = admin_member
        lapsed = replace(pending, id=uuid4(), expires_at=clock.now)
        uow.invitations.get_for_workspace.return_value = [pending, lapsed]

        result = await service.list_for_workspace(workspace_id, user_id)

        assert [inv.status for inv in result] == [
            InvitationStatus.PENDING,
            InvitationStatus.EXPIRED,
        ]

    async def test_list_pending_for_email_normalizes(
        self, service: InvitationService, uow: FakeUnitOfWork, clock: FakeClock
    ) -> None:
        uow.invitations.get_pending_for_email.return_value = []

        await service.list_pending_for_email("  INVITEE@example.com")

        uow.invitations.get_pending_for_email.assert_awaited_once_with(INVITEE_EMAIL, clock.now)

    async def test_expire_stale(
        self, service: InvitationService, uow: FakeUnitOfWork, clock: FakeClock
    ) -> None:
        uow.invitations.expire_stale.return_value = 3

        assert await service.expire_stale() == 3
        uow.invitations.expire_stale.assert_awaited_once_with(clock.now)
        assert uow.committed
