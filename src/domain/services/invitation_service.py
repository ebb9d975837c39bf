"""Invitation service layer with business logic."""

import hashlib
import secrets
from collections.abc import Callable
from dataclasses import replace
from datetime import timedelta
from uuid import UUID

import structlog

from core.config import settings
from core.exceptions import (
    AccountNotFoundError,
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
from core.retry import retry_transient
from domain.entities.account import normalize_email
from domain.entities.invitation import Invitation, InvitationStatus
from domain.entities.workspace import (
    CAPABILITY_MIN_ROLE,
    Capability,
    WorkspaceMember,
    WorkspaceRole,
    has_permission,
)
from domain.ports import Clock, utcnow
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class InvitationService:
    """Service layer for workspace invitation business logic.

    Invitations move from ``pending`` to exactly one of ``accepted``,
    ``cancelled`` or ``expired``. Every transition is conditional on the
    stored row still being pending, so terminal states are never left.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        clock: Clock = utcnow,
        expiry: timedelta | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock
        self._expiry = expiry or timedelta(days=settings.invitation_expiry_days)

    @retry_transient()
    async def invite(
        self,
        workspace_id: UUID,
        user_id: UUID,
        email: str,
        role: WorkspaceRole = WorkspaceRole.MEMBER,
    ) -> tuple[Invitation, str]:
        """Create a workspace invitation.

        Args:
            workspace_id: The workspace to invite to.
            user_id: The user creating the invitation (must be Admin+).
            email: The email address to invite.
            role: The role to assign on acceptance. Only Owners may invite
                Owners.

        Returns:
            Tuple of (Invitation, raw_token). The raw_token is only available
            at creation time and should be shared with the invitee.

        Raises:
            WorkspaceNotFoundError: If workspace does not exist.
            InsufficientPermissionsError: If user is not Admin+, or invites
                an Owner without being one.
            DuplicateInvitationError: If a pending invitation already exists.
            AlreadyAMemberError: If the email belongs to an existing member.
        """
        email = normalize_email(email)
        now = self._clock()

        async with self._uow_factory() as uow:
            workspace = await uow.workspaces.get(workspace_id)
            if not workspace:
                raise WorkspaceNotFoundError(str(workspace_id))

            inviter = await self._require_role(
                uow, workspace_id, user_id, CAPABILITY_MIN_ROLE[Capability.INVITE_MEMBERS]
            )
            if role > inviter.role:
                raise InsufficientPermissionsError(role.label)

            invitee = await uow.accounts.get_by_email(email)
            if invitee and await uow.workspaces.get_member(workspace_id, invitee.id):
                raise AlreadyAMemberError(str(invitee.id))

            # A lapsed pending row would otherwise hold the unique slot.
            await uow.invitations.expire_stale(now, workspace_id=workspace_id, email=email)

            existing = await uow.invitations.get_pending_for_workspace_email(
                workspace_id, email, now
            )
            if existing:
                raise DuplicateInvitationError(email)

            raw_token = secrets.token_urlsafe(32)
            invitation = Invitation(
                workspace_id=workspace_id,
                email=email,
                role=role,
                token_hash=self._hash_token(raw_token),
                invited_by=user_id,
                created_at=now,
                expires_at=now + self._expiry,
            )

            created = await uow.invitations.create(invitation)
            await uow.commit()

        logger.info(
            "invitation_created",
            invitation_id=str(created.id),
            workspace_id=str(workspace_id),
            role=role.label,
            inviter_id=str(user_id),
        )
        return created, raw_token

    @retry_transient()
    async def accept(self, token: str, user_id: UUID) -> WorkspaceMember:
        """Accept a workspace invitation using the raw token.

        The status change and the membership insert share one transaction:
        if the insert fails the invitation stays pending.

        Args:
            token: The raw invitation token.
            user_id: The user accepting the invitation.

        Returns:
            The new WorkspaceMember created from the invitation.

        Raises:
            InvitationNotFoundError: If the token is unknown or cancelled.
            InvitationExpiredError: If the invitation has expired.
            InvitationAlreadyAcceptedError: If already accepted.
            InvitationEmailMismatchError: If the user's email doesn't match.
            AlreadyAMemberError: If user is already a workspace member.
        """
        now = self._clock()

        async with self._uow_factory() as uow:
            invitation = await uow.invitations.get_by_token_hash(self._hash_token(token))
            if not invitation:
                raise InvitationNotFoundError()

            await self._ensure_pending(uow, invitation)

            account = await uow.accounts.get(user_id)
            if not account:
                raise AccountNotFoundError(str(user_id))
            if normalize_email(account.email) != invitation.email:
                logger.warning(
                    "invitation_email_mismatch",
                    invitation_id=str(invitation.id),
                    user_id=str(user_id),
                )
                raise InvitationEmailMismatchError()

            if not await uow.workspaces.get(invitation.workspace_id):
                raise WorkspaceNotFoundError(str(invitation.workspace_id))

            if await uow.workspaces.get_member(invitation.workspace_id, user_id):
                raise AlreadyAMemberError(str(user_id))

            if not await uow.invitations.transition_from_pending(invitation.accepted(now)):
                await uow.rollback()
                await self._raise_for_current_status(uow, invitation.id)

            member = WorkspaceMember(
                workspace_id=invitation.workspace_id,
                user_id=user_id,
                role=invitation.role,
                invited_by=invitation.invited_by,
                joined_at=now,
            )
            added = await uow.workspaces.add_member(member)
            await uow.commit()

        logger.info(
            "invitation_accepted",
            invitation_id=str(invitation.id),
            workspace_id=str(invitation.workspace_id),
            membership_id=str(added.id),
            user_id=str(user_id),
        )
        return added

    async def cancel(self, workspace_id: UUID, invitation_id: UUID, user_id: UUID) -> None:
        """Cancel a pending invitation. Requires Admin+ role.

        Raises:
            WorkspaceNotFoundError: If workspace does not exist.
            InsufficientPermissionsError: If user is not Admin+.
            InvitationNotFoundError: If the invitation does not exist in this
                workspace or was already cancelled.
            InvitationAlreadyAcceptedError: If it was already accepted.
            InvitationExpiredError: If it has expired.
        """
        async with self._uow_factory() as uow:
            workspace = await uow.workspaces.get(workspace_id)
            if not workspace:
                raise WorkspaceNotFoundError(str(workspace_id))

            await self._require_role(
                uow, workspace_id, user_id, CAPABILITY_MIN_ROLE[Capability.INVITE_MEMBERS]
            )

            invitation = await uow.invitations.get_by_id(invitation_id)
            if not invitation or invitation.workspace_id != workspace_id:
                raise InvitationNotFoundError(str(invitation_id))

            await self._ensure_pending(uow, invitation)

            if not await uow.invitations.transition_from_pending(
                invitation.cancelled(self._clock())
            ):
                await uow.rollback()
                await self._raise_for_current_status(uow, invitation_id)
            await uow.commit()

        logger.info(
            "invitation_cancelled",
            invitation_id=str(invitation_id),
            workspace_id=str(workspace_id),
            actor_id=str(user_id),
        )

    async def list_for_workspace(self, workspace_id: UUID, user_id: UUID) -> list[Invitation]:
        """Get all invitations for a workspace. Requires Admin+ role.

        Pending invitations past their expiry are reported as expired.
        """
        async with self._uow_factory() as uow:
            workspace = await uow.workspaces.get(workspace_id)
            if not workspace:
                raise WorkspaceNotFoundError(str(workspace_id))

            await self._require_role(
                uow, workspace_id, user_id, CAPABILITY_MIN_ROLE[Capability.INVITE_MEMBERS]
            )

            invitations = await uow.invitations.get_for_workspace(workspace_id)

        now = self._clock()
        return [replace(inv, status=inv.effective_status(now)) for inv in invitations]

    async def list_pending_for_email(self, email: str) -> list[Invitation]:
        """Get all pending, unexpired invitations for an email address.

        Used to show pending invitations on login/dashboard.
        """
        async with self._uow_factory() as uow:
            return await uow.invitations.get_pending_for_email(
                normalize_email(email), self._clock()
            )

    async def expire_stale(self) -> int:
        """Mark every lapsed pending invitation as expired."""
        async with self._uow_factory() as uow:
            expired = await uow.invitations.expire_stale(self._clock())
            await uow.commit()
        if expired:
            logger.info("invitations_expired", count=expired)
        return expired

    # --- Internal helpers ---

    async def _ensure_pending(self, uow: IUnitOfWork, invitation: Invitation) -> None:
        """Raise the error matching a non-pending invitation.

        A pending row past its expiry is marked expired before raising.
        """
        status = invitation.effective_status(self._clock())
        if status == InvitationStatus.PENDING:
            return
        if status == InvitationStatus.EXPIRED and invitation.status == InvitationStatus.PENDING:
            await uow.invitations.transition_from_pending(
                replace(invitation, status=InvitationStatus.EXPIRED)
            )
            await uow.commit()
        self._raise_for_status(status, invitation.id)

    async def _raise_for_current_status(self, uow: IUnitOfWork, invitation_id: UUID) -> None:
        """Re-read an invitation that lost a transition race and raise."""
        current = await uow.invitations.get_by_id(invitation_id)
        if not current:
            raise InvitationNotFoundError(str(invitation_id))
        self._raise_for_status(current.effective_status(self._clock()), invitation_id)

    @staticmethod
    def _raise_for_status(status: InvitationStatus, invitation_id: UUID) -> None:
        if status == InvitationStatus.ACCEPTED:
            raise InvitationAlreadyAcceptedError()
        if status == InvitationStatus.EXPIRED:
            raise InvitationExpiredError()
        raise InvitationNotFoundError(str(invitation_id))

    @staticmethod
    async def _require_role(
        uow: IUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
        required_role: WorkspaceRole,
    ) -> WorkspaceMember:
        """Verify the user has at least the required role. Raises on failure."""
        member = await uow.workspaces.get_member(workspace_id, user_id)
        if not member:
            raise NotAMemberError(str(workspace_id))
        if not has_permission(member.role, required_role):
            raise InsufficientPermissionsError(required_role.label)
        return member

    @staticmethod
    def _hash_token(token: str) -> str:
        """Hash a raw invitation token using SHA-256."""
        return hashlib.sha256(token.encode()).hexdigest()
