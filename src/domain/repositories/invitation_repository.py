"""Invitation repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.invitation import Invitation


class IInvitationRepository(Protocol):
    """Repository interface for Invitation entities."""

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation.

        Raises:
            DuplicateInvitationError: If a pending invitation exists for the
                same workspace and email.
        """
        ...

    async def get_by_id(self, id: UUID) -> Invitation | None:
        """Get an invitation by its primary key."""
        ...

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get an invitation by its hashed token."""
        ...

    async def get_for_workspace(self, workspace_id: UUID) -> list[Invitation]:
        """Get all invitations for a workspace."""
        ...

    async def get_pending_for_email(self, email: str, now: datetime) -> list[Invitation]:
        """Get all pending, unexpired invitations for an email address."""
        ...

    async def get_pending_for_workspace_email(
        self, workspace_id: UUID, email: str, now: datetime
    ) -> Invitation | None:
        """Get the pending, unexpired invitation for a workspace and email."""
        ...

    async def transition_from_pending(self, invitation: Invitation) -> bool:
        """Persist a new status for an invitation that is still pending.

        Conditional on the stored row being ``pending``. Returns False if a
        concurrent transition got there first.
        """
        ...

    async def expire_stale(
        self, now: datetime, workspace_id: UUID | None = None, email: str | None = None
    ) -> int:
        """Mark pending invitations past their expiry as expired.

        Optionally scoped to one workspace/email pair. Returns rows updated.
        """
        ...
