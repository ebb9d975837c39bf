"""Invitation domain entity."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID, uuid4

from domain.entities.workspace import WorkspaceRole
from domain.ports import utcnow


class InvitationStatus(StrEnum):
    """Status of a workspace invitation."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = frozenset(
    {InvitationStatus.ACCEPTED, InvitationStatus.EXPIRED, InvitationStatus.CANCELLED}
)

# Default invitation expiry: 7 days
INVITATION_EXPIRY_DAYS = 7


@dataclass(frozen=True)
class Invitation:
    """Domain entity for a workspace invitation.

    Expiry is lazy: a row may still say ``pending`` after ``expires_at``;
    ``effective_status`` is what callers should act on.
    """

    workspace_id: UUID
    email: str
    role: WorkspaceRole
    token_hash: str
    invited_by: UUID
    id: UUID = field(default_factory=uuid4)
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime = field(
        default_factory=lambda: utcnow() + timedelta(days=INVITATION_EXPIRY_DAYS)
    )
    accepted_at: datetime | None = None

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def effective_status(self, now: datetime) -> InvitationStatus:
        if self.status == InvitationStatus.PENDING and self.is_expired(now):
            return InvitationStatus.EXPIRED
        return self.status

    def is_pending(self, now: datetime) -> bool:
        return self.effective_status(now) == InvitationStatus.PENDING

    def accepted(self, now: datetime) -> "Invitation":
        self._require_pending(now)
        return replace(self, status=InvitationStatus.ACCEPTED, accepted_at=now)

    def cancelled(self, now: datetime) -> "Invitation":
        self._require_pending(now)
        return replace(self, status=InvitationStatus.CANCELLED)

    def _require_pending(self, now: datetime) -> None:
        if not self.is_pending(now):
            raise ValueError(
                f"Invitation {self.id} is {self.effective_status(now).value}, not pending"
            )
