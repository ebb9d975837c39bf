"""Token domain entities."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from domain.entities.workspace import WorkspaceRole
from domain.ports import utcnow


class RefreshTokenStatus(StrEnum):
    """State of one record in a refresh-token lineage."""

    ACTIVE = "active"
    SUPERSEDED = "superseded"
    REVOKED = "revoked"


@dataclass(frozen=True)
class RefreshTokenRecord:
    """Persisted half of a refresh token.

    Only the SHA-256 of the opaque token is stored. ``lineage_id`` is the id
    of the root record produced at login; every rotation copies it forward.
    """

    account_id: UUID
    token_hash: str
    expires_at: datetime
    id: UUID = field(default_factory=uuid4)
    lineage_id: UUID | None = None
    workspace_id: UUID | None = None
    status: RefreshTokenStatus = RefreshTokenStatus.ACTIVE
    issued_at: datetime = field(default_factory=utcnow)
    superseded_by: UUID | None = None
    revoked_at: datetime | None = None

    def __post_init__(self) -> None:
        # A root record is its own lineage.
        if self.lineage_id is None:
            object.__setattr__(self, "lineage_id", self.id)

    @property
    def is_active(self) -> bool:
        return self.status == RefreshTokenStatus.ACTIVE

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def successor(
        self, token_hash: str, issued_at: datetime, expires_at: datetime
    ) -> "RefreshTokenRecord":
        """Next record in this lineage."""
        return RefreshTokenRecord(
            account_id=self.account_id,
            workspace_id=self.workspace_id,
            lineage_id=self.lineage_id,
            token_hash=token_hash,
            issued_at=issued_at,
            expires_at=expires_at,
        )


@dataclass(frozen=True)
class TokenSubject:
    """Who a token pair is issued to."""

    account_id: UUID
    email: str
    workspace_id: UUID | None = None
    role: WorkspaceRole | None = None


@dataclass(frozen=True)
class AccessClaims:
    """Verified contents of an access token."""

    account_id: UUID
    email: str
    session_id: UUID
    issued_at: datetime
    expires_at: datetime
    workspace_id: UUID | None = None
    role: WorkspaceRole | None = None


@dataclass(frozen=True)
class TokenPair:
    """Result of a login or refresh."""

    access_token: str
    refresh_token: str
    expires_in: int
    token_type: str = "bearer"
