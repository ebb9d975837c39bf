"""Refresh token repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.token import RefreshTokenRecord


class IRefreshTokenRepository(Protocol):
    """Repository interface for refresh-token lineage records."""

    async def create(self, record: RefreshTokenRecord) -> RefreshTokenRecord:
        """Insert a new record."""
        ...

    async def get_by_token_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        """Get a record by the hash of its opaque token."""
        ...

    async def supersede(self, id: UUID, successor_id: UUID) -> bool:
        """Mark an active record superseded by ``successor_id``.

        Conditional on the record still being active. Returns False if it
        was not (a concurrent rotation or a revocation won).
        """
        ...

    async def revoke_lineage(self, lineage_id: UUID, revoked_at: datetime) -> int:
        """Revoke every active record in a lineage. Returns rows changed."""
        ...

    async def revoke_all_for_account(self, account_id: UUID, revoked_at: datetime) -> int:
        """Revoke every active record owned by an account. Returns rows changed."""
        ...

    async def lineage_is_active(self, lineage_id: UUID, now: datetime) -> bool:
        """Whether the lineage still has an active, unexpired record."""
        ...
