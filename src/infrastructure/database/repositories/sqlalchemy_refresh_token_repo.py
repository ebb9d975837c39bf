"""SQLAlchemy implementation of RefreshToken repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import exists, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.token import RefreshTokenRecord, RefreshTokenStatus
from infrastructure.database.models import RefreshTokenModel

_ACTIVE = RefreshTokenStatus.ACTIVE.value


class SQLAlchemyRefreshTokenRepository:
    """SQLAlchemy implementation of IRefreshTokenRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, record: RefreshTokenRecord) -> RefreshTokenRecord:
        """Insert a new refresh token record."""
        model = self._to_model(record)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_by_token_hash(self, token_hash: str) -> RefreshTokenRecord | None:
        """Get a record by its hashed token."""
        stmt = select(RefreshTokenModel).where(RefreshTokenModel.token_hash == token_hash)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def supersede(self, id: UUID, successor_id: UUID) -> bool:
        """Mark a record superseded, only if it is still active."""
        stmt = (
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.id == id,
                RefreshTokenModel.status == _ACTIVE,
            )
            .values(
                status=RefreshTokenStatus.SUPERSEDED.value,
                superseded_by=successor_id,
            )
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def revoke_lineage(self, lineage_id: UUID, revoked_at: datetime) -> int:
        """Revoke all active records of a lineage. Returns count of updated rows."""
        stmt = (
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.lineage_id == lineage_id,
                RefreshTokenModel.status == _ACTIVE,
            )
            .values(status=RefreshTokenStatus.REVOKED.value, revoked_at=revoked_at)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def revoke_all_for_account(self, account_id: UUID, revoked_at: datetime) -> int:
        """Revoke all active records of an account. Returns count of updated rows."""
        stmt = (
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.account_id == account_id,
                RefreshTokenModel.status == _ACTIVE,
            )
            .values(status=RefreshTokenStatus.REVOKED.value, revoked_at=revoked_at)
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def lineage_is_active(self, lineage_id: UUID, now: datetime) -> bool:
        """Whether the lineage still has an active, unexpired record."""
        stmt = select(
            exists().where(
                RefreshTokenModel.lineage_id == lineage_id,
                RefreshTokenModel.status == _ACTIVE,
                RefreshTokenModel.expires_at > now,
            )
        )
        result = await self._session.execute(stmt)
        return bool(result.scalar())

    def _to_entity(self, model: RefreshTokenModel) -> RefreshTokenRecord:
        """Convert ORM model to domain entity."""
        return RefreshTokenRecord(
            id=model.id,
            account_id=model.account_id,
            workspace_id=model.workspace_id,
            lineage_id=model.lineage_id,
            token_hash=model.token_hash,
            status=RefreshTokenStatus(model.status),
            issued_at=model.issued_at,
            expires_at=model.expires_at,
            superseded_by=model.superseded_by,
            revoked_at=model.revoked_at,
        )

    def _to_model(self, entity: RefreshTokenRecord) -> RefreshTokenModel:
        """Convert domain entity to ORM model."""
        return RefreshTokenModel(
            id=entity.id,
            account_id=entity.account_id,
            workspace_id=entity.workspace_id,
            lineage_id=entity.lineage_id,
            token_hash=entity.token_hash,
            status=entity.status.value,
            issued_at=entity.issued_at,
            expires_at=entity.expires_at,
            superseded_by=entity.superseded_by,
            revoked_at=entity.revoked_at,
        )
