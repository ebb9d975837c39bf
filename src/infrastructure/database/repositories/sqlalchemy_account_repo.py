"""SQLAlchemy implementation of Account repository."""

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import EmailAlreadyRegisteredError
from domain.entities.account import Account, AccountStatus, LockState
from domain.ports import utcnow
from infrastructure.database.models import AccountModel


class SQLAlchemyAccountRepository:
    """SQLAlchemy implementation of IAccountRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, id: UUID) -> Account | None:
        """Get a non-deleted account by ID."""
        stmt = select(AccountModel).where(
            AccountModel.id == id,
            AccountModel.deleted_at.is_(None),
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_email(self, email: str) -> Account | None:
        """Get a non-deleted account by normalized email."""
        stmt = select(AccountModel).where(
            AccountModel.email == email,
            AccountModel.deleted_at.is_(None),
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, account: Account) -> Account:
        """Create a new account."""
        model = self._to_model(account)
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as exc:
            raise EmailAlreadyRegisteredError() from exc
        await self._session.refresh(model)
        return self._to_entity(model)

    async def compare_and_set_lock(
        self, id: UUID, expected_version: int, new_state: LockState
    ) -> bool:
        """Write lockout counters only if ``lock_version`` is unchanged."""
        stmt = (
            update(AccountModel)
            .where(
                AccountModel.id == id,
                AccountModel.lock_version == expected_version,
            )
            .values(
                failed_attempts=new_state.failed_attempts,
                last_failed_at=new_state.last_failed_at,
                locked_until=new_state.locked_until,
                lock_version=new_state.version,
            )
        )
        result = await self._session.execute(stmt)
        await self._session.flush()
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def update_password_hash(self, id: UUID, password_hash: str) -> None:
        """Replace the stored password digest."""
        stmt = (
            update(AccountModel)
            .where(AccountModel.id == id)
            .values(password_hash=password_hash, updated_at=utcnow())
        )
        await self._session.execute(stmt)
        await self._session.flush()

    async def update_status(self, id: UUID, status: AccountStatus) -> None:
        """Change the account status. ``deleted`` also stamps ``deleted_at``."""
        now = utcnow()
        values: dict[str, object] = {"status": status.value, "updated_at": now}
        if status == AccountStatus.DELETED:
            values["deleted_at"] = now
        stmt = update(AccountModel).where(AccountModel.id == id).values(**values)
        await self._session.execute(stmt)
        await self._session.flush()

    def _to_entity(self, model: AccountModel) -> Account:
        """Convert ORM model to domain entity."""
        return Account(
            id=model.id,
            email=model.email,
            password_hash=model.password_hash,
            status=AccountStatus(model.status),
            lock=LockState(
                failed_attempts=model.failed_attempts,
                last_failed_at=model.last_failed_at,
                locked_until=model.locked_until,
                version=model.lock_version,
            ),
            created_at=model.created_at,
            updated_at=model.updated_at,
            deleted_at=model.deleted_at,
        )

    def _to_model(self, entity: Account) -> AccountModel:
        """Convert domain entity to ORM model."""
        return AccountModel(
            id=entity.id,
            email=entity.email,
            password_hash=entity.password_hash,
            status=entity.status.value,
            failed_attempts=entity.lock.failed_attempts,
            last_failed_at=entity.lock.last_failed_at,
            locked_until=entity.lock.locked_until,
            lock_version=entity.lock.version,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
            deleted_at=entity.deleted_at,
        )
