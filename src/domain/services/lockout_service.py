"""Brute-force lockout guard."""

from collections.abc import Callable
from datetime import timedelta
from uuid import UUID

import structlog

from core.config import settings
from core.exceptions import AccountNotFoundError, StoreUnavailableError
from core.retry import retry_transient
from domain.entities.account import LockoutPolicy, LockState
from domain.ports import Clock, utcnow
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()

# Compare-and-set attempts before a contended counter is reported as transient.
MAX_CAS_ATTEMPTS = 5


def default_policy() -> LockoutPolicy:
    """Lockout policy from settings."""
    return LockoutPolicy(
        max_attempts=settings.lockout_max_attempts,
        window=timedelta(minutes=settings.lockout_window_minutes),
        lock_duration=timedelta(minutes=settings.lockout_duration_minutes),
    )


class LockoutService:
    """Tracks failed logins per account and decides whether login is allowed.

    Every counter change is a compare-and-set on the account's lock version,
    so concurrent failures for one account serialize instead of overwriting
    each other.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        policy: LockoutPolicy | None = None,
        clock: Clock = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._policy = policy or default_policy()
        self._clock = clock

    async def is_locked(self, account_id: UUID) -> bool:
        """Whether the account is currently locked out."""
        state = await self.get_state(account_id)
        return state.is_locked(self._clock())

    async def retry_after_seconds(self, account_id: UUID) -> int:
        """Seconds until the lock lapses, or 0 if not locked."""
        state = await self.get_state(account_id)
        return state.retry_after_seconds(self._clock())

    @retry_transient()
    async def get_state(self, account_id: UUID) -> LockState:
        async with self._uow_factory() as uow:
            account = await uow.accounts.get(account_id)
            if not account:
                raise AccountNotFoundError(str(account_id))
            return account.lock

    async def record_failure(self, account_id: UUID) -> LockState:
        """Count one failed attempt and lock the account at the threshold.

        A no-op while the account is already locked.
        """
        now = self._clock()
        for _ in range(MAX_CAS_ATTEMPTS):
            async with self._uow_factory() as uow:
                account = await uow.accounts.get(account_id)
                if not account:
                    raise AccountNotFoundError(str(account_id))

                current = account.lock
                if current.is_locked(now):
                    return current

                new_state = current.after_failure(now, self._policy)
                if not await uow.accounts.compare_and_set_lock(
                    account_id, current.version, new_state
                ):
                    await uow.rollback()
                    continue
                await uow.commit()

            if new_state.is_locked(now):
                logger.warning(
                    "account_locked",
                    account_id=str(account_id),
                    attempts=new_state.failed_attempts,
                    locked_until=new_state.locked_until.isoformat()
                    if new_state.locked_until
                    else None,
                )
            return new_state

        logger.error("lockout_counter_contended", account_id=str(account_id))
        raise StoreUnavailableError("Could not update login attempt counter")

    @retry_transient()
    async def reset(self, account_id: UUID) -> None:
        """Clear the failure counter after a successful authentication."""
        for _ in range(MAX_CAS_ATTEMPTS):
            async with self._uow_factory() as uow:
                account = await uow.accounts.get(account_id)
                if not account:
                    raise AccountNotFoundError(str(account_id))
                current = account.lock
                if current.is_clear:
                    return
                if await uow.accounts.compare_and_set_lock(
                    account_id, current.version, current.cleared()
                ):
                    await uow.commit()
                    logger.debug("login_attempts_reset", account_id=str(account_id))
                    return
                await uow.rollback()

        logger.error("lockout_counter_contended", account_id=str(account_id))
        raise StoreUnavailableError("Could not reset login attempt counter")
