"""Account domain entities."""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID, uuid4

from domain.ports import utcnow


class AccountStatus(StrEnum):
    """Lifecycle status of an account."""

    PENDING = "pending"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


# Statuses that may open a session.
LOGIN_ALLOWED_STATUSES = frozenset({AccountStatus.PENDING, AccountStatus.ACTIVE})


def normalize_email(email: str) -> str:
    """Canonical form used for uniqueness and comparisons."""
    return email.strip().lower()


@dataclass(frozen=True)
class LockoutPolicy:
    """Brute-force lockout thresholds."""

    max_attempts: int = 5
    window: timedelta = timedelta(minutes=15)
    lock_duration: timedelta = timedelta(minutes=30)


@dataclass(frozen=True)
class LockState:
    """Failed-login bookkeeping for one account.

    ``version`` is bumped on every write and used for compare-and-set
    updates, so two concurrent failures cannot both apply to a stale count.
    """

    failed_attempts: int = 0
    last_failed_at: datetime | None = None
    locked_until: datetime | None = None
    version: int = 0

    def is_locked(self, now: datetime) -> bool:
        return self.locked_until is not None and now < self.locked_until

    def retry_after_seconds(self, now: datetime) -> int:
        """Whole seconds until the lock lapses (0 when not locked)."""
        if not self.is_locked(now):
            return 0
        assert self.locked_until is not None
        return max(1, math.ceil((self.locked_until - now).total_seconds()))

    def after_failure(self, now: datetime, policy: LockoutPolicy) -> "LockState":
        """State after one more failed attempt at ``now``."""
        if self.is_locked(now):
            return self

        lock_lapsed = self.locked_until is not None
        window_elapsed = (
            self.last_failed_at is None or now - self.last_failed_at > policy.window
        )
        attempts = 1 if lock_lapsed or window_elapsed else self.failed_attempts + 1

        locked_until = now + policy.lock_duration if attempts >= policy.max_attempts else None
        return LockState(
            failed_attempts=attempts,
            last_failed_at=now,
            locked_until=locked_until,
            version=self.version + 1,
        )

    def cleared(self) -> "LockState":
        return LockState(version=self.version + 1)

    @property
    def is_clear(self) -> bool:
        return self.failed_attempts == 0 and self.locked_until is None


@dataclass(frozen=True)
class Account:
    """Domain entity for a user account."""

    email: str
    password_hash: str
    id: UUID = field(default_factory=uuid4)
    status: AccountStatus = AccountStatus.ACTIVE
    lock: LockState = field(default_factory=LockState)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    deleted_at: datetime | None = None

    @property
    def can_login(self) -> bool:
        return self.deleted_at is None and self.status in LOGIN_ALLOWED_STATUSES

    def with_password(self, password_hash: str, now: datetime) -> "Account":
        return replace(self, password_hash=password_hash, updated_at=now)
