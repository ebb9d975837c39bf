"""Account repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.account import Account, AccountStatus, LockState


class IAccountRepository(Protocol):
    """Repository interface for Account entities (the credential store)."""

    async def get(self, id: UUID) -> Account | None:
        """Get a non-deleted account by ID."""
        ...

    async def get_by_email(self, email: str) -> Account | None:
        """Get a non-deleted account by normalized email."""
        ...

    async def create(self, account: Account) -> Account:
        """Create an account.

        Raises:
            EmailAlreadyRegisteredError: If a non-deleted account has the email.
        """
        ...

    async def compare_and_set_lock(
        self, id: UUID, expected_version: int, new_state: LockState
    ) -> bool:
        """Write ``new_state`` only if the stored lock version still matches.

        Returns False when another writer got there first.
        """
        ...

    async def update_password_hash(self, id: UUID, password_hash: str) -> None:
        """Replace the stored password digest."""
        ...

    async def update_status(self, id: UUID, status: AccountStatus) -> None:
        """Change the account status."""
        ...
