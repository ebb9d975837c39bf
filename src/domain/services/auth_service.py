"""Authentication orchestration: sign-up, login, refresh, logout, authorize."""

import secrets
from collections.abc import Callable
from uuid import UUID

import structlog

from core.exceptions import (
    AccountLockedError,
    AccountNotFoundError,
    InvalidCredentialsError,
    InvalidTokenError,
    NotAMemberError,
    ValidationError,
)
from core.retry import retry_transient
from domain.entities.account import Account, AccountStatus, normalize_email
from domain.entities.token import AccessClaims, RefreshTokenRecord, TokenPair, TokenSubject
from domain.ports import Clock, IPasswordHasher, utcnow
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.lockout_service import LockoutService
from domain.services.token_service import TokenService

logger = structlog.get_logger()

MIN_PASSWORD_LENGTH = 8


class AuthService:
    """Coordinates the credential store, lockout guard and token service.

    Login: lockout gate -> password check -> lockout reset -> token issue.
    Login itself is not retried as a whole; the store steps it calls retry
    their own transient failures, so a retry never opens a second session.
    Every failure visible to the caller is one of a small set of generic
    errors; the specific cause is only logged.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        hasher: IPasswordHasher,
        tokens: TokenService,
        lockout: LockoutService,
        clock: Clock = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._hasher = hasher
        self._tokens = tokens
        self._lockout = lockout
        self._clock = clock
        # Verified against when the email is unknown, so both paths cost a hash.
        self._dummy_hash = hasher.hash(secrets.token_urlsafe(16))

    @retry_transient()
    async def sign_up(self, email: str, password: str) -> Account:
        """Register a new account.

        Raises:
            ValidationError: If the password is too short.
            EmailAlreadyRegisteredError: If the email is taken.
        """
        self._validate_password(password)
        now = self._clock()
        account = Account(
            email=normalize_email(email),
            password_hash=self._hasher.hash(password),
            status=AccountStatus.ACTIVE,
            created_at=now,
            updated_at=now,
        )
        async with self._uow_factory() as uow:
            created = await uow.accounts.create(account)
            await uow.commit()

        logger.info("account_registered", account_id=str(created.id))
        return created

    async def login(
        self, email: str, password: str, workspace_id: UUID | None = None
    ) -> TokenPair:
        """Authenticate with email and password and open a session.

        Args:
            email: Account email (any case, surrounding whitespace ignored).
            password: Plaintext password.
            workspace_id: Optional workspace to scope the access token to.

        Returns:
            A fresh token pair starting a new refresh lineage.

        Raises:
            InvalidCredentialsError: Unknown email, wrong password, or an
                account that may not sign in.
            AccountLockedError: Too many recent failures.
            NotAMemberError: If ``workspace_id`` is given and the account is
                not a member.
        """
        account = await self._find_account(normalize_email(email))
        if not account:
            self._hasher.verify(password, self._dummy_hash)
            logger.warning("login_failed", reason="unknown_email")
            raise InvalidCredentialsError()

        retry_after = await self._lockout.retry_after_seconds(account.id)
        if retry_after:
            logger.warning("login_blocked_locked", account_id=str(account.id))
            raise AccountLockedError(retry_after)

        if not self._hasher.verify(password, account.password_hash):
            state = await self._lockout.record_failure(account.id)
            logger.warning(
                "login_failed",
                reason="bad_password",
                account_id=str(account.id),
                attempts=state.failed_attempts,
            )
            now = self._clock()
            if state.is_locked(now):
                raise AccountLockedError(state.retry_after_seconds(now))
            raise InvalidCredentialsError()

        if not account.can_login:
            logger.warning(
                "login_failed",
                reason="account_status",
                account_id=str(account.id),
                status=account.status.value,
            )
            raise InvalidCredentialsError()

        # Credentials are good: clear failures even if scoping fails below.
        await self._lockout.reset(account.id)
        subject = await self._subject_for(account, workspace_id)
        pair = await self._tokens.issue(subject)

        logger.info("login_succeeded", account_id=str(account.id))
        return pair

    @retry_transient()
    async def refresh(self, refresh_token: str) -> TokenPair:
        """Rotate a refresh token into a new pair.

        Raises:
            InvalidTokenError: Unknown, expired or reused token, or the
                account can no longer sign in.
        """
        return await self._tokens.rotate_refresh(refresh_token, self._load_subject)

    @retry_transient()
    async def logout(self, refresh_token: str) -> None:
        """End the session the refresh token belongs to."""
        await self._tokens.revoke(refresh_token)

    @retry_transient()
    async def logout_all(self, account_id: UUID) -> int:
        """End every session of the account."""
        return await self._tokens.revoke_all_for_account(account_id)

    @retry_transient()
    async def change_password(
        self, account_id: UUID, current_password: str, new_password: str
    ) -> None:
        """Replace the password and end all existing sessions.

        Raises:
            InvalidCredentialsError: If the current password is wrong.
            ValidationError: If the new password is too short.
        """
        self._validate_password(new_password)
        async with self._uow_factory() as uow:
            account = await uow.accounts.get(account_id)
            if not account:
                raise AccountNotFoundError(str(account_id))
            if not self._hasher.verify(current_password, account.password_hash):
                logger.warning("password_change_failed", account_id=str(account_id))
                raise InvalidCredentialsError()
            await uow.accounts.update_password_hash(account_id, self._hasher.hash(new_password))
            await uow.commit()

        await self._tokens.revoke_all_for_account(account_id)
        logger.info("password_changed", account_id=str(account_id))

    @retry_transient()
    async def authorize(self, access_token: str) -> AccessClaims:
        """Verify an access token and check its session is still open.

        Raises:
            InvalidTokenError: Bad, expired or revoked-session token.
        """
        claims = self._tokens.verify_access(access_token)
        if not await self._tokens.lineage_is_active(claims.session_id):
            logger.info(
                "access_token_invalid",
                reason="session_revoked",
                account_id=str(claims.account_id),
            )
            raise InvalidTokenError()
        return claims

    async def get_account(self, account_id: UUID) -> Account:
        async with self._uow_factory() as uow:
            account = await uow.accounts.get(account_id)
            if not account:
                raise AccountNotFoundError(str(account_id))
            return account

    # --- Internal helpers ---

    @retry_transient()
    async def _find_account(self, email: str) -> Account | None:
        async with self._uow_factory() as uow:
            return await uow.accounts.get_by_email(email)

    @retry_transient()
    async def _subject_for(self, account: Account, workspace_id: UUID | None) -> TokenSubject:
        if workspace_id is None:
            return TokenSubject(account_id=account.id, email=account.email)

        async with self._uow_factory() as uow:
            member = await uow.workspaces.get_member(workspace_id, account.id)
        if not member:
            raise NotAMemberError(str(workspace_id))
        return TokenSubject(
            account_id=account.id,
            email=account.email,
            workspace_id=workspace_id,
            role=member.role,
        )

    @staticmethod
    async def _load_subject(uow: IUnitOfWork, record: RefreshTokenRecord) -> TokenSubject | None:
        """Rebuild claims from current data so role changes apply on refresh."""
        account = await uow.accounts.get(record.account_id)
        if not account or not account.can_login:
            return None

        if record.workspace_id is None:
            return TokenSubject(account_id=account.id, email=account.email)

        member = await uow.workspaces.get_member(record.workspace_id, account.id)
        if not member:
            # Removed from the workspace: keep the session, drop the scope.
            return TokenSubject(account_id=account.id, email=account.email)
        return TokenSubject(
            account_id=account.id,
            email=account.email,
            workspace_id=record.workspace_id,
            role=member.role,
        )

    @staticmethod
    def _validate_password(password: str) -> None:
        if len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
                details={"field": "password"},
            )
