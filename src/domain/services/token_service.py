"""Access/refresh token issuance, verification and rotation."""

import hashlib
import secrets
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

import structlog

from core.config import settings
from core.exceptions import (
    InvalidTokenError,
    TokenExpiredError,
    TokenReuseDetectedError,
)
from core.retry import retry_transient
from domain.entities.token import (
    AccessClaims,
    RefreshTokenRecord,
    TokenPair,
    TokenSubject,
)
from domain.entities.workspace import WorkspaceRole
from domain.ports import Clock, ITokenSigner, utcnow
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()

ACCESS_TOKEN_TYPE = "access"


def _timestamp(value: datetime) -> int:
    return int((value - datetime(1970, 1, 1)).total_seconds())


def _from_timestamp(value: int) -> datetime:
    return datetime(1970, 1, 1) + timedelta(seconds=value)


class TokenService:
    """Issues signed access tokens and single-use refresh tokens.

    Refresh tokens form lineages: login creates a root record, and every
    rotation supersedes the presented record and creates its successor.
    Presenting a record that is no longer active revokes the whole lineage.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        signer: ITokenSigner,
        clock: Clock = utcnow,
        access_ttl: timedelta | None = None,
        refresh_ttl: timedelta | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._signer = signer
        self._clock = clock
        self._access_ttl = access_ttl or timedelta(minutes=settings.access_token_expire_minutes)
        self._refresh_ttl = refresh_ttl or timedelta(days=settings.refresh_token_expire_days)

    @retry_transient()
    async def issue(self, subject: TokenSubject) -> TokenPair:
        """Issue a token pair that starts a new lineage."""
        now = self._clock()
        raw_refresh = self._new_refresh_token()
        record = RefreshTokenRecord(
            account_id=subject.account_id,
            workspace_id=subject.workspace_id,
            token_hash=self.hash_token(raw_refresh),
            issued_at=now,
            expires_at=now + self._refresh_ttl,
        )

        async with self._uow_factory() as uow:
            created = await uow.refresh_tokens.create(record)
            await uow.commit()

        assert created.lineage_id is not None
        return self._pair(subject, created.lineage_id, raw_refresh, now)

    def verify_access(self, token: str) -> AccessClaims:
        """Verify an access token's signature, type and expiry.

        Pure: no store access. Expired and invalid tokens raise different
        exception types but present identically to callers.
        """
        try:
            payload = self._signer.verify(token)
        except InvalidTokenError:
            logger.info("access_token_invalid", reason="signature")
            raise

        try:
            claims = self._parse_claims(payload)
        except (KeyError, TypeError, ValueError) as exc:
            logger.info("access_token_invalid", reason="malformed_claims", error=str(exc))
            raise InvalidTokenError() from exc

        if self._clock() >= claims.expires_at:
            logger.info("access_token_expired", account_id=str(claims.account_id))
            raise TokenExpiredError()

        return claims

    async def rotate_refresh(
        self,
        token: str,
        subject_loader: Callable[
            [IUnitOfWork, RefreshTokenRecord], Awaitable[TokenSubject | None]
        ],
    ) -> TokenPair:
        """Exchange a refresh token for a new pair (rotation-on-use).

        ``subject_loader`` rebuilds the token subject from current account
        and membership data inside the rotation's unit of work; it returns
        None when the account may no longer hold a session.

        Raises:
            InvalidTokenError: Unknown token or account no longer eligible.
            TokenExpiredError: The active record is past its expiry.
            TokenReuseDetectedError: The record was already superseded or
                revoked, or a concurrent rotation won the race.
        """
        now = self._clock()
        token_hash = self.hash_token(token)

        async with self._uow_factory() as uow:
            record = await uow.refresh_tokens.get_by_token_hash(token_hash)
            if not record:
                logger.info("refresh_token_unknown")
                raise InvalidTokenError()

            if not record.is_active:
                await self._handle_reuse(uow, record, now)

            if record.is_expired(now):
                logger.info("refresh_token_expired", account_id=str(record.account_id))
                raise TokenExpiredError()

            subject = await subject_loader(uow, record)
            if subject is None:
                assert record.lineage_id is not None
                await uow.refresh_tokens.revoke_lineage(record.lineage_id, now)
                await uow.commit()
                logger.warning(
                    "refresh_denied_ineligible_account", account_id=str(record.account_id)
                )
                raise InvalidTokenError()

            raw_refresh = self._new_refresh_token()
            successor = record.successor(
                token_hash=self.hash_token(raw_refresh),
                issued_at=now,
                expires_at=now + self._refresh_ttl,
            )

            if not await uow.refresh_tokens.supersede(record.id, successor.id):
                # Someone else rotated or revoked this record between our read
                # and our write: same signal as presenting a used token.
                await uow.rollback()
                await self._handle_reuse(uow, record, now)

            await uow.refresh_tokens.create(successor)
            await uow.commit()

        assert record.lineage_id is not None
        logger.info(
            "refresh_token_rotated",
            account_id=str(record.account_id),
            lineage_id=str(record.lineage_id),
        )
        return self._pair(subject, record.lineage_id, raw_refresh, now)

    async def revoke(self, token: str) -> None:
        """Revoke the lineage the refresh token belongs to (logout)."""
        async with self._uow_factory() as uow:
            record = await uow.refresh_tokens.get_by_token_hash(self.hash_token(token))
            if not record:
                logger.info("logout_unknown_refresh_token")
                return
            assert record.lineage_id is not None
            revoked = await uow.refresh_tokens.revoke_lineage(record.lineage_id, self._clock())
            await uow.commit()
        logger.info(
            "refresh_lineage_revoked",
            account_id=str(record.account_id),
            lineage_id=str(record.lineage_id),
            records=revoked,
        )

    async def revoke_all_for_account(self, account_id: UUID) -> int:
        """Revoke every open session of an account."""
        async with self._uow_factory() as uow:
            revoked = await uow.refresh_tokens.revoke_all_for_account(account_id, self._clock())
            await uow.commit()
        logger.info("account_sessions_revoked", account_id=str(account_id), records=revoked)
        return revoked

    async def lineage_is_active(self, lineage_id: UUID) -> bool:
        """Whether a session (lineage) can still be used."""
        async with self._uow_factory() as uow:
            return await uow.refresh_tokens.lineage_is_active(lineage_id, self._clock())

    @staticmethod
    def hash_token(token: str) -> str:
        """Hash a raw refresh token using SHA-256."""
        return hashlib.sha256(token.encode()).hexdigest()

    # --- Internal helpers ---

    async def _handle_reuse(
        self, uow: IUnitOfWork, record: RefreshTokenRecord, now: datetime
    ) -> None:
        assert record.lineage_id is not None
        revoked = await uow.refresh_tokens.revoke_lineage(record.lineage_id, now)
        await uow.commit()
        logger.warning(
            "refresh_token_reuse_detected",
            account_id=str(record.account_id),
            lineage_id=str(record.lineage_id),
            record_id=str(record.id),
            record_status=record.status.value,
            revoked_records=revoked,
        )
        raise TokenReuseDetectedError()

    def _pair(
        self, subject: TokenSubject, lineage_id: UUID, raw_refresh: str, now: datetime
    ) -> TokenPair:
        expires_at = now + self._access_ttl
        claims: dict[str, Any] = {
            "sub": str(subject.account_id),
            "email": subject.email,
            "workspace_id": str(subject.workspace_id) if subject.workspace_id else None,
            "role": subject.role.label if subject.role is not None else None,
            "sid": str(lineage_id),
            "iat": _timestamp(now),
            "exp": _timestamp(expires_at),
            "type": ACCESS_TOKEN_TYPE,
        }
        return TokenPair(
            access_token=self._signer.sign(claims),
            refresh_token=raw_refresh,
            expires_in=int(self._access_ttl.total_seconds()),
        )

    @staticmethod
    def _parse_claims(payload: dict[str, Any]) -> AccessClaims:
        if payload.get("type") != ACCESS_TOKEN_TYPE:
            raise ValueError("not an access token")
        workspace_id = payload.get("workspace_id")
        role = payload.get("role")
        return AccessClaims(
            account_id=UUID(payload["sub"]),
            email=payload["email"],
            session_id=UUID(payload["sid"]),
            issued_at=_from_timestamp(int(payload["iat"])),
            expires_at=_from_timestamp(int(payload["exp"])),
            workspace_id=UUID(workspace_id) if workspace_id else None,
            role=WorkspaceRole.from_label(role) if role else None,
        )

    @staticmethod
    def _new_refresh_token() -> str:
        return secrets.token_urlsafe(32)
