"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    INVALID_TOKEN = "INVALID_TOKEN"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"
    NOT_A_MEMBER = "NOT_A_MEMBER"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    LAST_OWNER = "LAST_OWNER"
    INVITATION_EMAIL_MISMATCH = "INVITATION_EMAIL_MISMATCH"

    # Not found errors (404)
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    WORKSPACE_NOT_FOUND = "WORKSPACE_NOT_FOUND"
    MEMBER_NOT_FOUND = "MEMBER_NOT_FOUND"
    INVITATION_NOT_FOUND = "INVITATION_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVITATION_EXPIRED = "INVITATION_EXPIRED"

    # Conflict errors (409)
    EMAIL_ALREADY_REGISTERED = "EMAIL_ALREADY_REGISTERED"
    WORKSPACE_SLUG_TAKEN = "WORKSPACE_SLUG_TAKEN"
    ALREADY_A_MEMBER = "ALREADY_A_MEMBER"
    DUPLICATE_INVITATION = "DUPLICATE_INVITATION"
    INVITATION_ALREADY_ACCEPTED = "INVITATION_ALREADY_ACCEPTED"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.headers = headers
        super().__init__(self.message)


class ValidationError(AppException):
    """Input was malformed or no longer valid."""

    def __init__(self, message: str = "Validation failed", details: Any | None = None) -> None:
        super().__init__(
            error_code=ErrorCode.VALIDATION_ERROR,
            message=message,
            status_code=400,
            details=details,
        )


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
        details: Any | None = None,
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
            details=details,
            headers=headers,
        )


class InvalidCredentialsError(AuthenticationError):
    """Email/password pair was rejected.

    The message never says which half was wrong.
    """

    def __init__(self) -> None:
        super().__init__(
            message="Invalid email or password",
            error_code=ErrorCode.INVALID_CREDENTIALS,
        )


class InvalidTokenError(AuthenticationError):
    """A token failed verification.

    Subclasses exist so the root cause can be logged, but every one of them
    reaches the caller with the same code and message.
    """

    def __init__(self) -> None:
        super().__init__(
            message="Invalid or expired token",
            error_code=ErrorCode.INVALID_TOKEN,
        )


class TokenExpiredError(InvalidTokenError):
    """Token signature was fine but it is past its expiry."""


class TokenReuseDetectedError(InvalidTokenError):
    """A superseded or revoked refresh token was presented again."""


class AccountLockedError(AuthenticationError):
    """Too many failed logins; the account is temporarily locked."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            message="Account is temporarily locked. Try again later.",
            error_code=ErrorCode.ACCOUNT_LOCKED,
            details={"retry_after": retry_after},
            headers={"Retry-After": str(retry_after)},
        )
        self.retry_after = retry_after


class AuthorizationError(AppException):
    """Authorization failed."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
        )


class NotAMemberError(AppException):
    """User is not a member of the workspace."""

    def __init__(self, workspace_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.NOT_A_MEMBER,
            message="You are not a member of this workspace",
            status_code=403,
            details={"workspace_id": workspace_id},
        )


class InsufficientPermissionsError(AppException):
    """User does not have sufficient permissions."""

    def __init__(self, required_role: str = "admin") -> None:
        super().__init__(
            error_code=ErrorCode.INSUFFICIENT_PERMISSIONS,
            message=f"Insufficient permissions. Required role: {required_role}",
            status_code=403,
            details={"required_role": required_role},
        )


class LastOwnerError(AppException):
    """Cannot remove or demote the last owner of a workspace."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.LAST_OWNER,
            message="Cannot remove or demote the last owner of a workspace",
            status_code=403,
        )


class AccountNotFoundError(AppException):
    """Account not found."""

    def __init__(self, account_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.ACCOUNT_NOT_FOUND,
            message=f"Account not found: {account_id}",
            status_code=404,
            details={"account_id": account_id},
        )


class WorkspaceNotFoundError(AppException):
    """Workspace not found."""

    def __init__(self, workspace_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.WORKSPACE_NOT_FOUND,
            message=f"Workspace not found: {workspace_id}",
            status_code=404,
            details={"workspace_id": workspace_id},
        )


class MemberNotFoundError(AppException):
    """Target user is not a member of the workspace."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.MEMBER_NOT_FOUND,
            message="User is not a member of this workspace",
            status_code=404,
            details={"user_id": user_id},
        )


class EmailAlreadyRegisteredError(AppException):
    """An active account already uses this email."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.EMAIL_ALREADY_REGISTERED,
            message="An account with this email already exists",
            status_code=409,
        )


class WorkspaceSlugTakenError(AppException):
    """Workspace slug is already taken."""

    def __init__(self, slug: str) -> None:
        super().__init__(
            error_code=ErrorCode.WORKSPACE_SLUG_TAKEN,
            message=f"Workspace slug already taken: {slug}",
            status_code=409,
            details={"slug": slug},
        )


class AlreadyAMemberError(AppException):
    """User is already a member of the workspace."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.ALREADY_A_MEMBER,
            message="User is already a member of this workspace",
            status_code=409,
            details={"user_id": user_id},
        )


class InvitationNotFoundError(AppException):
    """Invitation not found."""

    def __init__(self, invitation_id: str = "") -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_NOT_FOUND,
            message="Invitation not found",
            status_code=404,
            details={"invitation_id": invitation_id} if invitation_id else None,
        )


class InvitationExpiredError(AppException):
    """Invitation has expired."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_EXPIRED,
            message="This invitation has expired",
            status_code=400,
        )


class InvitationAlreadyAcceptedError(AppException):
    """Invitation has already been accepted."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_ALREADY_ACCEPTED,
            message="This invitation has already been accepted",
            status_code=409,
        )


class DuplicateInvitationError(AppException):
    """A pending invitation already exists for this email and workspace."""

    def __init__(self, email: str) -> None:
        super().__init__(
            error_code=ErrorCode.DUPLICATE_INVITATION,
            message="A pending invitation already exists for this email",
            status_code=409,
            details={"email": email},
        )


class InvitationEmailMismatchError(AppException):
    """The user's email does not match the invitation email."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_EMAIL_MISMATCH,
            message="Your email does not match the invitation email",
            status_code=403,
        )


class StoreUnavailableError(AppException):
    """The backing store timed out or refused the connection."""

    def __init__(self, message: str = "Service temporarily unavailable") -> None:
        super().__init__(
            error_code=ErrorCode.SERVICE_UNAVAILABLE,
            message=message,
            status_code=503,
        )
