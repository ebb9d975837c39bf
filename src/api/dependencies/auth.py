"""Authentication dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from api.dependencies.services import get_auth_service
from core.exceptions import AuthenticationError, ErrorCode
from domain.entities.token import AccessClaims
from domain.services.auth_service import AuthService

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(security),
    ],
    auth_service: AuthService = Depends(get_auth_service),
) -> AccessClaims:
    """
    Dependency to get the claims of the authenticated caller.

    Raises:
        AuthenticationError: If no token provided
        InvalidTokenError: If the token is invalid, expired or its session
            has been revoked
    """
    if not credentials:
        raise AuthenticationError(
            message="Authorization header required",
            error_code=ErrorCode.UNAUTHORIZED,
        )

    return await auth_service.authorize(credentials.credentials)


# Type alias for convenience in route handlers
CurrentUser = Annotated[AccessClaims, Depends(get_current_user)]
