"""Authentication API routes."""

from fastapi import APIRouter, Depends, Request, status

from api.dependencies.auth import CurrentUser
from api.dependencies.services import get_auth_service
from api.v1.schemas.auth import (
    AccountResponse,
    ChangePasswordRequest,
    LoginRequest,
    MeResponse,
    RefreshRequest,
    SessionsRevokedResponse,
    SignUpRequest,
    TokenPairResponse,
)
from core.rate_limit import AUTH_RATE_LIMIT, READ_RATE_LIMIT, WRITE_RATE_LIMIT, limiter
from domain.entities.token import TokenPair
from domain.services.auth_service import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/signup",
    response_model=AccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register an account",
    responses={
        201: {"description": "Account created"},
        409: {"description": "Email already registered"},
    },
)
@limiter.limit(AUTH_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def sign_up(
    request: Request,
    body: SignUpRequest,
    service: AuthService = Depends(get_auth_service),
) -> AccountResponse:
    """Create an account with email and password."""
    account = await service.sign_up(body.email, body.password)
    return AccountResponse(
        id=account.id,
        email=account.email,
        status=account.status.value,
        created_at=account.created_at,
    )


@router.post(
    "/login",
    response_model=TokenPairResponse,
    summary="Log in",
    responses={
        200: {"description": "Token pair issued"},
        401: {"description": "Invalid credentials or account locked"},
        403: {"description": "Not a member of the requested workspace"},
    },
)
@limiter.limit(AUTH_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def login(
    request: Request,
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    """Exchange email and password for an access/refresh token pair."""
    pair = await service.login(body.email, body.password, workspace_id=body.workspace_id)
    return _build_token_response(pair)


@router.post(
    "/refresh",
    response_model=TokenPairResponse,
    summary="Rotate refresh token",
    responses={
        200: {"description": "New token pair issued"},
        401: {"description": "Invalid, expired or reused refresh token"},
    },
)
@limiter.limit(AUTH_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def refresh(
    request: Request,
    body: RefreshRequest,
    service: AuthService = Depends(get_auth_service),
) -> TokenPairResponse:
    """Exchange a refresh token for a new pair. Each refresh token works once."""
    pair = await service.refresh(body.refresh_token)
    return _build_token_response(pair)


@router.post(
    "/logout",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Log out",
    responses={204: {"description": "Session ended"}},
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def logout(
    request: Request,
    body: RefreshRequest,
    service: AuthService = Depends(get_auth_service),
) -> None:
    """End the session of the given refresh token. Unknown tokens are ignored."""
    await service.logout(body.refresh_token)
    return None


@router.post(
    "/logout-all",
    response_model=SessionsRevokedResponse,
    summary="Log out everywhere",
    responses={200: {"description": "All sessions of the caller ended"}},
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def logout_all(
    request: Request,
    user: CurrentUser,
    service: AuthService = Depends(get_auth_service),
) -> SessionsRevokedResponse:
    """End every session of the authenticated account."""
    revoked = await service.logout_all(user.account_id)
    return SessionsRevokedResponse(revoked=revoked)


@router.post(
    "/password",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Change password",
    responses={
        204: {"description": "Password changed, all sessions ended"},
        401: {"description": "Current password is wrong"},
    },
)
@limiter.limit(AUTH_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def change_password(
    request: Request,
    body: ChangePasswordRequest,
    user: CurrentUser,
    service: AuthService = Depends(get_auth_service),
) -> None:
    """Change the caller's password. Existing sessions stop working."""
    await service.change_password(user.account_id, body.current_password, body.new_password)
    return None


@router.get(
    "/me",
    response_model=MeResponse,
    summary="Current caller",
    responses={200: {"description": "Claims of the presented access token"}},
)
@limiter.limit(READ_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def me(request: Request, user: CurrentUser) -> MeResponse:
    """Return who the access token belongs to."""
    return MeResponse(
        id=user.account_id,
        email=user.email,
        workspace_id=user.workspace_id,
        role=user.role.label if user.role is not None else None,
    )


def _build_token_response(pair: TokenPair) -> TokenPairResponse:
    """Convert domain value to response schema."""
    return TokenPairResponse(
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        token_type=pair.token_type,
        expires_in=pair.expires_in,
    )
