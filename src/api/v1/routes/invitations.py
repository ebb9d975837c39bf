"""Invitation API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from api.dependencies.auth import CurrentUser
from api.dependencies.services import get_invitation_service
from api.v1.schemas.invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    CreateInvitationRequest,
    InvitationCreatedResponse,
    InvitationListResponse,
    InvitationResponse,
)
from core.rate_limit import READ_RATE_LIMIT, WRITE_RATE_LIMIT, limiter
from domain.entities.invitation import Invitation
from domain.entities.workspace import WorkspaceRole
from domain.services.invitation_service import InvitationService

# Workspace-scoped invitation routes
workspace_invitations_router = APIRouter(
    prefix="/workspaces/{workspace_id}/invitations",
    tags=["invitations"],
)

# User-scoped invitation routes (accept, pending)
invitations_router = APIRouter(
    prefix="/invitations",
    tags=["invitations"],
)


@workspace_invitations_router.post(
    "",
    response_model=InvitationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create workspace invitation",
    responses={
        201: {"description": "Invitation created"},
        403: {"description": "Insufficient permissions (Admin+ only)"},
        404: {"description": "Workspace not found"},
        409: {"description": "Duplicate invitation or already a member"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def create_invitation(
    request: Request,
    workspace_id: UUID,
    body: CreateInvitationRequest,
    user: CurrentUser,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationCreatedResponse:
    """Create an invitation to join a workspace. Requires Admin+ role."""
    invitation, raw_token = await service.invite(
        workspace_id=workspace_id,
        user_id=user.account_id,
        email=body.email,
        role=WorkspaceRole.from_label(body.role),
    )
    return InvitationCreatedResponse(
        data=_build_invitation_response(invitation),
        token=raw_token,
    )


@workspace_invitations_router.get(
    "",
    response_model=InvitationListResponse,
    summary="List workspace invitations",
    responses={
        200: {"description": "Invitations of the workspace, newest first"},
        403: {"description": "Insufficient permissions (Admin+ only)"},
        404: {"description": "Workspace not found"},
    },
)
@limiter.limit(READ_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def list_workspace_invitations(
    request: Request,
    workspace_id: UUID,
    user: CurrentUser,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationListResponse:
    """Get all invitations for a workspace. Requires Admin+ role."""
    invitations = await service.list_for_workspace(workspace_id, user.account_id)
    data = [_build_invitation_response(inv) for inv in invitations]
    return InvitationListResponse(data=data, meta={"total": len(data)})


@workspace_invitations_router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Cancel invitation",
    responses={
        204: {"description": "Invitation cancelled"},
        403: {"description": "Insufficient permissions (Admin+ only)"},
        404: {"description": "Invitation not found"},
        409: {"description": "Invitation already accepted"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def cancel_invitation(
    request: Request,
    workspace_id: UUID,
    invitation_id: UUID,
    user: CurrentUser,
    service: InvitationService = Depends(get_invitation_service),
) -> None:
    """Cancel a pending invitation. Requires Admin+ role."""
    await service.cancel(workspace_id, invitation_id, user.account_id)
    return None


@invitations_router.post(
    "/accept",
    response_model=AcceptInvitationResponse,
    summary="Accept invitation",
    responses={
        200: {"description": "Invitation accepted, membership created"},
        400: {"description": "Invitation expired"},
        403: {"description": "Invitation was sent to a different email"},
        404: {"description": "Invitation not found"},
        409: {"description": "Already accepted or already a member"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def accept_invitation(
    request: Request,
    body: AcceptInvitationRequest,
    user: CurrentUser,
    service: InvitationService = Depends(get_invitation_service),
) -> AcceptInvitationResponse:
    """Accept a workspace invitation with the token shared by the inviter."""
    member = await service.accept(body.token, user.account_id)
    return AcceptInvitationResponse(
        membership_id=member.id,
        workspace_id=member.workspace_id,
        role=member.role.label,
    )


@invitations_router.get(
    "/pending",
    response_model=InvitationListResponse,
    summary="List my pending invitations",
    responses={200: {"description": "Pending invitations for the caller's email"}},
)
@limiter.limit(READ_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def get_pending_invitations(
    request: Request,
    user: CurrentUser,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationListResponse:
    """Get pending invitations addressed to the authenticated user."""
    invitations = await service.list_pending_for_email(user.email)
    data = [_build_invitation_response(inv) for inv in invitations]
    return InvitationListResponse(data=data, meta={"total": len(data)})


def _build_invitation_response(invitation: Invitation) -> InvitationResponse:
    """Convert domain entity to response schema."""
    return InvitationResponse(
        id=invitation.id,
        workspace_id=invitation.workspace_id,
        email=invitation.email,
        role=invitation.role.label,
        status=invitation.status.value,
        invited_by=invitation.invited_by,
        created_at=invitation.created_at,
        expires_at=invitation.expires_at,
        accepted_at=invitation.accepted_at,
    )
