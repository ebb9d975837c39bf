"""Workspace API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from api.dependencies.auth import CurrentUser
from api.dependencies.services import get_workspace_service
from api.v1.schemas.workspace import (
    AddMemberRequest,
    PermissionCheckResponse,
    TransferOwnershipRequest,
    UpdateMemberRoleRequest,
    WorkspaceCreate,
    WorkspaceDetailResponse,
    WorkspaceListResponse,
    WorkspaceMemberDetailResponse,
    WorkspaceMemberListResponse,
    WorkspaceMemberResponse,
    WorkspaceResponse,
    WorkspaceUpdate,
)
from core.rate_limit import READ_RATE_LIMIT, WRITE_RATE_LIMIT, limiter
from domain.entities.workspace import Capability, Workspace, WorkspaceMember, WorkspaceRole
from domain.services.workspace_service import WorkspaceService

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


@router.get(
    "",
    response_model=WorkspaceListResponse,
    summary="List user's workspaces",
    responses={200: {"description": "List of workspaces the user belongs to"}},
)
@limiter.limit(READ_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def list_workspaces(
    request: Request,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceListResponse:
    """Get all workspaces the authenticated user is a member of."""
    workspaces = await service.get_all_for_user(user.account_id)
    data = [_build_workspace_response(ws) for ws in workspaces]
    return WorkspaceListResponse(data=data, meta={"total": len(data)})


@router.post(
    "",
    response_model=WorkspaceDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workspace",
    responses={
        201: {"description": "Workspace created successfully"},
        409: {"description": "Workspace slug already taken"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def create_workspace(
    request: Request,
    body: WorkspaceCreate,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceDetailResponse:
    """Create a new workspace. The creator is automatically added as Owner."""
    workspace = await service.create(owner_id=user.account_id, name=body.name)
    return WorkspaceDetailResponse(data=_build_workspace_response(workspace))


@router.get(
    "/{workspace_id}",
    response_model=WorkspaceDetailResponse,
    summary="Get workspace details",
    responses={
        200: {"description": "Workspace details"},
        403: {"description": "Not a member"},
        404: {"description": "Workspace not found"},
    },
)
@limiter.limit(READ_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def get_workspace(
    request: Request,
    workspace_id: UUID,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceDetailResponse:
    """Get a specific workspace by ID. Requires membership."""
    workspace = await service.get_by_id(workspace_id, user.account_id)
    return WorkspaceDetailResponse(data=_build_workspace_response(workspace))


@router.patch(
    "/{workspace_id}",
    response_model=WorkspaceDetailResponse,
    summary="Rename workspace",
    responses={
        200: {"description": "Workspace updated"},
        403: {"description": "Insufficient permissions"},
        404: {"description": "Workspace not found"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def update_workspace(
    request: Request,
    workspace_id: UUID,
    body: WorkspaceUpdate,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceDetailResponse:
    """Rename a workspace. Requires Admin+ role."""
    workspace = await service.update(
        workspace_id=workspace_id,
        user_id=user.account_id,
        name=body.name,
    )
    return WorkspaceDetailResponse(data=_build_workspace_response(workspace))


@router.delete(
    "/{workspace_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete workspace",
    responses={
        204: {"description": "Workspace deleted"},
        403: {"description": "Insufficient permissions (Owner only)"},
        404: {"description": "Workspace not found"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def delete_workspace(
    request: Request,
    workspace_id: UUID,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> None:
    """Soft-delete a workspace. Requires Owner role."""
    await service.delete(workspace_id, user.account_id)
    return None


@router.get(
    "/{workspace_id}/permissions/{capability}",
    response_model=PermissionCheckResponse,
    summary="Check a capability",
    responses={200: {"description": "Whether the caller holds the capability"}},
)
@limiter.limit(READ_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def check_permission(
    request: Request,
    workspace_id: UUID,
    capability: Capability,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> PermissionCheckResponse:
    """Check whether the caller may perform ``capability`` in the workspace.

    Never fails for non-members or unknown workspaces; ``allowed`` is false.
    """
    allowed = await service.check_permission(workspace_id, user.account_id, capability)
    return PermissionCheckResponse(
        workspace_id=workspace_id,
        capability=capability.value,
        allowed=allowed,
    )


# --- Member Management ---


@router.get(
    "/{workspace_id}/members",
    response_model=WorkspaceMemberListResponse,
    summary="List workspace members",
    responses={
        200: {"description": "List of workspace members"},
        403: {"description": "Not a member"},
        404: {"description": "Workspace not found"},
    },
)
@limiter.limit(READ_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def list_members(
    request: Request,
    workspace_id: UUID,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceMemberListResponse:
    """Get all members of a workspace. Requires membership."""
    members = await service.get_members(workspace_id, user.account_id)
    data = [_build_member_response(m) for m in members]
    return WorkspaceMemberListResponse(data=data, meta={"total": len(data)})


@router.post(
    "/{workspace_id}/members",
    response_model=WorkspaceMemberDetailResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add workspace member",
    responses={
        201: {"description": "Member added"},
        403: {"description": "Insufficient permissions (Admin+ only)"},
        404: {"description": "Workspace or account not found"},
        409: {"description": "User is already a member"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def add_member(
    request: Request,
    workspace_id: UUID,
    body: AddMemberRequest,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceMemberDetailResponse:
    """Add an existing account to a workspace. Requires Admin+ role."""
    member = await service.add_member(
        workspace_id=workspace_id,
        user_id=user.account_id,
        target_user_id=body.user_id,
        role=WorkspaceRole.from_label(body.role),
    )
    return WorkspaceMemberDetailResponse(data=_build_member_response(member))


@router.patch(
    "/{workspace_id}/members/{member_user_id}",
    response_model=WorkspaceMemberDetailResponse,
    summary="Change member role",
    responses={
        200: {"description": "Role updated"},
        403: {"description": "Owner only, or would leave the workspace without an owner"},
        404: {"description": "Workspace or member not found"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def change_member_role(
    request: Request,
    workspace_id: UUID,
    member_user_id: UUID,
    body: UpdateMemberRoleRequest,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceMemberDetailResponse:
    """Change a member's role. Requires Owner role."""
    member = await service.change_role(
        workspace_id=workspace_id,
        user_id=user.account_id,
        target_user_id=member_user_id,
        role=WorkspaceRole.from_label(body.role),
    )
    return WorkspaceMemberDetailResponse(data=_build_member_response(member))


@router.delete(
    "/{workspace_id}/members/{member_user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Remove workspace member",
    responses={
        204: {"description": "Member removed"},
        403: {"description": "Insufficient permissions or last owner"},
        404: {"description": "Workspace or member not found"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def remove_member(
    request: Request,
    workspace_id: UUID,
    member_user_id: UUID,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> None:
    """Remove a member from a workspace or leave the workspace."""
    await service.remove_member(
        workspace_id=workspace_id,
        user_id=user.account_id,
        target_user_id=member_user_id,
    )
    return None


@router.post(
    "/{workspace_id}/transfer-ownership",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Transfer workspace ownership",
    responses={
        204: {"description": "Ownership transferred"},
        403: {"description": "Must be workspace owner"},
        404: {"description": "Workspace not found or target not a member"},
    },
)
@limiter.limit(WRITE_RATE_LIMIT)  # type: ignore[untyped-decorator]
async def transfer_ownership(
    request: Request,
    workspace_id: UUID,
    body: TransferOwnershipRequest,
    user: CurrentUser,
    service: WorkspaceService = Depends(get_workspace_service),
) -> None:
    """Transfer workspace ownership to another member. Requires Owner role."""
    await service.transfer_ownership(
        workspace_id=workspace_id,
        current_owner_id=user.account_id,
        new_owner_id=body.new_owner_id,
    )
    return None


def _build_workspace_response(workspace: Workspace) -> WorkspaceResponse:
    """Convert domain entity to response schema."""
    return WorkspaceResponse(
        id=workspace.id,
        name=workspace.name,
        slug=workspace.slug,
        owner_id=workspace.owner_id,
        status=workspace.status.value,
        created_at=workspace.created_at,
        updated_at=workspace.updated_at,
    )


def _build_member_response(member: WorkspaceMember) -> WorkspaceMemberResponse:
    """Convert domain entity to response schema."""
    return WorkspaceMemberResponse(
        id=member.id,
        workspace_id=member.workspace_id,
        user_id=member.user_id,
        role=member.role.label,
        joined_at=member.joined_at,
        invited_by=member.invited_by,
    )
