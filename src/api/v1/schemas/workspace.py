"""Pydantic schemas for Workspace API."""

from datetime import datetime
from typing import Any, List
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from api.v1.schemas.common import ROLE_PATTERN


class WorkspaceCreate(BaseModel):
    """Schema for creating a Workspace."""

    name: str = Field(..., min_length=1, max_length=255)


class WorkspaceUpdate(BaseModel):
    """Schema for renaming a Workspace."""

    name: str = Field(..., min_length=1, max_length=255)


class WorkspaceResponse(BaseModel):
    """Schema for Workspace response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "My Team",
                "slug": "my-team",
                "owner_id": "456e4567-e89b-12d3-a456-426614174000",
                "status": "active",
                "created_at": "2026-02-01T10:00:00",
                "updated_at": "2026-02-01T10:00:00",
            }
        },
    )

    id: UUID
    name: str
    slug: str
    owner_id: UUID
    status: str
    created_at: datetime
    updated_at: datetime


class WorkspaceMemberResponse(BaseModel):
    """Schema for Workspace Member response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    workspace_id: UUID
    user_id: UUID
    role: str
    joined_at: datetime
    invited_by: UUID | None = None


class WorkspaceListResponse(BaseModel):
    """Schema for list of Workspaces response."""

    data: List[WorkspaceResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class WorkspaceDetailResponse(BaseModel):
    """Schema for single Workspace response."""

    data: WorkspaceResponse


class WorkspaceMemberListResponse(BaseModel):
    """Schema for list of Workspace Members response."""

    data: List[WorkspaceMemberResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class WorkspaceMemberDetailResponse(BaseModel):
    """Schema for single Workspace Member response."""

    data: WorkspaceMemberResponse


class AddMemberRequest(BaseModel):
    """Schema for adding a member to a workspace."""

    user_id: UUID
    role: str = Field("member", pattern=ROLE_PATTERN)


class UpdateMemberRoleRequest(BaseModel):
    """Schema for updating a member's role."""

    role: str = Field(..., pattern=ROLE_PATTERN)


class TransferOwnershipRequest(BaseModel):
    """Schema for transferring workspace ownership."""

    new_owner_id: UUID


class PermissionCheckResponse(BaseModel):
    """Schema for a capability check."""

    workspace_id: UUID
    capability: str
    allowed: bool
