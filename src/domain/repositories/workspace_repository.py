"""Workspace repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.workspace import Workspace, WorkspaceMember, WorkspaceRole


class IWorkspaceRepository(Protocol):
    """Repository interface for Workspace entities and their memberships."""

    async def get(self, id: UUID) -> Workspace | None:
        """Get a non-deleted workspace by ID."""
        ...

    async def get_for_update(self, id: UUID) -> Workspace | None:
        """Get a workspace and lock its row until the transaction ends."""
        ...

    async def get_by_slug(self, slug: str) -> Workspace | None:
        """Get a workspace by slug."""
        ...

    async def get_all_for_user(self, user_id: UUID) -> list[Workspace]:
        """Get all non-deleted workspaces a user is a member of."""
        ...

    async def create(self, workspace: Workspace) -> Workspace:
        """Create a new workspace.

        Raises:
            WorkspaceSlugTakenError: If the slug is already used.
        """
        ...

    async def update(self, workspace: Workspace) -> Workspace:
        """Update an existing workspace (name, status, soft-delete timestamp)."""
        ...

    async def get_member(self, workspace_id: UUID, user_id: UUID) -> WorkspaceMember | None:
        """Get a workspace member by workspace and user IDs."""
        ...

    async def get_members(self, workspace_id: UUID) -> list[WorkspaceMember]:
        """Get all members of a workspace."""
        ...

    async def add_member(self, member: WorkspaceMember) -> WorkspaceMember:
        """Add a member to a workspace.

        Raises:
            AlreadyAMemberError: If the (workspace, user) pair already exists.
        """
        ...

    async def update_member_role(
        self, workspace_id: UUID, user_id: UUID, role: WorkspaceRole
    ) -> WorkspaceMember:
        """Update a member's role in a workspace."""
        ...

    async def remove_member(self, workspace_id: UUID, user_id: UUID) -> bool:
        """Remove a member from a workspace."""
        ...

    async def count_owners(self, workspace_id: UUID) -> int:
        """Count the number of owners in a workspace."""
        ...
