"""Workspace service layer: memberships, roles and permission checks."""

import re
from collections.abc import Callable
from dataclasses import replace
from uuid import UUID

import structlog

from core.exceptions import (
    AccountNotFoundError,
    AlreadyAMemberError,
    InsufficientPermissionsError,
    LastOwnerError,
    MemberNotFoundError,
    NotAMemberError,
    WorkspaceNotFoundError,
    WorkspaceSlugTakenError,
)
from core.retry import retry_transient
from domain.entities.workspace import (
    CAPABILITY_MIN_ROLE,
    Capability,
    Workspace,
    WorkspaceMember,
    WorkspaceRole,
    can,
    has_permission,
)
from domain.ports import Clock, utcnow
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class WorkspaceService:
    """Service layer for Workspace business logic."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        clock: Clock = utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._clock = clock

    async def get_all_for_user(self, user_id: UUID) -> list[Workspace]:
        """Get all workspaces a user is a member of."""
        async with self._uow_factory() as uow:
            return await uow.workspaces.get_all_for_user(user_id)

    async def get_by_id(self, workspace_id: UUID, user_id: UUID) -> Workspace:
        """Get a workspace by ID, verifying user membership."""
        async with self._uow_factory() as uow:
            workspace = await self._get_workspace(uow, workspace_id)
            member = await uow.workspaces.get_member(workspace_id, user_id)
            if not member:
                raise NotAMemberError(str(workspace_id))
            return workspace

    @retry_transient()
    async def create(self, owner_id: UUID, name: str) -> Workspace:
        """Create a new workspace and add the creator as Owner.

        Both rows are written in one unit of work.

        Raises:
            AccountNotFoundError: If the owner account does not exist.
            WorkspaceSlugTakenError: If both the derived slug and its
                owner-suffixed variant are taken.
        """
        async with self._uow_factory() as uow:
            if not await uow.accounts.get(owner_id):
                raise AccountNotFoundError(str(owner_id))

            slug = self._generate_slug(name)

            # Ensure slug uniqueness
            existing = await uow.workspaces.get_by_slug(slug)
            if existing:
                slug = f"{slug}-{str(owner_id)[:8]}"
                existing = await uow.workspaces.get_by_slug(slug)
                if existing:
                    raise WorkspaceSlugTakenError(slug)

            now = self._clock()
            workspace = Workspace(
                name=name,
                slug=slug,
                owner_id=owner_id,
                created_at=now,
                updated_at=now,
            )
            created = await uow.workspaces.create(workspace)

            owner_member = WorkspaceMember(
                workspace_id=created.id,
                user_id=owner_id,
                role=WorkspaceRole.OWNER,
                joined_at=now,
            )
            await uow.workspaces.add_member(owner_member)

            await uow.commit()

        logger.info("workspace_created", workspace_id=str(created.id), owner_id=str(owner_id))
        return created

    async def update(self, workspace_id: UUID, user_id: UUID, name: str) -> Workspace:
        """Rename a workspace. Requires the edit_workspace capability."""
        async with self._uow_factory() as uow:
            workspace = await self._get_workspace(uow, workspace_id)
            await self._require_capability(uow, workspace_id, user_id, Capability.EDIT_WORKSPACE)

            updated = await uow.workspaces.update(workspace.renamed(name, self._clock()))
            await uow.commit()
            return updated

    async def delete(self, workspace_id: UUID, user_id: UUID) -> None:
        """Soft-delete a workspace. Requires the delete_workspace capability."""
        async with self._uow_factory() as uow:
            workspace = await self._get_workspace(uow, workspace_id)
            await self._require_capability(
                uow, workspace_id, user_id, Capability.DELETE_WORKSPACE
            )

            now = self._clock()
            await uow.workspaces.update(replace(workspace, deleted_at=now, updated_at=now))
            await uow.commit()

        logger.info("workspace_deleted", workspace_id=str(workspace_id), actor_id=str(user_id))

    async def get_members(self, workspace_id: UUID, user_id: UUID) -> list[WorkspaceMember]:
        """Get all members of a workspace. Requires membership."""
        async with self._uow_factory() as uow:
            await self._get_workspace(uow, workspace_id)
            await self._require_capability(uow, workspace_id, user_id, Capability.READ_CONTENT)
            return await uow.workspaces.get_members(workspace_id)

    async def add_member(
        self,
        workspace_id: UUID,
        user_id: UUID,
        target_user_id: UUID,
        role: WorkspaceRole = WorkspaceRole.MEMBER,
    ) -> WorkspaceMember:
        """Add an existing account to a workspace.

        Args:
            workspace_id: The workspace to add to.
            user_id: The acting user (needs invite_members).
            target_user_id: The account being added.
            role: Role to grant. Granting Owner requires the actor to be Owner.

        Returns:
            The created membership.

        Raises:
            WorkspaceNotFoundError: If the workspace does not exist.
            AccountNotFoundError: If the target account does not exist.
            NotAMemberError: If the actor is not a member.
            InsufficientPermissionsError: If the actor's role is too low.
            AlreadyAMemberError: If the target is already a member.
        """
        async with self._uow_factory() as uow:
            await self._get_workspace(uow, workspace_id)
            actor = await self._require_capability(
                uow, workspace_id, user_id, Capability.INVITE_MEMBERS
            )
            if role > actor.role:
                raise InsufficientPermissionsError(role.label)

            if not await uow.accounts.get(target_user_id):
                raise AccountNotFoundError(str(target_user_id))

            existing = await uow.workspaces.get_member(workspace_id, target_user_id)
            if existing:
                raise AlreadyAMemberError(str(target_user_id))

            member = WorkspaceMember(
                workspace_id=workspace_id,
                user_id=target_user_id,
                role=role,
                invited_by=user_id,
                joined_at=self._clock(),
            )
            added = await uow.workspaces.add_member(member)
            await uow.commit()

        logger.info(
            "member_added",
            workspace_id=str(workspace_id),
            user_id=str(target_user_id),
            role=role.label,
            actor_id=str(user_id),
        )
        return added

    async def change_role(
        self,
        workspace_id: UUID,
        user_id: UUID,
        target_user_id: UUID,
        role: WorkspaceRole,
    ) -> WorkspaceMember:
        """Change a member's role. Requires Owner.

        Raises:
            LastOwnerError: If the change would demote the sole owner.
        """
        async with self._uow_factory() as uow:
            await self._get_workspace_for_update(uow, workspace_id)
            await self._require_capability(uow, workspace_id, user_id, Capability.CHANGE_ROLES)

            target_member = await uow.workspaces.get_member(workspace_id, target_user_id)
            if not target_member:
                raise MemberNotFoundError(str(target_user_id))

            if target_member.role == role:
                return target_member

            if target_member.role == WorkspaceRole.OWNER:
                await self._ensure_not_last_owner(uow, workspace_id)

            updated = await uow.workspaces.update_member_role(workspace_id, target_user_id, role)
            await uow.commit()

        logger.info(
            "member_role_changed",
            workspace_id=str(workspace_id),
            user_id=str(target_user_id),
            old_role=target_member.role.label,
            new_role=role.label,
            actor_id=str(user_id),
        )
        return updated

    async def remove_member(
        self,
        workspace_id: UUID,
        user_id: UUID,
        target_user_id: UUID,
    ) -> None:
        """Remove a member from a workspace.

        - Anyone can remove themselves (leave)
        - Admins can remove Members/Guests
        - Owners can remove anyone
        - The last Owner can never be removed
        """
        async with self._uow_factory() as uow:
            await self._get_workspace_for_update(uow, workspace_id)

            actor_member = await uow.workspaces.get_member(workspace_id, user_id)
            if not actor_member:
                raise NotAMemberError(str(workspace_id))

            target_member = await uow.workspaces.get_member(workspace_id, target_user_id)
            if not target_member:
                raise MemberNotFoundError(str(target_user_id))

            is_self_leave = user_id == target_user_id

            if not is_self_leave:
                if not can(actor_member.role, Capability.REMOVE_MEMBERS):
                    raise InsufficientPermissionsError(
                        CAPABILITY_MIN_ROLE[Capability.REMOVE_MEMBERS].label
                    )
                # Admins cannot remove other Admins or Owners
                if (
                    has_permission(target_member.role, actor_member.role)
                    and actor_member.role != WorkspaceRole.OWNER
                ):
                    raise InsufficientPermissionsError(WorkspaceRole.OWNER.label)

            if target_member.role == WorkspaceRole.OWNER:
                await self._ensure_not_last_owner(uow, workspace_id)

            await uow.workspaces.remove_member(workspace_id, target_user_id)
            await uow.commit()

        logger.info(
            "member_left" if is_self_leave else "member_removed",
            workspace_id=str(workspace_id),
            user_id=str(target_user_id),
            actor_id=str(user_id),
        )

    async def transfer_ownership(
        self,
        workspace_id: UUID,
        current_owner_id: UUID,
        new_owner_id: UUID,
    ) -> None:
        """Transfer workspace ownership. Current user must be Owner.

        The new owner is promoted and the previous owner demoted to Admin in
        the same transaction, so the workspace is never ownerless.
        """
        async with self._uow_factory() as uow:
            workspace = await self._get_workspace_for_update(uow, workspace_id)
            await self._require_role(uow, workspace_id, current_owner_id, WorkspaceRole.OWNER)

            if new_owner_id == current_owner_id:
                return

            new_owner_member = await uow.workspaces.get_member(workspace_id, new_owner_id)
            if not new_owner_member:
                raise MemberNotFoundError(str(new_owner_id))

            await uow.workspaces.update_member_role(workspace_id, new_owner_id, WorkspaceRole.OWNER)
            await uow.workspaces.update_member_role(
                workspace_id, current_owner_id, WorkspaceRole.ADMIN
            )
            await uow.workspaces.update(
                replace(workspace, owner_id=new_owner_id, updated_at=self._clock())
            )
            await uow.commit()

        logger.info(
            "ownership_transferred",
            workspace_id=str(workspace_id),
            previous_owner_id=str(current_owner_id),
            new_owner_id=str(new_owner_id),
        )

    @retry_transient()
    async def check_permission(
        self, workspace_id: UUID, user_id: UUID, capability: Capability
    ) -> bool:
        """Check if user's role grants ``capability`` in the workspace.

        Returns False for unknown or deleted workspaces and non-members.
        Suspended or archived workspaces only allow reading.
        Does NOT raise exceptions (use _require_capability for that).
        """
        async with self._uow_factory() as uow:
            workspace = await uow.workspaces.get(workspace_id)
            if not workspace or workspace.deleted_at is not None:
                return False
            if not workspace.is_active and capability != Capability.READ_CONTENT:
                return False
            member = await uow.workspaces.get_member(workspace_id, user_id)
            if not member:
                return False
            return can(member.role, capability)

    async def get_user_role(self, workspace_id: UUID, user_id: UUID) -> WorkspaceRole | None:
        """Get a user's role in a workspace, or None if not a member."""
        async with self._uow_factory() as uow:
            member = await uow.workspaces.get_member(workspace_id, user_id)
            return member.role if member else None

    # --- Internal helpers ---

    @staticmethod
    async def _get_workspace(uow: IUnitOfWork, workspace_id: UUID) -> Workspace:
        workspace = await uow.workspaces.get(workspace_id)
        if not workspace:
            raise WorkspaceNotFoundError(str(workspace_id))
        return workspace

    @staticmethod
    async def _get_workspace_for_update(uow: IUnitOfWork, workspace_id: UUID) -> Workspace:
        """Lock the workspace row so owner-count checks cannot interleave."""
        workspace = await uow.workspaces.get_for_update(workspace_id)
        if not workspace:
            raise WorkspaceNotFoundError(str(workspace_id))
        return workspace

    @staticmethod
    async def _ensure_not_last_owner(uow: IUnitOfWork, workspace_id: UUID) -> None:
        if await uow.workspaces.count_owners(workspace_id) <= 1:
            raise LastOwnerError()

    async def _require_capability(
        self,
        uow: IUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
        capability: Capability,
    ) -> WorkspaceMember:
        """Verify the user's role grants the capability. Raises on failure."""
        return await self._require_role(
            uow, workspace_id, user_id, CAPABILITY_MIN_ROLE[capability]
        )

    @staticmethod
    async def _require_role(
        uow: IUnitOfWork,
        workspace_id: UUID,
        user_id: UUID,
        required_role: WorkspaceRole,
    ) -> WorkspaceMember:
        """Verify the user has at least the required role. Raises on failure."""
        member = await uow.workspaces.get_member(workspace_id, user_id)
        if not member:
            raise NotAMemberError(str(workspace_id))
        if not has_permission(member.role, required_role):
            raise InsufficientPermissionsError(required_role.label)
        return member

    @staticmethod
    def _generate_slug(name: str) -> str:
        """Generate a URL-friendly slug from a workspace name."""
        slug = name.lower().strip()
        slug = re.sub(r"[^a-z0-9\s-]", "", slug)
        slug = re.sub(r"[\s_]+", "-", slug)
        slug = re.sub(r"-+", "-", slug)
        slug = slug.strip("-")
        return slug[:100] if slug else "workspace"
