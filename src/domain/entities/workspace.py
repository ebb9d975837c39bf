"""Workspace domain entities and role-based permissions."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import IntEnum, StrEnum
from uuid import UUID, uuid4

from domain.ports import utcnow


class WorkspaceRole(IntEnum):
    """Workspace role hierarchy. Higher value = more permissions.

    Use >= comparison for permission checks:
        user_role >= WorkspaceRole.ADMIN  # True if Admin or Owner
    """

    GUEST = 10
    MEMBER = 20
    ADMIN = 30
    OWNER = 40

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_label(cls, value: str) -> "WorkspaceRole":
        """Parse a lower-case role name ("owner", "admin", ...)."""
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(f"Unknown workspace role: {value}") from None


class Capability(StrEnum):
    """Things a member can do inside a workspace."""

    READ_CONTENT = "read_content"
    WRITE_CONTENT = "write_content"
    INVITE_MEMBERS = "invite_members"
    REMOVE_MEMBERS = "remove_members"
    EDIT_WORKSPACE = "edit_workspace"
    DELETE_WORKSPACE = "delete_workspace"
    CHANGE_ROLES = "change_roles"


# Lowest role granted each capability. Every higher role inherits it.
CAPABILITY_MIN_ROLE: dict[Capability, WorkspaceRole] = {
    Capability.READ_CONTENT: WorkspaceRole.GUEST,
    Capability.WRITE_CONTENT: WorkspaceRole.MEMBER,
    Capability.INVITE_MEMBERS: WorkspaceRole.ADMIN,
    Capability.REMOVE_MEMBERS: WorkspaceRole.ADMIN,
    Capability.EDIT_WORKSPACE: WorkspaceRole.ADMIN,
    Capability.DELETE_WORKSPACE: WorkspaceRole.OWNER,
    Capability.CHANGE_ROLES: WorkspaceRole.OWNER,
}


def has_permission(user_role: WorkspaceRole, required_role: WorkspaceRole) -> bool:
    """Check if a user role meets the required permission level."""
    return user_role >= required_role


def can(role: WorkspaceRole, capability: Capability) -> bool:
    """Whether ``role`` grants ``capability``."""
    return has_permission(role, CAPABILITY_MIN_ROLE[capability])


class WorkspaceStatus(StrEnum):
    """Lifecycle status of a workspace."""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class Workspace:
    """Domain entity for a Workspace."""

    name: str
    owner_id: UUID
    id: UUID = field(default_factory=uuid4)
    slug: str = ""
    status: WorkspaceStatus = WorkspaceStatus.ACTIVE
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    deleted_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status == WorkspaceStatus.ACTIVE and self.deleted_at is None

    def renamed(self, name: str, now: datetime) -> "Workspace":
        return replace(self, name=name, updated_at=now)


@dataclass(frozen=True)
class WorkspaceMember:
    """Domain entity for a workspace membership."""

    workspace_id: UUID
    user_id: UUID
    role: WorkspaceRole = WorkspaceRole.MEMBER
    id: UUID = field(default_factory=uuid4)
    joined_at: datetime = field(default_factory=utcnow)
    invited_by: UUID | None = None
