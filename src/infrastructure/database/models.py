"""SQLAlchemy ORM models."""

from datetime import datetime
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.dialects.postgresql import UUID as PG_UUID
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from domain.ports import utcnow


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class AccountModel(Base):
    """Account model (credential store)."""

    __tablename__ = "accounts"
    __table_args__ = (
        # Emails are unique among live accounts only; soft-deleted rows keep theirs.
        Index(
            "uq_accounts_email_live",
            "email",
            unique=True,
            postgresql_where=text("deleted_at IS NULL"),
            sqlite_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('pending', 'active', 'suspended', 'deleted')",
            name="ck_accounts_status",
        ),
        nullable=False,
        default="active",
    )
    failed_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_failed_at: Mapped[datetime | None] = mapped_column(DateTime)
    locked_until: Mapped[datetime | None] = mapped_column(DateTime)
    lock_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    workspace_memberships: Mapped[list["WorkspaceMemberModel"]] = relationship(
        "WorkspaceMemberModel",
        back_populates="user",
        foreign_keys="WorkspaceMemberModel.user_id",
    )
    owned_workspaces: Mapped[list["WorkspaceModel"]] = relationship(
        "WorkspaceModel",
        back_populates="owner",
        foreign_keys="WorkspaceModel.owner_id",
    )


class RefreshTokenModel(Base):
    """Refresh token record. One row per issued token; rows are never deleted."""

    __tablename__ = "refresh_tokens"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    account_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    workspace_id: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="SET NULL"),
    )
    lineage_id: Mapped[UUID] = mapped_column(PG_UUID(as_uuid=True), nullable=False, index=True)
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('active', 'superseded', 'revoked')",
            name="ck_refresh_tokens_status",
        ),
        nullable=False,
        default="active",
    )
    issued_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    # Not a foreign key: the successor row is inserted after this one is superseded.
    superseded_by: Mapped[UUID | None] = mapped_column(PG_UUID(as_uuid=True))
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime)


class WorkspaceModel(Base):
    """Workspace model."""

    __tablename__ = "workspaces"

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    owner_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('active', 'suspended', 'archived')",
            name="ck_workspaces_status",
        ),
        nullable=False,
        default="active",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        onupdate=utcnow,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    owner: Mapped["AccountModel"] = relationship(
        "AccountModel",
        back_populates="owned_workspaces",
        foreign_keys=[owner_id],
    )
    members: Mapped[list["WorkspaceMemberModel"]] = relationship(
        "WorkspaceMemberModel",
        back_populates="workspace",
        cascade="all, delete-orphan",
    )


class WorkspaceMemberModel(Base):
    """Workspace membership model (surrogate id, unique workspace_id + user_id)."""

    __tablename__ = "workspace_members"
    __table_args__ = (
        UniqueConstraint("workspace_id", "user_id", name="uq_workspace_members_pair"),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    workspace_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    role: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "role IN ('owner', 'admin', 'member', 'guest')",
            name="ck_workspace_members_role",
        ),
        nullable=False,
        default="member",
    )
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    invited_by: Mapped[UUID | None] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="SET NULL"),
    )

    # Relationships
    workspace: Mapped["WorkspaceModel"] = relationship(
        "WorkspaceModel",
        back_populates="members",
    )
    user: Mapped["AccountModel"] = relationship(
        "AccountModel",
        back_populates="workspace_memberships",
        foreign_keys=[user_id],
    )
    inviter: Mapped[Optional["AccountModel"]] = relationship(
        "AccountModel",
        foreign_keys=[invited_by],
    )


class InvitationModel(Base):
    """Workspace invitation model."""

    __tablename__ = "invitations"
    __table_args__ = (
        # At most one pending invitation per workspace and email.
        Index(
            "uq_invitations_pending_email",
            "workspace_id",
            "email",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
    )

    id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        primary_key=True,
        default=uuid4,
    )
    workspace_id: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("workspaces.id", ondelete="CASCADE"),
        nullable=False,
    )
    email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    role: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "role IN ('owner', 'admin', 'member', 'guest')",
            name="ck_invitations_role",
        ),
        nullable=False,
        default="member",
    )
    token_hash: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    invited_by: Mapped[UUID] = mapped_column(
        PG_UUID(as_uuid=True),
        ForeignKey("accounts.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        CheckConstraint(
            "status IN ('pending', 'accepted', 'expired', 'cancelled')",
            name="ck_invitations_status",
        ),
        nullable=False,
        default="pending",
    )
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    accepted_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Relationships
    workspace: Mapped["WorkspaceModel"] = relationship("WorkspaceModel")
    inviter: Mapped["AccountModel"] = relationship("AccountModel")
