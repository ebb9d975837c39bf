"""Pydantic schemas for Auth API."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from api.v1.schemas.common import normalize_email_field


class SignUpRequest(BaseModel):
    """Schema for registering an account."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email_field(v)


class LoginRequest(BaseModel):
    """Schema for logging in.

    ``workspace_id`` scopes the access token (role claim) to one workspace.
    """

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)
    workspace_id: UUID | None = None


class RefreshRequest(BaseModel):
    """Schema for refreshing or revoking a session."""

    refresh_token: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    """Schema for changing the caller's password."""

    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=8, max_length=128)


class TokenPairResponse(BaseModel):
    """Schema for a login/refresh response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "refresh_token": "m3Jd0x6v9oV1Yt0uHkQ2...",
                "token_type": "bearer",
                "expires_in": 900,
            }
        },
    )

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AccountResponse(BaseModel):
    """Schema for Account response (never includes the password digest)."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    status: str
    created_at: datetime


class MeResponse(BaseModel):
    """Schema for the current caller."""

    id: UUID
    email: str
    workspace_id: UUID | None = None
    role: str | None = None


class SessionsRevokedResponse(BaseModel):
    """Schema for logout-everywhere response."""

    revoked: int
