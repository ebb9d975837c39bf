"""Common Pydantic schemas shared across the API."""

from typing import Any

from pydantic import BaseModel

ROLE_PATTERN = "^(owner|admin|member|guest)$"


class ErrorResponse(BaseModel):
    """Standardized error response."""

    error_code: str
    message: str
    details: Any | None = None


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


def normalize_email_field(v: str) -> str:
    """Basic email validation shared by request schemas."""
    v = v.strip().lower()
    if "@" not in v or "." not in v.split("@")[-1]:
        raise ValueError("Invalid email address")
    return v
