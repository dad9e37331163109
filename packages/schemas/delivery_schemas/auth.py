"""Auth schemas - users, sessions and auth state events."""

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AuthEvent(str, Enum):
    """Session transitions reported to auth state listeners."""

    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"


class AuthUser(BaseModel):
    """Authenticated identity."""

    id: str
    email: str | None = None
    user_metadata: dict[str, Any] = Field(default_factory=dict)


class AuthSession(BaseModel):
    """Signed-in session."""

    access_token: str
    refresh_token: str | None = None
    expires_at: datetime | None = None
    user: AuthUser


class SignUpResult(BaseModel):
    """Result of a sign-up; session is None while e-mail confirmation is pending."""

    user: AuthUser | None = None
    session: AuthSession | None = None
