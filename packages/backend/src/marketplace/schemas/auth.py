"""Pydantic schemas for registration, login, tokens and profiles.

Learn: Separate request schemas (input) from read schemas (output).
No read schema has a password_hash field, so the hash can't leak into
a response even if a handler returns the ORM object directly.
"""

import uuid
from datetime import datetime
from typing import Annotated, Any, Optional

from pydantic import Field, StringConstraints

from marketplace.schemas.common import CamelModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
PHONE_PATTERN = r"^\+?[\d\s\-()]+$"

Name = Annotated[str, StringConstraints(strip_whitespace=True, max_length=50)]
Phone = Annotated[str, StringConstraints(max_length=20, pattern=PHONE_PATTERN)]


# ─── Requests ────────────────────────────────────────────


class RegisterRequest(CamelModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=8)
    first_name: Optional[Name] = None
    last_name: Optional[Name] = None
    phone: Optional[Phone] = None
    address: Optional[dict[str, Any]] = None


class LoginRequest(CamelModel):
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=1)


class RefreshRequest(CamelModel):
    refresh_token: Optional[str] = None


class LogoutRequest(CamelModel):
    refresh_token: Optional[str] = None


class ProfileUpdate(CamelModel):
    """Partial profile update.

    Only the keys present in the request body are applied; use
    model_dump(exclude_unset=True) to tell "omitted" from "set to empty".
    """

    first_name: Optional[Name] = None
    last_name: Optional[Name] = None
    phone: Optional[Phone] = None
    address: Optional[dict[str, Any]] = None
    preferences: Optional[dict[str, Any]] = None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8)


# ─── Responses ───────────────────────────────────────────


class UserRead(CamelModel):
    id: uuid.UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    address: dict[str, Any] = Field(default_factory=dict)
    preferences: dict[str, Any] = Field(default_factory=dict)
    subscription_tier: str
    created_at: datetime
    updated_at: datetime


class TokensRead(CamelModel):
    access_token: str
    refresh_token: str
    expires_in: int


class AuthResult(CamelModel):
    user: UserRead
    tokens: TokensRead
