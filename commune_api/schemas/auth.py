"""Request/response schemas for auth and account-management endpoints."""

from datetime import datetime
from typing import Literal

from pydantic import Field, field_validator

from commune_api.core.security import PASSWORD_MAX_LEN
from commune_api.schemas.common import CamelModel, normalize_email

RoleName = Literal["ADMIN", "EDITOR", "VIEWER"]


class RegisterRequest(CamelModel):
    """New local account. Username defaults to the email local part."""

    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    username: str | None = Field(default=None, min_length=1, max_length=255)
    role: str | None = Field(default=None, description="Requested role; ignored for the first account")

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return normalize_email(v)


class LoginRequest(CamelModel):
    """Credentials for login."""

    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class ProfileUpdateRequest(CamelModel):
    username: str | None = Field(default=None, min_length=1, max_length=255)
    email: str | None = Field(default=None, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str | None) -> str | None:
        return normalize_email(v) if v is not None else None


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    new_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class ForgotPasswordRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.strip().lower()


class ResetPasswordRequest(CamelModel):
    token: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)


class RoleUpdateRequest(CamelModel):
    user_id: int
    role: str


class CompleteProfileRequest(CamelModel):
    """Mandatory fields for accounts created through Google sign-in."""

    phone_number: str = Field(..., min_length=3, max_length=32)
    password: str = Field(..., min_length=1, max_length=PASSWORD_MAX_LEN)
    country: str = Field(..., min_length=1, max_length=255)
    city: str = Field(..., min_length=1, max_length=255)
    department: str = Field(..., min_length=1, max_length=255)
    commune: str = Field(..., min_length=1, max_length=255)
    first_name: str | None = Field(default=None, max_length=255)
    last_name: str | None = Field(default=None, max_length=255)


class AccountOut(CamelModel):
    """Account as returned to clients (never includes password or reset state)."""

    id: int
    email: str
    username: str
    role: str
    first_name: str | None = None
    last_name: str | None = None
    photo: str | None = None
    is_profile_completed: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class AuthResponse(CamelModel):
    """Result of register/login: the account plus a session token."""

    message: str
    user: AccountOut
    token: str


class FederatedAuthResponse(AuthResponse):
    needs_completion: bool = False
    missing_fields: list[str] = Field(default_factory=list)


class ProfileResponse(CamelModel):
    message: str | None = None
    user: AccountOut


class UsersListResponse(CamelModel):
    """Response for GET /users (admin only)."""

    users: list[AccountOut]
