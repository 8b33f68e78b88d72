# clinic/modules/users/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, SecretStr, StringConstraints, field_validator

from clinic.modules.users.models import UserRole

NameStr = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=100)]
PhoneStr = Annotated[str, StringConstraints(pattern=r"^\+?[1-9]\d{0,15}$")]

MIN_PASSWORD_LENGTH = 8


def _normalize_email(v):
    if isinstance(v, str):
        return v.strip().lower()
    return v


def _check_password(v: Optional[SecretStr]) -> Optional[SecretStr]:
    if v is not None and len(v.get_secret_value()) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return v


def _reject_null(v):
    # explicit JSON null on a required column
    if v is None:
        raise ValueError("field may not be null")
    return v


class RegisterRequest(BaseModel):
    """Self-registration. Always creates a PATIENT account."""

    name: NameStr
    email: EmailStr
    password: SecretStr = Field(..., description="At least 8 characters")
    phone: Optional[PhoneStr] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: SecretStr) -> SecretStr:
        return _check_password(v)


class UserCreateRequest(RegisterRequest):
    """Admin-side creation; role may be chosen."""

    role: UserRole = UserRole.PATIENT


class ProfileUpdateRequest(BaseModel):
    name: Optional[NameStr] = None
    email: Optional[EmailStr] = None
    password: Optional[SecretStr] = None
    phone: Optional[PhoneStr] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_length(cls, v: Optional[SecretStr]) -> Optional[SecretStr]:
        return _check_password(v)

    @field_validator("name", "email", "password")
    @classmethod
    def not_null(cls, v):
        return _reject_null(v)


class UserUpdateRequest(ProfileUpdateRequest):
    role: Optional[UserRole] = None

    @field_validator("role")
    @classmethod
    def role_not_null(cls, v):
        return _reject_null(v)


class UserPublic(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    role: UserRole
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    role: UserRole

    class Config:
        from_attributes = True


# --- Login / Me / Refresh ---

class LoginRequest(BaseModel):
    email: EmailStr
    password: SecretStr

    @field_validator("email", mode="before")
    @classmethod
    def normalize_email(cls, v):
        return _normalize_email(v)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_token: Optional[str] = None


class AuthResponse(TokenResponse):
    user: UserSummary


class RefreshRequest(BaseModel):
    refresh_token: str


MeResponse = UserPublic


class UserList(BaseModel):
    items: List[UserPublic]
    total: int
