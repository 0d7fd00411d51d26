import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from clinic.utils.role_permissions import RoleEnum
from .common import NAME_PATTERN, PHONE_PATTERN


def _check_password_strength(value: str) -> str:
    if not any(c.islower() for c in value):
        raise ValueError("Password must contain at least one lowercase letter")
    if not any(c.isupper() for c in value):
        raise ValueError("Password must contain at least one uppercase letter")
    if not any(c.isdigit() for c in value):
        raise ValueError("Password must contain at least one number")
    return value


class UserBase(BaseModel):
    email: EmailStr
    first_name: str = Field(min_length=2, max_length=50, pattern=NAME_PATTERN)
    last_name: str = Field(min_length=2, max_length=50, pattern=NAME_PATTERN)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)

    @field_validator("email")
    @classmethod
    def _lower_email(cls, v: str) -> str:
        return v.strip().lower()


class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)
    role: RoleEnum | None = None

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return _check_password_strength(v)


class UserUpdate(BaseModel):
    first_name: str | None = Field(default=None, min_length=2, max_length=50, pattern=NAME_PATTERN)
    last_name: str | None = Field(default=None, min_length=2, max_length=50, pattern=NAME_PATTERN)
    phone: str | None = Field(default=None, pattern=PHONE_PATTERN)
    role: RoleEnum | None = None
    is_active: bool | None = None


class User(BaseModel):
    id: uuid.UUID
    email: str
    first_name: str
    last_name: str
    phone: str | None = None
    role: str
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime | None = None
    model_config = ConfigDict(from_attributes=True)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(BaseModel):
    refresh_token: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(min_length=8, max_length=128)

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return _check_password_strength(v)


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(min_length=8, max_length=128)
    confirm_password: str

    @field_validator("new_password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        return _check_password_strength(v)


class AuthTokens(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class AuthResponse(BaseModel):
    user: User
    tokens: AuthTokens


class MessageResponse(BaseModel):
    message: str
