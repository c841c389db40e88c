# homeschool/schemas/auth_schemas.py
"""Pydantic schemas for authentication and the teacher account."""
from datetime import datetime
from typing import Annotated, Optional
from pydantic import AfterValidator, BaseModel, EmailStr, Field

from .common import TimestampedOut
from ..services.recurrence import RecurrenceError, resolve_timezone


def _password_strength(value: str) -> str:
    if not any(c.isalpha() for c in value) or not any(c.isdigit() for c in value):
        raise ValueError("Password must contain at least one letter and one digit")
    return value


def _timezone(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    try:
        resolve_timezone(value)
    except RecurrenceError as e:
        raise ValueError(str(e))
    return value


Password = Annotated[str, Field(min_length=8, max_length=128), AfterValidator(_password_strength)]
TimezoneName = Annotated[str, Field(max_length=64), AfterValidator(_timezone)]


class RegisterRequest(BaseModel):
    email: EmailStr = Field(..., description="Login email")
    password: Password
    first_name: str = Field(..., min_length=1, max_length=50)
    last_name: str = Field(..., min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, min_length=7, max_length=20)
    timezone: TimezoneName = "UTC"


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=128)


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str = Field(..., min_length=1)
    new_password: Password


class VerifyEmailRequest(BaseModel):
    token: str = Field(..., min_length=1)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: Password


class TeacherOut(TimestampedOut):
    email: str
    first_name: str
    last_name: str
    phone: Optional[str] = None
    timezone: str
    profile_image_url: Optional[str] = None
    is_active: bool
    email_verified: bool
    last_login_at: Optional[datetime] = None


class TeacherUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    last_name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    phone: Optional[str] = Field(default=None, min_length=7, max_length=20)
    timezone: Optional[TimezoneName] = None


class TokenPair(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    refresh_expires_in: int


class AuthResult(TokenPair):
    teacher: TeacherOut
