from pydantic import EmailStr, Field, field_validator, model_validator
from typing import Optional
from pos_backend.models.user import UserRole
from pos_backend.schemas.base import APIModel
from datetime import datetime
from uuid import UUID


class EmailNormalized(APIModel):
    """Emails are matched case-insensitively, so they are stored trimmed and lower-cased."""

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


# --- 1. LOGIN ---
class LoginRequest(EmailNormalized):
    """Sign in with exactly one of username or email."""
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=6)

    @model_validator(mode="after")
    def one_identifier(self):
        if bool(self.username) == bool(self.email):
            raise ValueError("Provide either username or email, not both.")
        return self


# --- 2. USER MANAGEMENT (Super Admin) ---
class UserCreate(EmailNormalized):
    username: str = Field(..., min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str
    role: UserRole

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError('"confirmPassword" must match "password"')
        return self


class UserUpdate(EmailNormalized):
    username: Optional[str] = Field(default=None, min_length=3, max_length=30)
    email: Optional[EmailStr] = None
    role: Optional[UserRole] = None

    @field_validator("role")
    @classmethod
    def no_promotion_to_super_admin(cls, v):
        if v == UserRole.SUPER_ADMIN:
            raise ValueError("role must be one of 'cashier' or 'admin'")
        return v


class UserResponse(APIModel):
    id: UUID
    username: str
    email: EmailStr
    role: UserRole
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    last_login: Optional[datetime] = None


class LoginUser(APIModel):
    role: UserRole
    email: EmailStr
    username: str


class LoginResponse(APIModel):
    access_token: str
    user: LoginUser


class UserEnvelope(APIModel):
    message: str
    user: UserResponse


# --- 3. PASSWORD RESET (OTP) ---
class ForgotPasswordRequest(EmailNormalized):
    email: EmailStr


class VerifyOtpRequest(EmailNormalized):
    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=6)


class ResetPasswordRequest(VerifyOtpRequest):
    password: str = Field(..., min_length=6)
