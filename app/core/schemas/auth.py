"""
Authentication schemas for request validation and response serialization.

- Registration and OTP verification
- Login and the authenticated user payload
"""

from datetime import datetime
from typing import Annotated, Literal
from uuid import UUID

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    ValidationInfo,
    field_validator,
)
from pydantic_core import PydanticCustomError

from app.core.enums import UserStatus
from app.core.schemas.fields import EmailField

NameStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, min_length=1, max_length=255),
    Field(description="Full name"),
]

PasswordStr = Annotated[
    str,
    StringConstraints(min_length=8, max_length=255),
    Field(description="Password (min 8 characters)"),
]

OTPCodeStr = Annotated[
    str,
    StringConstraints(strip_whitespace=True, pattern=r"^\d{6}$"),
    Field(description="6-digit verification code"),
]


class RegisterRequest(BaseModel):
    """Request schema for registration."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "John Doe",
                "email": "john@gmail.com",
                "password": "password",
                "password_confirmation": "password",
                "address": "12 Main Street",
            }
        }
    )

    name: NameStr
    email: EmailField
    password: PasswordStr
    password_confirmation: Annotated[str, Field(description="Repeat of password")]
    address: Annotated[
        Annotated[str, StringConstraints(max_length=1000)] | None,
        Field(description="Postal address, markup is stripped"),
    ] = None

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, v: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and v != password:
            raise PydanticCustomError(
                "confirmed", "The password confirmation does not match."
            )
        return v


class VerifyUserRequest(BaseModel):
    """Request schema for OTP verification."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "john@gmail.com",
                "password": "password",
                "otp": "123456",
            }
        }
    )

    email: EmailField
    password: PasswordStr
    otp: OTPCodeStr


class LoginRequest(BaseModel):
    """Request schema for login."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"email": "john@gmail.com", "password": "password"}
        }
    )

    email: EmailField
    password: PasswordStr


class AuthUserResponse(BaseModel):
    """The authenticated user."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str
    address: str | None = None
    status: UserStatus


class LoginResponse(AuthUserResponse):
    """The user plus the bearer token issued at login."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "4f1c2a53-3d3e-4b8e-9a55-1b6a0c9ef0a1",
                "name": "John Doe",
                "email": "john@gmail.com",
                "address": None,
                "status": "active",
                "access_token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
                "token_type": "bearer",
                "expires_at": "2026-01-02T10:00:00Z",
            }
        },
    )

    access_token: str
    token_type: Literal["bearer"] = "bearer"
    expires_at: datetime
