"""
Schemas for API request validation and response serialization.

"""

from app.core.schemas.auth import (
    AuthUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    VerifyUserRequest,
)
from app.core.schemas.company import (
    CompanyListQuery,
    CompanyListResponse,
    CompanyRequest,
    CompanyResponse,
)
from app.core.schemas.response import (
    EmptyData,
    Envelope,
    ErrorEnvelope,
    ValidationErrorEnvelope,
    with_error,
    with_success,
    with_validation_error,
)

__all__ = [
    # Auth
    "AuthUserResponse",
    "LoginRequest",
    "LoginResponse",
    "RegisterRequest",
    "VerifyUserRequest",
    # Company
    "CompanyListQuery",
    "CompanyListResponse",
    "CompanyRequest",
    "CompanyResponse",
    # Envelope
    "EmptyData",
    "Envelope",
    "ErrorEnvelope",
    "ValidationErrorEnvelope",
    "with_error",
    "with_success",
    "with_validation_error",
]
