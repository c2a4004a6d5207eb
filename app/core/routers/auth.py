"""
Authentication router for the email registration flow.

This module provides endpoints for:
- Registration with an emailed six digit code
- Verification of that code, which activates the account
- Login returning a bearer token
- The authenticated user and logout (revokes every token of the user)

All endpoints are prefixed with /auth.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import auth_logger
from app.core.dependencies import CurrentUser, get_async_session
from app.core.enums import DispatchResult
from app.core.exceptions.types import (
    DatabaseException,
    TransactionException,
)
from app.core.schemas.auth import (
    AuthUserResponse,
    LoginRequest,
    LoginResponse,
    RegisterRequest,
    VerifyUserRequest,
)
from app.core.schemas.response import (
    EmptyData,
    Envelope,
    ErrorEnvelope,
    ValidationErrorEnvelope,
    with_success,
)
from app.core.services.auth import AuthService
from app.core.services.rate_limit import rate_limit_by_ip
from app.core.services.token import TokenService


router = APIRouter(prefix="/auth", tags=["Authentication"])

REGISTRATION_SUCCESS = (
    "Registration successful! We have sent a six digit code to your email. "
    "Please check your email and enter the code to complete your registration."
)

_error_responses = {
    404: {"model": ErrorEnvelope, "description": "Invalid credentials or OTP"},
    422: {"model": ValidationErrorEnvelope, "description": "Validation failed"},
    429: {"model": ErrorEnvelope, "description": "Too many attempts"},
}


@router.post(
    "/register",
    response_model=Envelope[EmptyData],
    summary="Register a new user",
    description="""
## Register a New User

Creates a **pending** account and emails a six digit code valid for
5 minutes. The account becomes usable after `POST /auth/verify-user`.

### Request Body

| Field | Type | Required | Description |
|-------|------|----------|-------------|
| `name` | string | ✅ | Full name (max 255) |
| `email` | string | ✅ | Valid email address (max 255) |
| `password` | string | ✅ | At least 8 characters |
| `password_confirmation` | string | ✅ | Must match `password` |
| `address` | string | ❌ | Max 1000, markup is stripped |

### Error Responses

| Status | Reason |
|--------|--------|
| `400 Bad Request` | Registration failed and was rolled back |
| `422 Unprocessable Entity` | Invalid fields or email already registered |
| `429 Too Many Requests` | Rate limit exceeded |
""",
    responses={
        400: {"model": ErrorEnvelope, "description": "Registration failed"},
        422: _error_responses[422],
        429: _error_responses[429],
    },
    dependencies=[Depends(rate_limit_by_ip())],
)
async def register(
    request_data: RegisterRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    """
    Register a user and send the verification code.

    The user row and its code are written in one transaction. The email is
    queued only after the commit and best effort: a broker outage does not
    undo the registration.

    Raises:
        ConflictException: If the email is already registered.
        TransactionException: If the transaction had to be rolled back.
    """
    try:
        async with session.begin():
            fields = AuthService.format_registration(request_data.model_dump())
            user = await AuthService.register_user(session, fields)
            code = await AuthService.issue_otp(session, user)
    except (DatabaseException, SQLAlchemyError) as e:
        auth_logger.error(f"Registration failed: {e}")
        raise TransactionException("Registration failed!")

    dispatch = await AuthService.dispatch_otp(user, code)
    if dispatch is DispatchResult.QUEUE_UNAVAILABLE:
        auth_logger.warning(f"OTP email not queued: user_id={user.id}")

    auth_logger.info(f"User registered: user_id={user.id}")
    return with_success(message=REGISTRATION_SUCCESS)


@router.post(
    "/verify-user",
    response_model=Envelope[EmptyData],
    summary="Verify a registration",
    description="""
## Verify a Registration

Confirms a pending account with the code sent by `POST /auth/register`.
The code is single use; a successful call activates the account.

### Error Responses

| Status | Reason |
|--------|--------|
| `400 Bad Request` | Verification failed and was rolled back |
| `404 Not Found` | `Invalid user credentials!`, `Invalid OTP!` or `OTP expired!` |
| `422 Unprocessable Entity` | Invalid fields |
| `429 Too Many Requests` | Rate limit exceeded |
""",
    responses={
        400: {"model": ErrorEnvelope, "description": "Verification failed"},
        **_error_responses,
    },
    dependencies=[Depends(rate_limit_by_ip())],
)
async def verify_user(
    request_data: VerifyUserRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    try:
        async with session.begin():
            user = await AuthService.verify_registration(
                session,
                email=request_data.email,
                password=request_data.password,
                submitted_code=request_data.otp,
            )
    except (DatabaseException, SQLAlchemyError) as e:
        auth_logger.error(f"Verification failed: {e}")
        raise TransactionException("Verification failed!")

    auth_logger.info(f"User verified: user_id={user.id}")
    return with_success(message="User verified successfully!")


@router.post(
    "/login",
    response_model=Envelope[LoginResponse],
    summary="Log in",
    description="""
## Log In

Exchanges the credentials of an **active** user for a bearer token. Send it
as `Authorization: Bearer <access_token>` to the protected endpoints.

Unknown emails, wrong passwords and unverified accounts all answer
`404 Invalid user credentials!`.
""",
    responses=_error_responses,
    dependencies=[Depends(rate_limit_by_ip())],
)
async def login(
    request_data: LoginRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    """
    Authenticate a user and issue a bearer token.

    Returns:
        Envelope: The user fields plus ``access_token``, ``token_type`` and
            ``expires_at``.

    Raises:
        NotFoundException: If the credentials do not match an active user.
    """
    async with session.begin():
        user = await AuthService.authenticate(
            session, email=request_data.email, password=request_data.password
        )
        issued = await TokenService.issue(session, user)

    data = LoginResponse(
        **AuthUserResponse.model_validate(user).model_dump(),
        access_token=issued.access_token,
        token_type=issued.token_type,
        expires_at=issued.expires_at,
    )
    auth_logger.info(f"User logged in: user_id={user.id}")
    return with_success(data=data, message="Login successful!")


@router.get(
    "/auth-user",
    response_model=Envelope[AuthUserResponse],
    summary="Get the authenticated user",
    responses={401: {"model": ErrorEnvelope, "description": "Unauthenticated"}},
)
async def auth_user(user: CurrentUser) -> Envelope:
    return with_success(data=AuthUserResponse.model_validate(user))


@router.post(
    "/logout",
    response_model=Envelope[EmptyData],
    summary="Log out",
    description="Revokes every bearer token of the authenticated user.",
    responses={401: {"model": ErrorEnvelope, "description": "Unauthenticated"}},
)
async def logout(
    user: CurrentUser,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    async with session.begin():
        await TokenService.revoke_all(session, user.id)

    auth_logger.info(f"User logged out: user_id={user.id}")
    return with_success(message="Logout successful!")


__all__ = ["REGISTRATION_SUCCESS", "router"]
