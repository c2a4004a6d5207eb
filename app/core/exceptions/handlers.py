from fastapi import Request, status
from fastapi.exceptions import RequestValidationError

from app.core.config import request_logger
from app.core.exceptions.types import (
    AppException,
    AuthenticationException,
    BadRequestException,
    ConflictException,
    DatabaseException,
    NotFoundException,
    RateLimitExceededException,
    TransactionException,
)
from app.core.schemas.response import with_error, with_validation_error


def _field_name(loc: tuple) -> str:
    """Turn a pydantic error location into the client-facing field name."""
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) if parts else "body"


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """
    Handles request validation errors with the plural ``messages`` envelope.

    Args:
        request: The request object.
        exc (RequestValidationError): The validation error raised by FastAPI.

    Returns:
        JSONResponse: A 422 response keyed by field name.
    """
    messages: dict[str, list[str]] = {}
    for error in exc.errors():
        messages.setdefault(_field_name(error["loc"]), []).append(error["msg"])

    request_logger.warning(
        f"ValidationError: {request.method} {request.url.path} fields={list(messages)}"
    )
    return with_validation_error(messages)


async def conflict_exception_handler(request: Request, exc: ConflictException):
    """
    Handles unique-value conflicts as field validation failures.

    Args:
        request: The request object.
        exc (ConflictException): The conflict exception instance.

    Returns:
        JSONResponse: A 422 response keyed by the conflicting field.
    """
    request_logger.warning(f"ConflictException: {exc}")
    return with_validation_error({exc.field or "body": [exc.message]})


async def not_found_exception_handler(request: Request, exc: NotFoundException):
    """
    Handles not found exceptions.

    Args:
        request: The request object.
        exc (NotFoundException): The not found exception instance.

    Returns:
        JSONResponse: A response containing the error message and status code 404.
    """
    request_logger.warning(f"NotFoundException: {exc}")
    return with_error(exc.message, exc.status_code)


async def authentication_exception_handler(
    request: Request, exc: AuthenticationException
):
    """
    Handles authentication exceptions.

    Args:
        request: The request object.
        exc (AuthenticationException): The authentication exception instance.

    Returns:
        JSONResponse: A response containing the error message and status code 401.
    """
    request_logger.warning(f"AuthenticationException: {exc}")
    return with_error(
        exc.message,
        exc.status_code,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def rate_limit_exception_handler(
    request: Request, exc: RateLimitExceededException
):
    """
    Handles rate limit exceeded exceptions.

    Args:
        request: The request object.
        exc (RateLimitExceededException): The rate limit exception instance.

    Returns:
        JSONResponse: A response with status code 429 and optional Retry-After header.
    """
    request_logger.warning(f"RateLimitExceededException: {exc}")
    headers = {}
    if exc.retry_after:
        headers["Retry-After"] = str(exc.retry_after)
    return with_error(exc.message, exc.status_code, headers=headers)


async def transaction_exception_handler(request: Request, exc: TransactionException):
    request_logger.error(f"TransactionException: {exc}")
    return with_error(exc.message, exc.status_code)


async def bad_request_exception_handler(request: Request, exc: BadRequestException):
    request_logger.warning(f"BadRequestException: {exc}")
    return with_error(exc.message, exc.status_code)


async def database_exception_handler(request: Request, exc: DatabaseException):
    """
    Handles database exceptions without leaking query details to the client.

    Args:
        request: The request object.
        exc (DatabaseException): The database exception instance.

    Returns:
        JSONResponse: A generic error envelope with status code 500.
    """
    request_logger.error(f"DatabaseException: {exc}")
    return with_error("A database error occurred.", exc.status_code)


async def general_exception_handler(request: Request, exc: AppException):
    """
    Fallback for any other application exception.

    Args:
        request: The request object.
        exc (AppException): The exception instance.

    Returns:
        JSONResponse: An error envelope carrying the exception's status code.
    """
    request_logger.error(f"AppException: {exc}")
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return with_error("An unexpected error occurred.", exc.status_code)
    return with_error(exc.message, exc.status_code)


exception_schema = {
    status.HTTP_500_INTERNAL_SERVER_ERROR: {
        "description": "Internal Server Error",
        "content": {
            "application/json": {
                "example": {
                    "json_data": {},
                    "success": False,
                    "status": 500,
                    "message": "An unexpected error occurred.",
                },
            }
        },
    },
    422: {
        "description": "Validation Error",
        "content": {
            "application/json": {
                "example": {
                    "json_data": {},
                    "success": False,
                    "status": 422,
                    "messages": {"email": ["value is not a valid email address"]},
                },
            }
        },
    },
}


__all__ = [
    "authentication_exception_handler",
    "bad_request_exception_handler",
    "conflict_exception_handler",
    "database_exception_handler",
    "exception_schema",
    "general_exception_handler",
    "not_found_exception_handler",
    "rate_limit_exception_handler",
    "transaction_exception_handler",
    "validation_exception_handler",
]
