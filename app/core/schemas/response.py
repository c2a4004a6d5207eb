"""
Response envelope shared by every endpoint.

Successful and failed responses share one shape::

    {"json_data": ..., "success": bool, "status": int, "message": str}

Field validation failures are the single exception: they carry ``messages``
(plural, a mapping of field name to error list) instead of ``message``.
Clients rely on that asymmetry, so both shapes are kept.
"""

from typing import Any, Generic, TypeVar

from fastapi import status as http_status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Standard response envelope."""

    json_data: T
    success: bool = True
    status: int = http_status.HTTP_200_OK
    message: str = ""


class EmptyData(BaseModel):
    """Serialized as ``{}`` for responses that carry only a message."""

    model_config = ConfigDict(extra="forbid")


class ValidationErrorEnvelope(BaseModel):
    """Envelope used for field validation failures (HTTP 422)."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "json_data": {},
                "success": False,
                "status": 422,
                "messages": {"email": ["Invalid email address"]},
            }
        }
    )

    json_data: dict[str, Any] = Field(default_factory=dict)
    success: bool = False
    status: int = 422
    messages: dict[str, list[str]]


class ErrorEnvelope(BaseModel):
    """Envelope used for every other failure."""

    json_data: dict[str, Any] = Field(default_factory=dict)
    success: bool = False
    status: int
    message: str


def with_success(data: Any = None, message: str = "") -> Envelope:
    """Wrap ``data`` in a successful envelope (``{}`` when there is no data)."""
    return Envelope(
        json_data=data if data is not None else EmptyData(),
        success=True,
        status=http_status.HTTP_200_OK,
        message=message,
    )


def with_error(
    message: str,
    status_code: int = http_status.HTTP_400_BAD_REQUEST,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorEnvelope(status=status_code, message=message).model_dump(),
        headers=headers,
    )


def with_validation_error(messages: dict[str, list[str]]) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=ValidationErrorEnvelope(messages=messages).model_dump(),
    )


__all__ = [
    "EmptyData",
    "Envelope",
    "ErrorEnvelope",
    "ValidationErrorEnvelope",
    "with_error",
    "with_success",
    "with_validation_error",
]
