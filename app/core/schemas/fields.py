"""
Reusable annotated field types shared by request schemas.
"""

from typing import Annotated

from pydantic import AfterValidator, AnyHttpUrl, EmailStr, Field, TypeAdapter, ValidationError
from pydantic_core import PydanticCustomError

_http_url = TypeAdapter(AnyHttpUrl)


def max_length(limit: int) -> AfterValidator:
    """Length check usable on types that reject ``max_length`` constraints."""

    def check(value: str) -> str:
        if len(value) > limit:
            raise PydanticCustomError(
                "string_too_long",
                "String should have at most {max_length} characters",
                {"max_length": limit},
            )
        return value

    return AfterValidator(check)


def _http_url_string(value: str) -> str:
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise PydanticCustomError("url", "Input should be a valid URL")
    return value


EmailField = Annotated[
    EmailStr,
    max_length(255),
    Field(description="Email address"),
]

UrlStr = Annotated[str, max_length(255), AfterValidator(_http_url_string)]


__all__ = ["EmailField", "UrlStr", "max_length"]
