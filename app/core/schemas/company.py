"""
Company schemas for request validation and response serialization.
"""

from datetime import datetime
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, StringConstraints

from app.core.config import settings
from app.core.schemas.fields import EmailField, UrlStr


class CompanyRequest(BaseModel):
    """Request schema for creating or replacing a company."""

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Acme Ltd",
                "email": "hello@acme.test",
                "phone": "+2348012345678",
                "website": "https://acme.test",
                "address": "1 Marina Road, Lagos",
            }
        }
    )

    name: Annotated[
        str, StringConstraints(strip_whitespace=True, min_length=1, max_length=255)
    ]
    email: EmailField | None = None
    phone: Annotated[str, StringConstraints(max_length=20)] | None = None
    website: UrlStr | None = None
    address: Annotated[str, StringConstraints(max_length=500)] | None = None


class CompanyListQuery(BaseModel):
    """Query parameters of the company list."""

    search_txt: Annotated[
        Annotated[str, StringConstraints(strip_whitespace=True, max_length=255)] | None,
        Field(description="Substring of the company name"),
    ] = None
    limit: Annotated[
        int,
        Field(ge=1, le=settings.COMPANY_LIST_MAX_LIMIT, description="Page size"),
    ] = settings.COMPANY_LIST_DEFAULT_LIMIT
    cursor: Annotated[
        Annotated[str, StringConstraints(max_length=512)] | None,
        Field(description="next_cursor of the previous page"),
    ] = None


class CompanyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    email: str | None = None
    phone: str | None = None
    website: str | None = None
    address: str | None = None
    created_at: datetime
    updated_at: datetime


class CompanyListResponse(BaseModel):
    """One page of companies."""

    data: list[CompanyResponse]
    per_page: int
    next_cursor: str | None = None
