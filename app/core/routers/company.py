"""
Company router.

Every endpoint requires a bearer token. All endpoints are prefixed with
/api/company.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import company_logger
from app.core.dependencies import CurrentUser, get_async_session
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
    with_success,
)
from app.core.services.company import CompanyService


router = APIRouter(prefix="/api/company", tags=["Company"])

_unauthenticated = {401: {"model": ErrorEnvelope, "description": "Unauthenticated"}}
_not_found = {404: {"model": ErrorEnvelope, "description": "Company not found"}}
_invalid = {422: {"model": ValidationErrorEnvelope, "description": "Validation failed"}}


@router.get(
    "/company-list",
    response_model=Envelope[CompanyListResponse],
    summary="List companies",
    description="""
## List Companies

Returns companies oldest first, optionally filtered by a substring of the
name (`search_txt`, case-insensitive).

### Pagination

Pages hold `limit` companies (1-100, default 20). When more exist,
`next_cursor` is set; pass it back as `cursor` to read the next page.
""",
    responses={
        400: {"model": ErrorEnvelope, "description": "Invalid cursor"},
        **_unauthenticated,
        **_invalid,
    },
)
async def company_list(
    user: CurrentUser,
    query: Annotated[CompanyListQuery, Query()],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    page = await CompanyService.list_companies(
        session,
        search_txt=query.search_txt or None,
        limit=query.limit,
        cursor=query.cursor,
    )
    data = CompanyListResponse(
        data=[CompanyResponse.model_validate(c) for c in page.items],
        per_page=page.per_page,
        next_cursor=page.next_cursor,
    )
    return with_success(data=data)


@router.post(
    "/create-company",
    response_model=Envelope[CompanyResponse],
    summary="Create a company",
    responses={**_unauthenticated, **_invalid},
)
async def create_company(
    user: CurrentUser,
    request_data: CompanyRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    """
    Create a company.

    Raises:
        ConflictException: If another company already has the name.
    """
    async with session.begin():
        company = await CompanyService.create_company(
            session, request_data.model_dump()
        )
        data = CompanyResponse.model_validate(company)

    company_logger.info(f"Company {company.id} created by user {user.id}")
    return with_success(data=data, message="Company created successfully!")


@router.get(
    "/company-details/{company_id}",
    response_model=Envelope[CompanyResponse],
    summary="Get a company",
    responses={**_unauthenticated, **_not_found},
)
async def company_details(
    user: CurrentUser,
    company_id: UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    company = await CompanyService.get_company(session, company_id)
    return with_success(data=CompanyResponse.model_validate(company))


@router.put(
    "/update-company/{company_id}",
    response_model=Envelope[CompanyResponse],
    summary="Replace a company",
    description="Replaces every field of the company. Omitted optional fields become null.",
    responses={**_unauthenticated, **_not_found, **_invalid},
)
async def update_company(
    user: CurrentUser,
    company_id: UUID,
    request_data: CompanyRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    async with session.begin():
        company = await CompanyService.update_company(
            session, company_id, request_data.model_dump()
        )
        data = CompanyResponse.model_validate(company)

    company_logger.info(f"Company {company_id} updated by user {user.id}")
    return with_success(data=data, message="Company updated successfully!")


@router.delete(
    "/delete-company/{company_id}",
    response_model=Envelope[EmptyData],
    summary="Delete a company",
    responses={**_unauthenticated, **_not_found},
)
async def delete_company(
    user: CurrentUser,
    company_id: UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Envelope:
    async with session.begin():
        await CompanyService.delete_company(session, company_id)

    company_logger.info(f"Company {company_id} deleted by user {user.id}")
    return with_success(message="Company deleted successfully!")


__all__ = ["router"]
