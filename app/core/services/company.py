"""
Company registry operations.

Listing uses keyset pagination on ``(created_at, id)``; the position of the
last returned row travels to the client as an opaque cursor.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Sequence
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import company_logger, settings
from app.core.db.crud import company_db
from app.core.db.models import Company
from app.core.exceptions.types import (
    BadRequestException,
    ConflictException,
    DatabaseException,
    NotFoundException,
)
from app.core.utils import decode_cursor, encode_cursor


__all__ = [
    "COMPANY_NOT_FOUND",
    "NAME_TAKEN",
    "CompanyPage",
    "CompanyService",
]

COMPANY_NOT_FOUND = "Company not found!"
NAME_TAKEN = "The name has already been taken."


def _raise_if_name_conflict(error: DatabaseException) -> None:
    # The unique index on name is the only constraint a valid payload can hit
    if isinstance(error.__cause__, IntegrityError):
        raise ConflictException(NAME_TAKEN, field="name") from error


@dataclass
class CompanyPage:
    items: Sequence[Company]
    per_page: int
    next_cursor: str | None = None


class CompanyService:
    """CRUD over companies. Writes flush and leave committing to the caller."""

    @classmethod
    async def list_companies(
        cls,
        session: AsyncSession,
        search_txt: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> CompanyPage:
        """
        Return one page of companies, oldest first.

        Args:
            session: The database session.
            search_txt: Optional substring of the company name.
            limit: Page size, defaults to ``COMPANY_LIST_DEFAULT_LIMIT``.
            cursor: ``next_cursor`` of the previous page.

        Raises:
            BadRequestException: If the cursor cannot be decoded.
        """
        per_page = limit or settings.COMPANY_LIST_DEFAULT_LIMIT

        after = None
        if cursor:
            try:
                after = decode_cursor(cursor)
            except ValueError:
                raise BadRequestException("Invalid cursor.")

        # One extra row tells whether another page exists
        rows = await company_db.search(
            session, search_txt=search_txt, limit=per_page + 1, after=after
        )
        items = list(rows[:per_page])

        next_cursor = None
        if len(rows) > per_page:
            last = items[-1]
            next_cursor = encode_cursor(last.created_at, last.id)

        return CompanyPage(items=items, per_page=per_page, next_cursor=next_cursor)

    @classmethod
    async def get_company(cls, session: AsyncSession, company_id: UUID) -> Company:
        company = await company_db.get_by_id(session, company_id)
        if company is None:
            raise NotFoundException(COMPANY_NOT_FOUND)
        return company

    @classmethod
    async def create_company(
        cls, session: AsyncSession, data: Mapping[str, Any]
    ) -> Company:
        """
        Create a company.

        Raises:
            ConflictException: If the name is already used by another company,
                including when a concurrent write wins the unique index.
        """
        if await company_db.name_taken(session, data["name"]):
            raise ConflictException(NAME_TAKEN, field="name")

        try:
            company = await company_db.create(session, dict(data), commit_self=False)
        except DatabaseException as e:
            _raise_if_name_conflict(e)
            raise
        company_logger.info(f"Company created: id={company.id}")
        return company

    @classmethod
    async def update_company(
        cls, session: AsyncSession, company_id: UUID, data: Mapping[str, Any]
    ) -> Company:
        """
        Replace the fields of a company.

        The name uniqueness check ignores the company itself and runs before
        the existence check.

        Raises:
            ConflictException: If the new name belongs to another company.
            NotFoundException: If the company does not exist.
        """
        if await company_db.name_taken(session, data["name"], exclude_id=company_id):
            raise ConflictException(NAME_TAKEN, field="name")

        await cls.get_company(session, company_id)
        try:
            company = await company_db.update(
                session, company_id, dict(data), commit_self=False
            )
        except DatabaseException as e:
            _raise_if_name_conflict(e)
            raise
        if company is None:
            raise NotFoundException(COMPANY_NOT_FOUND)

        company_logger.info(f"Company updated: id={company_id}")
        return company

    @classmethod
    async def delete_company(cls, session: AsyncSession, company_id: UUID) -> None:
        if not await company_db.delete(session, company_id, commit_self=False):
            raise NotFoundException(COMPANY_NOT_FOUND)
        company_logger.info(f"Company deleted: id={company_id}")
