from datetime import datetime
from typing import Sequence
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.crud.base import BaseDB
from app.core.db.models import Company


class CompanyDB(BaseDB[Company]):
    def __init__(self):
        super().__init__(model=Company)

    async def name_taken(
        self,
        session: AsyncSession,
        name: str,
        exclude_id: UUID | None = None,
    ) -> bool:
        """
        Check whether another company already uses ``name`` (case-insensitive).

        Args:
            session: The database session.
            name: The candidate name.
            exclude_id: Company to ignore, used when renaming a company.
        """
        conditions = [func.lower(self.model.name) == name.strip().lower()]
        if exclude_id is not None:
            conditions.append(self.model.id != exclude_id)
        return await self.exists(session, conditions)

    async def search(
        self,
        session: AsyncSession,
        search_txt: str | None,
        limit: int,
        after: tuple[datetime, UUID] | None = None,
    ) -> Sequence[Company]:
        """
        Page through companies ordered by creation time, oldest first.

        Args:
            session: The database session.
            search_txt: Optional substring matched against the name.
            limit: Maximum number of rows.
            after: ``(created_at, id)`` of the last row already returned.
        """
        filters = []
        if search_txt:
            filters.append(self.model.name.ilike(f"%{search_txt}%"))

        return await self.get_all(
            session=session,
            filters=filters,
            order_by=[self.model.created_at.asc(), self.model.id.asc()],
            last_values=after,
            limit=limit,
        )
