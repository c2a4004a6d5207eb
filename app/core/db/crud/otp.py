"""
CRUD operations for the OTPCode model.

Registration codes are single use: they are looked up newest first and
removed once consumed.
"""

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.crud.base import BaseDB
from app.core.db.models import OTPCode


class OTPCodeDB(BaseDB[OTPCode]):
    """CRUD operations for OTPCode."""

    def __init__(self):
        super().__init__(model=OTPCode)

    async def get_latest_for_user(
        self, session: AsyncSession, user_id: UUID
    ) -> OTPCode | None:
        """
        Retrieve the most recently created code of a user.

        Expired codes are returned as well; the caller decides how to report
        expiry.

        Args:
            session: The async database session.
            user_id: The owner of the code.

        Returns:
            The newest OTPCode, or None if the user has none.

        Raises:
            DatabaseException: If a database error occurs.
        """
        result = await self.get_all(
            session=session,
            filters=[self.model.user_id == user_id],
            order_by=[self.model.created_at.desc(), self.model.id.desc()],
            limit=1,
        )
        return result[0] if result else None

    async def delete_for_user(
        self, session: AsyncSession, user_id: UUID, commit_self: bool = True
    ) -> int:
        """Delete every code of a user. Returns the number of rows removed."""
        return await self.delete_by_conditions(
            session, [self.model.user_id == user_id], commit_self=commit_self
        )

    async def consume(
        self, session: AsyncSession, otp: OTPCode, commit_self: bool = True
    ) -> bool:
        """
        Delete ``otp`` if it still exists.

        The DELETE is conditional on the row's id, so of two concurrent
        verifications only one sees a deleted row.

        Returns:
            True if this call removed the row, False if it was already gone.
        """
        deleted = await self.delete_by_conditions(
            session,
            [self.model.id == otp.id, self.model.user_id == otp.user_id],
            commit_self=commit_self,
        )
        return deleted == 1
