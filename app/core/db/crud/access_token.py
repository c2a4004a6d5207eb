"""
CRUD operations for the AccessToken model.
"""

from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.db.crud.base import BaseDB
from app.core.db.models import AccessToken


class AccessTokenDB(BaseDB[AccessToken]):
    """
    CRUD operations for AccessToken.

    Only the ``jti`` of an issued JWT is stored; revoking a token stamps
    ``revoked_at`` instead of deleting the row.
    """

    def __init__(self):
        super().__init__(model=AccessToken)

    async def get_live_by_token_id(
        self, session: AsyncSession, token_id: str
    ) -> AccessToken | None:
        """
        Retrieve a token that is neither revoked nor expired.

        Args:
            session: The database session.
            token_id: The JWT ``jti`` claim.

        Returns:
            The AccessToken if it is live, None otherwise.
        """
        token = await self.get_one_by_conditions(
            session,
            [
                self.model.token_id == token_id,
                self.model.revoked_at.is_(None),
            ],
        )
        if token is None or not token.is_valid:
            return None
        return token

    async def revoke_all_for_user(
        self,
        session: AsyncSession,
        user_id: UUID,
        commit_self: bool = True,
    ) -> int:
        """
        Revoke every live token of a user (sign out everywhere).

        Args:
            session: The database session.
            user_id: The ID of the user whose tokens should be revoked.
            commit_self: Whether to commit the transaction.

        Returns:
            The number of tokens that were revoked.

        Example:
            >>> count = await db.revoke_all_for_user(session, user.id)
        """
        now = datetime.now(timezone.utc)
        return await self.update_by_conditions(
            session,
            [
                self.model.user_id == user_id,
                self.model.revoked_at.is_(None),
            ],
            {"revoked_at": now, "updated_at": now},
            commit_self=commit_self,
        )
