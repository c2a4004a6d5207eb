"""
Bearer token issue, revocation and resolution.

Tokens are signed JWTs. Each one is mirrored by an ``access_tokens`` row keyed
by its ``jti`` claim so that logout can revoke every token of a user.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Literal
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import auth_logger, settings
from app.core.db.crud import access_token_db, user_db
from app.core.db.models import User
from app.core.enums import UserStatus
from app.core.exceptions.types import AuthenticationException
from app.core.utils import create_jwt_token, decode_jwt_token


__all__ = ["IssuedToken", "TokenService"]


@dataclass
class IssuedToken:
    """
    A freshly issued bearer token.

    Attributes:
        access_token: The encoded JWT.
        expires_at: When the token stops being accepted.
        token_type: Always "bearer".
    """

    access_token: str
    expires_at: datetime
    token_type: Literal["bearer"] = "bearer"


class TokenService:
    """
    Issues and revokes bearer tokens for users.

    Example:
        >>> issued = await TokenService.issue(session, user)
        >>> user = await TokenService.resolve(session, issued.access_token)
        >>> await TokenService.revoke_all(session, user.id)
    """

    TOKEN_TYPE: str = "access"

    @classmethod
    def lifetime(cls) -> timedelta:
        return timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS)

    @classmethod
    async def issue(
        cls, session: AsyncSession, user: User, commit_self: bool = False
    ) -> IssuedToken:
        """
        Create a bearer token for ``user`` and record its ``jti``.

        Args:
            session: The database session.
            user: The authenticated user.
            commit_self: Whether to commit the token row.

        Returns:
            IssuedToken: The encoded token and its expiry.
        """
        token_id = str(uuid4())
        lifetime = cls.lifetime()
        expires_at = datetime.now(timezone.utc) + lifetime

        access_token = create_jwt_token(
            {
                "sub": str(user.id),
                "email": user.email,
                "type": cls.TOKEN_TYPE,
                "jti": token_id,
            },
            expires_delta=lifetime,
        )

        await access_token_db.create(
            session=session,
            data={
                "user_id": user.id,
                "token_id": token_id,
                "expires_at": expires_at,
            },
            commit_self=commit_self,
        )

        auth_logger.info(f"Access token issued: user_id={user.id}")
        return IssuedToken(access_token=access_token, expires_at=expires_at)

    @classmethod
    async def revoke_all(
        cls, session: AsyncSession, user_id: UUID, commit_self: bool = False
    ) -> int:
        """Revoke every live token of a user. Returns how many were revoked."""
        count = await access_token_db.revoke_all_for_user(
            session, user_id, commit_self=commit_self
        )
        auth_logger.info(f"Access tokens revoked: user_id={user_id}, count={count}")
        return count

    @classmethod
    async def resolve(cls, session: AsyncSession, token: str | None) -> User:
        """
        Return the active user a bearer token belongs to.

        The JWT must be valid and of type ``access``, its ``jti`` must map to
        a live token row of the same user, and that user must be active.

        Raises:
            AuthenticationException: If any of those checks fails.
        """
        payload = decode_jwt_token(token)
        if not payload or payload.get("type") != cls.TOKEN_TYPE:
            raise AuthenticationException()

        try:
            user_id = UUID(str(payload.get("sub")))
        except ValueError:
            raise AuthenticationException()

        token_id = payload.get("jti")
        if not token_id:
            raise AuthenticationException()

        record = await access_token_db.get_live_by_token_id(session, str(token_id))
        if record is None or record.user_id != user_id:
            raise AuthenticationException()

        user = await user_db.get_by_id(session, user_id)
        if user is None or user.status != UserStatus.ACTIVE:
            raise AuthenticationException()

        return user
