"""
Authentication dependencies for FastAPI endpoints.

Example usage:
    from app.core.dependencies.auth import CurrentUser

    @router.get("/auth-user")
    async def auth_user(user: CurrentUser):
        return user
"""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import auth_logger
from app.core.db.models import User
from app.core.dependencies.db import get_async_session
from app.core.exceptions.types import AuthenticationException
from app.core.services.token import TokenService

# auto_error=False so a missing header goes through AuthenticationException
bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None, Depends(bearer_scheme)
    ],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> User:
    """
    Resolve the bearer token of the request to an active user.

    Args:
        credentials: The HTTP Bearer credentials, None when the header is missing.
        session: The database session.

    Returns:
        User: The authenticated user.

    Raises:
        AuthenticationException: If the token is missing, invalid, expired,
            revoked, or its user is not active.
    """
    if credentials is None:
        raise AuthenticationException()

    try:
        # Own transaction so the request handler can open its own afterwards
        async with session.begin():
            user = await TokenService.resolve(session, credentials.credentials)
    except AuthenticationException:
        auth_logger.warning("Authentication failed: invalid or revoked token")
        raise

    auth_logger.debug(f"User authenticated: {user.id}")
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


__all__ = [
    "CurrentUser",
    "bearer_scheme",
    "get_current_user",
]
