"""
Per-client rate limiting for the public authentication endpoints.

Counters live in process memory (fixed window per key), which is enough for a
single API instance. ``RateLimiter`` hides the backend behind a small
interface so another store can be plugged in without touching the routers.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable

from fastapi import Request

from app.core.config import rate_limit_logger, settings
from app.core.exceptions.types import RateLimitExceededException


@dataclass
class RateLimitResult:
    """
    Outcome of one rate limit check.

    Attributes:
        allowed: Whether the request may proceed.
        remaining: Requests left in the current window.
        limit: Maximum requests per window.
        reset_at: When the current window ends.
        retry_after: Seconds to wait, set only when the request is refused.
    """

    allowed: bool
    remaining: int
    limit: int
    reset_at: datetime
    retry_after: int | None = None


class RateLimitBackend(ABC):
    """Storage for request counters."""

    @abstractmethod
    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        """Count one request for ``key`` and report whether it is allowed."""

    @abstractmethod
    async def reset(self, key: str | None = None) -> None:
        """Forget the counter of ``key``, or every counter when ``key`` is None."""


class MemoryBackend(RateLimitBackend):
    """
    Fixed-window counters kept in a dictionary.

    Note:
        Counters are per process and are lost on restart.
    """

    def __init__(self):
        self._store: dict[str, tuple[int, datetime]] = {}

    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        now = datetime.now(timezone.utc)
        count, reset_at = self._store.get(key, (0, now))

        if now >= reset_at:
            count, reset_at = 0, now + timedelta(seconds=window)

        if count >= limit:
            retry_after = max(1, int((reset_at - now).total_seconds()))
            rate_limit_logger.warning(
                f"Rate limit exceeded for key: {key}, retry after: {retry_after}s"
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                limit=limit,
                reset_at=reset_at,
                retry_after=retry_after,
            )

        self._store[key] = (count + 1, reset_at)
        return RateLimitResult(
            allowed=True,
            remaining=limit - count - 1,
            limit=limit,
            reset_at=reset_at,
        )

    async def reset(self, key: str | None = None) -> None:
        if key is None:
            self._store.clear()
        else:
            self._store.pop(key, None)


class RateLimiter:
    """
    Rate limiter facade over a backend.

    Example:
        >>> limiter = RateLimiter()
        >>> result = await limiter.check("my_key", limit=10, window=60)
        >>> if not result.allowed:
        ...     raise RateLimitExceededException(retry_after=result.retry_after)
    """

    def __init__(self, backend: RateLimitBackend | None = None):
        self._backend = backend or MemoryBackend()

    async def check(self, key: str, limit: int, window: int) -> RateLimitResult:
        return await self._backend.check(key, limit, window)

    async def reset(self, key: str | None = None) -> None:
        await self._backend.reset(key)


# Shared by every dependency so counters survive across requests
limiter = RateLimiter()


def format_rate_limit_key(identifier: str, endpoint: str) -> str:
    """
    Build the counter key for a client and endpoint.

    Example:
        >>> format_rate_limit_key("192.168.1.1", "/auth/login")
        'rate_limit:ip:192.168.1.1:/auth/login'
    """
    return f"rate_limit:ip:{identifier}:{endpoint}"


def rate_limit_by_ip(
    limit: int | None = None,
    window: int | None = None,
) -> Callable:
    """
    Create a FastAPI dependency limiting requests per client IP and path.

    Args:
        limit: Requests per window. Defaults to settings.AUTH_RATE_LIMIT_REQUESTS.
        window: Window length in seconds. Defaults to settings.AUTH_RATE_LIMIT_WINDOW.

    Returns:
        A FastAPI dependency raising RateLimitExceededException when refused.

    Example:
        >>> @router.post("/login", dependencies=[Depends(rate_limit_by_ip())])
        ... async def login(...): ...
    """

    async def dependency(request: Request) -> RateLimitResult:
        _limit = limit if limit is not None else settings.AUTH_RATE_LIMIT_REQUESTS
        _window = window if window is not None else settings.AUTH_RATE_LIMIT_WINDOW
        client_ip = request.client.host if request.client else "unknown"
        key = format_rate_limit_key(client_ip, request.url.path)

        result = await limiter.check(key, _limit, _window)
        if not result.allowed:
            raise RateLimitExceededException(
                message=f"Too many attempts. Try again in {result.retry_after} seconds.",
                retry_after=result.retry_after,
            )
        return result

    return dependency


__all__ = [
    "MemoryBackend",
    "RateLimitBackend",
    "RateLimitResult",
    "RateLimiter",
    "format_rate_limit_key",
    "limiter",
    "rate_limit_by_ip",
]
