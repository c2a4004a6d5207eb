"""
Unit tests for the rate limiting service.

Covers the in-memory backend, the limiter facade and the per-IP dependency
used by the authentication endpoints.
"""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest

from app.core.config import settings
from app.core.exceptions.types import RateLimitExceededException
from app.core.services.rate_limit import (
    MemoryBackend,
    RateLimiter,
    RateLimitResult,
    format_rate_limit_key,
    limiter,
    rate_limit_by_ip,
)


def make_request(host: str | None = "10.0.0.1", path: str = "/auth/login"):
    request = MagicMock()
    request.client = MagicMock(host=host) if host is not None else None
    request.url.path = path
    return request


# ============================================================================
# Tests for RateLimitResult
# ============================================================================


class TestRateLimitResult:
    """Test suite for RateLimitResult dataclass."""

    def test_rate_limit_result_allowed(self):
        result = RateLimitResult(
            allowed=True,
            remaining=7,
            limit=8,
            reset_at=datetime.now(timezone.utc),
        )

        assert result.allowed is True
        assert result.remaining == 7
        assert result.retry_after is None

    def test_rate_limit_result_denied(self):
        result = RateLimitResult(
            allowed=False,
            remaining=0,
            limit=8,
            reset_at=datetime.now(timezone.utc),
            retry_after=30,
        )

        assert result.allowed is False
        assert result.retry_after == 30


# ============================================================================
# Tests for MemoryBackend
# ============================================================================


class TestMemoryBackend:
    """Test suite for MemoryBackend."""

    @pytest.mark.asyncio
    async def test_memory_backend_first_request(self):
        backend = MemoryBackend()
        result = await backend.check("test_key", limit=10, window=60)

        assert result.allowed is True
        assert result.remaining == 9
        assert result.limit == 10

    @pytest.mark.asyncio
    async def test_memory_backend_increment(self):
        backend = MemoryBackend()

        await backend.check("test_key", limit=10, window=60)
        result = await backend.check("test_key", limit=10, window=60)

        assert result.allowed is True
        assert result.remaining == 8

    @pytest.mark.asyncio
    async def test_memory_backend_limit_exceeded(self):
        """The request after the limit is refused with a retry hint."""
        backend = MemoryBackend()

        for _ in range(3):
            assert (await backend.check("test_key", limit=3, window=60)).allowed

        result = await backend.check("test_key", limit=3, window=60)

        assert result.allowed is False
        assert result.remaining == 0
        assert 1 <= result.retry_after <= 60

    @pytest.mark.asyncio
    async def test_memory_backend_refused_requests_do_not_extend_window(self):
        backend = MemoryBackend()

        await backend.check("test_key", limit=1, window=60)
        first = await backend.check("test_key", limit=1, window=60)
        second = await backend.check("test_key", limit=1, window=60)

        assert first.reset_at == second.reset_at

    @pytest.mark.asyncio
    async def test_memory_backend_window_reset(self):
        """A new window starts once the previous one has ended."""
        backend = MemoryBackend()

        await backend.check("test_key", limit=1, window=0.1)
        assert not (await backend.check("test_key", limit=1, window=0.1)).allowed

        await asyncio.sleep(0.15)

        result = await backend.check("test_key", limit=1, window=0.1)
        assert result.allowed is True
        assert result.remaining == 0

    @pytest.mark.asyncio
    async def test_memory_backend_keys_are_independent(self):
        backend = MemoryBackend()

        await backend.check("key_a", limit=1, window=60)
        result = await backend.check("key_b", limit=1, window=60)

        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_memory_backend_reset(self):
        backend = MemoryBackend()

        await backend.check("test_key", limit=10, window=60)
        await backend.check("test_key", limit=10, window=60)
        await backend.reset("test_key")

        result = await backend.check("test_key", limit=10, window=60)
        assert result.remaining == 9

    @pytest.mark.asyncio
    async def test_memory_backend_reset_all(self):
        backend = MemoryBackend()

        await backend.check("key_a", limit=10, window=60)
        await backend.check("key_b", limit=10, window=60)
        await backend.reset()

        assert backend._store == {}

    @pytest.mark.asyncio
    async def test_memory_backend_reset_unknown_key(self):
        backend = MemoryBackend()
        await backend.reset("missing")
        assert backend._store == {}


# ============================================================================
# Tests for RateLimiter
# ============================================================================


class TestRateLimiter:
    """Test suite for RateLimiter class."""

    def test_rate_limiter_defaults_to_memory_backend(self):
        assert isinstance(RateLimiter()._backend, MemoryBackend)

    @pytest.mark.asyncio
    async def test_rate_limiter_delegates_to_backend(self):
        backend = MagicMock()
        expected = RateLimitResult(
            allowed=True, remaining=1, limit=2, reset_at=datetime.now(timezone.utc)
        )
        backend.check = AsyncMock(return_value=expected)
        backend.reset = AsyncMock()

        rate_limiter = RateLimiter(backend=backend)
        result = await rate_limiter.check("key", limit=2, window=10)
        await rate_limiter.reset("key")

        assert result is expected
        backend.check.assert_awaited_once_with("key", 2, 10)
        backend.reset.assert_awaited_once_with("key")


# ============================================================================
# Tests for rate_limit_by_ip dependency
# ============================================================================


class TestRateLimitByIp:
    """Test suite for the per-IP dependency."""

    @pytest.mark.asyncio
    async def test_rate_limit_by_ip_allows_within_limit(self):
        dependency = rate_limit_by_ip(limit=2, window=60)

        result = await dependency(make_request())

        assert result.allowed is True
        assert result.remaining == 1

    @pytest.mark.asyncio
    async def test_rate_limit_by_ip_exceeded(self):
        dependency = rate_limit_by_ip(limit=2, window=60)
        request = make_request()

        await dependency(request)
        await dependency(request)

        with pytest.raises(RateLimitExceededException) as exc_info:
            await dependency(request)

        assert exc_info.value.status_code == 429
        assert exc_info.value.retry_after >= 1
        assert exc_info.value.message == (
            f"Too many attempts. Try again in {exc_info.value.retry_after} seconds."
        )

    @pytest.mark.asyncio
    async def test_rate_limit_by_ip_uses_settings_defaults(self):
        dependency = rate_limit_by_ip()
        request = make_request()

        for _ in range(settings.AUTH_RATE_LIMIT_REQUESTS):
            await dependency(request)

        with pytest.raises(RateLimitExceededException):
            await dependency(request)

    @pytest.mark.asyncio
    async def test_rate_limit_by_ip_counts_per_client(self):
        dependency = rate_limit_by_ip(limit=1, window=60)

        await dependency(make_request(host="10.0.0.1"))
        result = await dependency(make_request(host="10.0.0.2"))

        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_rate_limit_by_ip_counts_per_path(self):
        dependency = rate_limit_by_ip(limit=1, window=60)

        await dependency(make_request(path="/auth/login"))
        result = await dependency(make_request(path="/auth/register"))

        assert result.allowed is True

    @pytest.mark.asyncio
    async def test_rate_limit_by_ip_without_client(self):
        dependency = rate_limit_by_ip(limit=1, window=60)

        await dependency(make_request(host=None))

        assert format_rate_limit_key("unknown", "/auth/login") in (
            limiter._backend._store
        )


class TestKeyFormat:
    """Test suite for rate limit key formatting."""

    def test_key_format_ip(self):
        key = format_rate_limit_key("192.168.1.1", "/auth/login")
        assert key == "rate_limit:ip:192.168.1.1:/auth/login"
