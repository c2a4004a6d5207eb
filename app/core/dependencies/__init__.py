"""
Shared dependencies for FastAPI endpoints.

"""

from app.core.dependencies.auth import (
    CurrentUser,
    bearer_scheme,
    get_current_user,
)
from app.core.dependencies.db import get_async_session

__all__ = [
    "CurrentUser",
    "bearer_scheme",
    "get_async_session",
    "get_current_user",
]
