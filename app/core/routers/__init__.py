"""
Routers of the application.

"""

from app.core.routers.auth import router as auth_router
from app.core.routers.company import router as company_router

__all__ = ["auth_router", "company_router"]
