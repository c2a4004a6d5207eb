from app.core.services.auth import AuthService
from app.core.services.brevo import BrevoService
from app.core.services.company import CompanyPage, CompanyService
from app.core.services.email_manager import EmailManagerService
from app.core.services.rate_limit import (
    MemoryBackend,
    RateLimitBackend,
    RateLimiter,
    RateLimitResult,
    rate_limit_by_ip,
)
from app.core.services.template import Renderer
from app.core.services.token import IssuedToken, TokenService

__all__ = [
    # Core services
    "AuthService",
    "BrevoService",
    "CompanyPage",
    "CompanyService",
    "EmailManagerService",
    "IssuedToken",
    "Renderer",
    "TokenService",
    # Rate limiting
    "MemoryBackend",
    "RateLimitBackend",
    "RateLimiter",
    "RateLimitResult",
    "rate_limit_by_ip",
]
