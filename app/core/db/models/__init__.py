from app.core.db.models.user import User
from app.core.db.models.otp import OTPCode
from app.core.db.models.access_token import AccessToken
from app.core.db.models.company import Company

__all__ = [
    "AccessToken",
    "Company",
    "OTPCode",
    "User",
]
