from app.core.db.crud.base import BaseDB
from app.core.db.crud.access_token import AccessTokenDB
from app.core.db.crud.company import CompanyDB
from app.core.db.crud.otp import OTPCodeDB
from app.core.db.crud.user import UserDB

# Global CRUD instances - use these instead of creating new instances
user_db = UserDB()
otp_code_db = OTPCodeDB()
access_token_db = AccessTokenDB()
company_db = CompanyDB()

__all__ = [
    # Classes (for type hints and subclassing)
    "AccessTokenDB",
    "BaseDB",
    "CompanyDB",
    "OTPCodeDB",
    "UserDB",
    # Global instances (for actual usage)
    "access_token_db",
    "company_db",
    "otp_code_db",
    "user_db",
]
