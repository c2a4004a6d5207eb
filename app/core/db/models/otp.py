"""
One-time code model used to confirm ownership of an email address.

"""

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.models.base import BaseModel

if TYPE_CHECKING:
    from app.core.db.models.user import User


class OTPCode(BaseModel):
    """
    A numeric verification code emailed to a user at registration.

    Codes are short lived and single use: a successful verification deletes
    the row, and issuing a new code deletes every older one for the user.

    Attributes:
        user_id: Foreign key to the user the code belongs to.
        code: The 6-digit code as a string (leading zeros never occur).
        expires_at: Absolute expiry, fixed at creation.
        user: Relationship to the User model.
    """

    __tablename__ = "otp_codes"

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey(
            "users.id",
            ondelete="CASCADE",
            comment="Delete codes when user is deleted",
        ),
        nullable=False,
        index=True,
    )

    code: Mapped[str] = mapped_column(
        String(6),
        nullable=False,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="otp_codes",
    )

    def __repr__(self) -> str:
        return f"<OTPCode(id={self.id}, user_id={self.user_id}, expires_at={self.expires_at})>"


__all__ = ["OTPCode"]
