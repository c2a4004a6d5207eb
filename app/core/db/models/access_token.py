"""
Access token model backing bearer-token revocation.

"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.models.base import BaseModel
from app.core.utils import ensure_utc

if TYPE_CHECKING:
    from app.core.db.models.user import User


class AccessToken(BaseModel):
    """
    Server-side record of an issued bearer token.

    The token itself is a signed JWT and is never stored; only its ``jti``
    claim is kept so that every token of a user can be revoked at once.

    Attributes:
        user_id: Foreign key to the user who owns this token.
        token_id: The JWT ``jti`` claim (unique).
        expires_at: When the token stops being accepted.
        revoked_at: When the token was revoked (None while live).
        user: Relationship to the User model.

    Example:
        >>> record = AccessToken(
        ...     user_id=user.id,
        ...     token_id=payload["jti"],
        ...     expires_at=datetime.now(timezone.utc) + timedelta(days=1),
        ... )
    """

    __tablename__ = "access_tokens"

    user_id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    token_id: Mapped[str] = mapped_column(
        String(36),  # str(uuid4())
        unique=True,
        index=True,
        nullable=False,
    )

    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        index=True,
    )

    revoked_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    user: Mapped["User"] = relationship(
        "User",
        back_populates="access_tokens",
    )

    def __repr__(self) -> str:
        return (
            f"<AccessToken(id={self.id}, user_id={self.user_id}, "
            f"expires_at={self.expires_at}, revoked={self.revoked_at is not None})>"
        )

    @property
    def is_valid(self) -> bool:
        """Check if the token is neither expired nor revoked."""
        now = datetime.now(timezone.utc)
        return self.revoked_at is None and ensure_utc(self.expires_at) > now
