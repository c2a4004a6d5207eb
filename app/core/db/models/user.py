from typing import TYPE_CHECKING

from sqlalchemy import Enum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.db.models.base import BaseModel
from app.core.enums import UserStatus

if TYPE_CHECKING:
    from app.core.db.models.access_token import AccessToken
    from app.core.db.models.otp import OTPCode


class User(BaseModel):
    __tablename__ = "users"

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )

    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    status: Mapped[UserStatus] = mapped_column(
        Enum(
            UserStatus,
            native_enum=False,
            name="user_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        default=UserStatus.PENDING,
        nullable=False,
    )

    address: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    otp_codes: Mapped[list["OTPCode"]] = relationship(
        "OTPCode",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    access_tokens: Mapped[list["AccessToken"]] = relationship(
        "AccessToken",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, status={self.status.value})>"
