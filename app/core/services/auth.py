"""
Authentication service for the email registration flow.

This module owns the user status state machine:

- Registration formatting (address sanitisation, forced ``pending`` status)
- User creation with a bcrypt password hash
- OTP issue, and dispatch of the code to the ``otp_emails`` queue
- OTP verification, which moves a user from ``pending`` to ``active``
- Credential checks for login

Failures are raised as typed exceptions with a short message; the HTTP layer
decides how they are logged and rendered.

Example usage:
    from app.core.services.auth import AuthService

    async with session.begin():
        fields = AuthService.format_registration(payload)
        user = await AuthService.register_user(session, fields)
        code = await AuthService.issue_otp(session, user)
    await AuthService.dispatch_otp(user, code)

    async with session.begin():
        user = await AuthService.verify_registration(
            session, email="john@gmail.com", password="password", submitted_code="123456"
        )
"""

import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Mapping

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.db.crud import otp_code_db, user_db
from app.core.db.models import User
from app.core.enums import DispatchResult, UserStatus
from app.core.exceptions.types import (
    ConflictException,
    DatabaseException,
    NotFoundException,
)
from app.core.sanitizer import purify
from app.core.utils import ensure_utc, generate_otp_code, hash_password, verify_password
from app.infrastructure.messaging import enqueue_event


__all__ = [
    "AuthService",
    "EMAIL_TAKEN",
    "INVALID_CREDENTIALS",
    "INVALID_OTP",
    "OTP_EXPIRED",
    "OTP_QUEUE",
]

EMAIL_TAKEN = "Invalid email address"
INVALID_CREDENTIALS = "Invalid user credentials!"
INVALID_OTP = "Invalid OTP!"
OTP_EXPIRED = "OTP expired!"

OTP_QUEUE = "otp_emails"


class AuthService:
    """
    Registration, verification and credential checks.

    Write operations flush but never commit: they are meant to run inside the
    caller's ``async with session.begin():`` block so that related writes
    commit or roll back together.

    Example:
        >>> user = await AuthService.authenticate(
        ...     session=db_session,
        ...     email="user@example.com",
        ...     password="password123",
        ... )
    """

    # =========================================================================
    # Registration
    # =========================================================================

    @staticmethod
    def format_registration(raw_fields: Mapping[str, Any]) -> dict[str, Any]:
        """
        Normalise an untrusted registration submission.

        The address is stripped of markup, the confirmation field is dropped
        and the status is always ``pending`` whatever the input says.

        Args:
            raw_fields: Submitted fields (name, email, password, optional address).

        Returns:
            dict[str, Any]: Fields ready for :meth:`register_user`.
        """
        fields = {
            key: value
            for key, value in raw_fields.items()
            if key != "password_confirmation"
        }

        if fields.get("address"):
            fields["address"] = purify(fields["address"]) or None

        if isinstance(fields.get("email"), str):
            fields["email"] = fields["email"].strip().lower()

        fields["status"] = UserStatus.PENDING
        return fields

    @classmethod
    async def register_user(
        cls,
        session: AsyncSession,
        fields: Mapping[str, Any],
    ) -> User:
        """
        Persist a new pending user.

        Args:
            session: The database session.
            fields: Output of :meth:`format_registration`.

        Returns:
            User: The created user.

        Raises:
            ConflictException: If the email address is already registered,
                including when a concurrent registration wins the unique index.
            DatabaseException: If the insert fails for another reason.
        """
        if await user_db.email_taken(session, fields["email"]):
            raise ConflictException(EMAIL_TAKEN, field="email")

        try:
            return await user_db.create(
                session=session,
                data={
                    "name": fields["name"],
                    "email": fields["email"],
                    "password_hash": hash_password(fields["password"]),
                    "address": fields.get("address"),
                    "status": UserStatus.PENDING,
                },
                commit_self=False,
            )
        except DatabaseException as e:
            if isinstance(e.__cause__, IntegrityError):
                raise ConflictException(EMAIL_TAKEN, field="email") from e
            raise

    @classmethod
    async def issue_otp(cls, session: AsyncSession, user: User) -> str:
        """
        Create a fresh verification code for ``user``.

        Older codes of the user are deleted first, so only the new code can
        ever match. Nothing is sent here; hand the returned code to
        :meth:`dispatch_otp` once the transaction has committed.

        Args:
            session: The database session.
            user: The pending user.

        Returns:
            str: The new code.
        """
        await otp_code_db.delete_for_user(session, user.id, commit_self=False)

        code = generate_otp_code(settings.OTP_LENGTH)
        issued_at = datetime.now(timezone.utc)
        await otp_code_db.create(
            session=session,
            data={
                "user_id": user.id,
                "code": code,
                "created_at": issued_at,
                "expires_at": issued_at
                + timedelta(minutes=settings.OTP_EXPIRY_MINUTES),
            },
            commit_self=False,
        )
        return code

    @classmethod
    async def dispatch_otp(cls, user: User, code: str) -> DispatchResult:
        """
        Queue the OTP email of ``user``.

        A queueing failure is returned, not raised.

        Returns:
            DispatchResult: Whether the email event reached the broker.
        """
        return await enqueue_event(
            queue_name=OTP_QUEUE,
            event={
                "email": user.email,
                "otp_code": code,
                "user_name": user.name,
                "app_name": settings.APP_NAME,
            },
        )

    # =========================================================================
    # Verification
    # =========================================================================

    @classmethod
    async def _get_user_with_status(
        cls,
        session: AsyncSession,
        email: str,
        password: str,
        status: UserStatus,
    ) -> User:
        # Unknown email, wrong status and wrong password share one message
        user = await user_db.get_by_email(session, email)
        if (
            user is None
            or user.status != status
            or not verify_password(password, user.password_hash)
        ):
            raise NotFoundException(INVALID_CREDENTIALS)
        return user

    @classmethod
    async def verify_registration(
        cls,
        session: AsyncSession,
        email: str,
        password: str,
        submitted_code: str,
    ) -> User:
        """
        Confirm a pending registration with the emailed code.

        The newest code of the user must match exactly and must not be
        expired. On success the code is deleted and the user becomes active;
        both writes belong to the caller's transaction.

        Args:
            session: The database session.
            email: The registered email.
            password: The plain text password.
            submitted_code: The code typed by the user.

        Returns:
            User: The now active user.

        Raises:
            NotFoundException: "Invalid user credentials!", "Invalid OTP!" or
                "OTP expired!".
        """
        user = await cls._get_user_with_status(
            session, email, password, UserStatus.PENDING
        )

        otp = await otp_code_db.get_latest_for_user(session, user.id)
        if otp is None or not hmac.compare_digest(
            otp.code.encode("utf-8"), str(submitted_code).encode("utf-8")
        ):
            raise NotFoundException(INVALID_OTP)

        if ensure_utc(otp.expires_at) < datetime.now(timezone.utc):
            raise NotFoundException(OTP_EXPIRED)

        # Zero deleted rows means another request consumed the code first
        if not await otp_code_db.consume(session, otp, commit_self=False):
            raise NotFoundException(INVALID_OTP)

        activated = await user_db.update(
            session=session,
            id=user.id,
            updates={"status": UserStatus.ACTIVE},
            commit_self=False,
        )
        return activated or user

    @classmethod
    async def authenticate(
        cls, session: AsyncSession, email: str, password: str
    ) -> User:
        """
        Check login credentials of an active user.

        Raises:
            NotFoundException: "Invalid user credentials!" when the user does
                not exist, is not active or the password is wrong.
        """
        return await cls._get_user_with_status(
            session, email, password, UserStatus.ACTIVE
        )
