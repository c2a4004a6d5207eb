"""
Tests for the registration, verification and credential checks of AuthService.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import func, select

from app.core.db.crud import otp_code_db, user_db
from app.core.db.models import OTPCode
from app.core.enums import DispatchResult, UserStatus
from app.core.exceptions.types import ConflictException, NotFoundException
from app.core.services.auth import (
    EMAIL_TAKEN,
    INVALID_CREDENTIALS,
    INVALID_OTP,
    OTP_EXPIRED,
    OTP_QUEUE,
    AuthService,
)

TEST_PASSWORD = "password123"


async def _codes_for(session, user_id) -> list[OTPCode]:
    result = await session.execute(select(OTPCode).where(OTPCode.user_id == user_id))
    return list(result.scalars().all())


class TestFormatRegistration:

    @pytest.mark.parametrize(
        "submitted_status", [None, "active", "inactive", "pending", UserStatus.ACTIVE]
    )
    def test_status_is_always_pending(self, submitted_status):
        raw = {
            "name": "John",
            "email": "john@example.com",
            "password": TEST_PASSWORD,
            "status": submitted_status,
        }

        assert AuthService.format_registration(raw)["status"] == UserStatus.PENDING

    def test_address_is_purified(self):
        fields = AuthService.format_registration(
            {"address": "<script>x()</script><b>12 Main St</b>"}
        )

        assert fields["address"] == "12 Main St"

    def test_markup_only_address_becomes_none(self):
        fields = AuthService.format_registration({"address": "<script>x()</script>"})

        assert fields["address"] is None

    def test_confirmation_is_dropped_and_email_normalised(self):
        fields = AuthService.format_registration(
            {
                "email": "  John@Example.COM ",
                "password": TEST_PASSWORD,
                "password_confirmation": TEST_PASSWORD,
            }
        )

        assert "password_confirmation" not in fields
        assert fields["email"] == "john@example.com"

    def test_input_is_not_mutated(self):
        raw = {"address": "<b>x</b>", "password_confirmation": "p"}

        AuthService.format_registration(raw)

        assert raw == {"address": "<b>x</b>", "password_confirmation": "p"}


class TestRegisterUser:

    @pytest.mark.asyncio
    async def test_creates_pending_user_with_hash(self, db_session):
        fields = AuthService.format_registration(
            {"name": "John", "email": "john@example.com", "password": TEST_PASSWORD}
        )

        user = await AuthService.register_user(db_session, fields)

        assert user.status == UserStatus.PENDING
        assert user.password_hash != TEST_PASSWORD
        assert user.password_hash.startswith("$2b$")

    @pytest.mark.asyncio
    async def test_duplicate_email(self, db_session, make_user):
        await make_user(email="john@example.com")
        fields = AuthService.format_registration(
            {"name": "John", "email": "JOHN@example.com", "password": TEST_PASSWORD}
        )

        with pytest.raises(ConflictException) as exc_info:
            await AuthService.register_user(db_session, fields)

        assert exc_info.value.field == "email"
        assert exc_info.value.message == EMAIL_TAKEN

    @pytest.mark.asyncio
    async def test_unique_violation_becomes_conflict(self, db_session, make_user):
        # Another request inserted the same email after the lookup
        await make_user(email="john@example.com")
        fields = AuthService.format_registration(
            {"name": "John", "email": "john@example.com", "password": TEST_PASSWORD}
        )

        with patch.object(user_db, "email_taken", return_value=False):
            with pytest.raises(ConflictException) as exc_info:
                async with db_session.begin():
                    await AuthService.register_user(db_session, fields)

        assert exc_info.value.field == "email"
        assert exc_info.value.message == EMAIL_TAKEN


class TestIssueOTP:

    @pytest.mark.asyncio
    async def test_exactly_one_code_with_five_minute_expiry(
        self, db_session, pending_user
    ):
        await AuthService.issue_otp(db_session, pending_user)
        await AuthService.issue_otp(db_session, pending_user)

        codes = await _codes_for(db_session, pending_user.id)
        assert len(codes) == 1

        code = codes[0]
        assert len(code.code) == 6
        assert code.code.isdigit()
        assert code.expires_at - code.created_at == timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_returns_stored_code_without_queueing(
        self, db_session, pending_user, mock_message_publisher
    ):
        code = await AuthService.issue_otp(db_session, pending_user)

        assert code == (await _codes_for(db_session, pending_user.id))[0].code
        mock_message_publisher.assert_not_called()


class TestDispatchOTP:

    @pytest.mark.asyncio
    async def test_queues_otp_email(self, pending_user, mock_message_publisher):
        result = await AuthService.dispatch_otp(pending_user, "123456")

        assert result is DispatchResult.ACCEPTED
        mock_message_publisher.assert_awaited_once()
        kwargs = mock_message_publisher.call_args.kwargs
        assert kwargs["queue_name"] == OTP_QUEUE
        assert kwargs["event"]["email"] == pending_user.email
        assert kwargs["event"]["otp_code"] == "123456"
        assert kwargs["event"]["user_name"] == pending_user.name

    @pytest.mark.asyncio
    async def test_queue_failure_is_returned(self, pending_user, mock_message_publisher):
        mock_message_publisher.return_value = DispatchResult.QUEUE_UNAVAILABLE

        result = await AuthService.dispatch_otp(pending_user, "123456")

        assert result is DispatchResult.QUEUE_UNAVAILABLE


class TestVerifyRegistration:

    async def _issue(self, db_session, user) -> OTPCode:
        await AuthService.issue_otp(db_session, user)
        return await otp_code_db.get_latest_for_user(db_session, user.id)

    @pytest.mark.asyncio
    async def test_success_activates_user_and_consumes_code(
        self, db_session, pending_user
    ):
        otp = await self._issue(db_session, pending_user)

        user = await AuthService.verify_registration(
            db_session, pending_user.email, TEST_PASSWORD, otp.code
        )

        assert user.status == UserStatus.ACTIVE
        assert await _codes_for(db_session, pending_user.id) == []

    @pytest.mark.asyncio
    async def test_active_user_is_rejected(self, db_session, test_user):
        with pytest.raises(NotFoundException) as exc_info:
            await AuthService.verify_registration(
                db_session, test_user.email, TEST_PASSWORD, "123456"
            )

        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, pending_user):
        otp = await self._issue(db_session, pending_user)

        with pytest.raises(NotFoundException) as exc_info:
            await AuthService.verify_registration(
                db_session, pending_user.email, "password999", otp.code
            )

        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_unknown_email(self, db_session):
        with pytest.raises(NotFoundException) as exc_info:
            await AuthService.verify_registration(
                db_session, "nobody@example.com", TEST_PASSWORD, "123456"
            )

        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_wrong_code(self, db_session, pending_user):
        otp = await self._issue(db_session, pending_user)
        wrong = "111111" if otp.code != "111111" else "222222"

        with pytest.raises(NotFoundException) as exc_info:
            await AuthService.verify_registration(
                db_session, pending_user.email, TEST_PASSWORD, wrong
            )

        assert exc_info.value.message == INVALID_OTP

    @pytest.mark.asyncio
    async def test_no_code_issued(self, db_session, pending_user):
        with pytest.raises(NotFoundException) as exc_info:
            await AuthService.verify_registration(
                db_session, pending_user.email, TEST_PASSWORD, "123456"
            )

        assert exc_info.value.message == INVALID_OTP

    @pytest.mark.asyncio
    async def test_expired_code(self, db_session, pending_user):
        otp = await self._issue(db_session, pending_user)
        await otp_code_db.update(
            db_session,
            otp.id,
            {"expires_at": datetime.now(timezone.utc) - timedelta(seconds=1)},
            commit_self=False,
        )

        with pytest.raises(NotFoundException) as exc_info:
            await AuthService.verify_registration(
                db_session, pending_user.email, TEST_PASSWORD, otp.code
            )

        assert exc_info.value.message == OTP_EXPIRED
        user = await user_db.get_by_id(db_session, pending_user.id)
        assert user.status == UserStatus.PENDING

    @pytest.mark.asyncio
    async def test_second_verification_fails(self, db_session, pending_user):
        otp = await self._issue(db_session, pending_user)
        await AuthService.verify_registration(
            db_session, pending_user.email, TEST_PASSWORD, otp.code
        )

        with pytest.raises(NotFoundException):
            await AuthService.verify_registration(
                db_session, pending_user.email, TEST_PASSWORD, otp.code
            )

    @pytest.mark.asyncio
    async def test_losing_concurrent_verification(self, db_session, pending_user):
        """Test the verification whose conditional delete removes nothing fails."""
        otp = await self._issue(db_session, pending_user)

        # The in-memory SQLite database serves one connection, so two real
        # transactions cannot race here; the losing delete is simulated
        with patch.object(otp_code_db, "consume", return_value=False):
            with pytest.raises(NotFoundException) as exc_info:
                await AuthService.verify_registration(
                    db_session, pending_user.email, TEST_PASSWORD, otp.code
                )

        assert exc_info.value.message == INVALID_OTP
        user = await user_db.get_by_id(db_session, pending_user.id)
        assert user.status == UserStatus.PENDING

    @pytest.mark.asyncio
    async def test_code_deleted_by_concurrent_winner(self, db_session, pending_user):
        """Test a code removed between lookup and delete is reported as invalid."""
        otp = await self._issue(db_session, pending_user)
        real_get_latest = otp_code_db.get_latest_for_user

        async def lookup_then_lose_race(session, user_id):
            found = await real_get_latest(session, user_id)
            await otp_code_db.delete_for_user(session, user_id, commit_self=False)
            return found

        with patch.object(
            otp_code_db, "get_latest_for_user", side_effect=lookup_then_lose_race
        ):
            with pytest.raises(NotFoundException) as exc_info:
                await AuthService.verify_registration(
                    db_session, pending_user.email, TEST_PASSWORD, otp.code
                )

        assert exc_info.value.message == INVALID_OTP


class TestAuthenticate:

    @pytest.mark.asyncio
    async def test_active_user(self, db_session, test_user):
        user = await AuthService.authenticate(db_session, test_user.email, TEST_PASSWORD)

        assert user.id == test_user.id

    @pytest.mark.asyncio
    async def test_pending_user(self, db_session, pending_user):
        with pytest.raises(NotFoundException) as exc_info:
            await AuthService.authenticate(db_session, pending_user.email, TEST_PASSWORD)

        assert exc_info.value.message == INVALID_CREDENTIALS

    @pytest.mark.asyncio
    async def test_wrong_password(self, db_session, test_user):
        with pytest.raises(NotFoundException):
            await AuthService.authenticate(db_session, test_user.email, "password999")
