"""
Test suite for the OTP email message handler.

Run tests:
    pytest tests/infrastructure/messaging/test_email_handler.py -v
"""

from unittest.mock import AsyncMock, patch

import pytest

from app.infrastructure.messaging.handlers.email_handler import (
    EmailDeliveryError,
    handle_otp_email,
)


class TestHandleOtpEmail:

    @pytest.mark.asyncio
    async def test_sends_otp_email(self):
        event = {
            "email": "jane@example.com",
            "otp_code": "123456",
            "user_name": "Jane",
            "app_name": "Company Registry",
        }

        with patch(
            "app.infrastructure.messaging.handlers.email_handler.EmailManagerService.send_otp_email",
            new_callable=AsyncMock,
            return_value=True,
        ) as mock_send:
            await handle_otp_email(event)

        mock_send.assert_awaited_once_with(
            email="jane@example.com",
            otp_code="123456",
            user_name="Jane",
            app_name="Company Registry",
        )

    @pytest.mark.asyncio
    async def test_optional_fields_default_to_none(self):
        with patch(
            "app.infrastructure.messaging.handlers.email_handler.EmailManagerService.send_otp_email",
            new_callable=AsyncMock,
            return_value=True,
        ) as mock_send:
            await handle_otp_email({"email": "jane@example.com", "otp_code": "1"})

        assert mock_send.call_args.kwargs["user_name"] is None
        assert mock_send.call_args.kwargs["app_name"] is None

    @pytest.mark.asyncio
    async def test_failed_send_raises_for_retry(self):
        with patch(
            "app.infrastructure.messaging.handlers.email_handler.EmailManagerService.send_otp_email",
            new_callable=AsyncMock,
            return_value=False,
        ):
            with pytest.raises(EmailDeliveryError):
                await handle_otp_email(
                    {"email": "jane@example.com", "otp_code": "123456"}
                )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "event", [{"email": "jane@example.com"}, {"otp_code": "123456"}]
    )
    async def test_missing_required_field(self, event):
        with patch(
            "app.infrastructure.messaging.handlers.email_handler.EmailManagerService.send_otp_email",
            new_callable=AsyncMock,
        ) as mock_send:
            with pytest.raises(KeyError):
                await handle_otp_email(event)

        mock_send.assert_not_called()
