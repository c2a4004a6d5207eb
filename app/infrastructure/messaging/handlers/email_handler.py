"""
Email message handlers.

Emails are sent from the consumer process so that registration requests never
wait on the mail provider.
"""

from typing import Any

from app.core.config import email_manager_logger
from app.core.services.email_manager import EmailManagerService


class EmailDeliveryError(Exception):
    """Raised when an email could not be sent, so the message is retried."""


async def handle_otp_email(event: dict[str, Any]) -> None:
    """
    Send the registration OTP email described by ``event``.

    Sending twice is harmless: the user just receives the same code again.

    Args:
        event: Event data containing:
            - email (str): Recipient email address
            - otp_code (str): The 6 digit code
            - user_name (str | None): Recipient name
            - app_name (str | None): Sending application display name

    Raises:
        KeyError: If a required field is missing.
        EmailDeliveryError: If sending fails, to trigger the retry queue.
    """
    email = event["email"]
    otp_code = event["otp_code"]

    email_manager_logger.info(f"Processing OTP email: email={email}")

    sent = await EmailManagerService.send_otp_email(
        email=email,
        otp_code=otp_code,
        user_name=event.get("user_name"),
        app_name=event.get("app_name"),
    )
    if not sent:
        email_manager_logger.warning(f"OTP email not sent: email={email}")
        raise EmailDeliveryError(f"Email service failed for {email}")

    email_manager_logger.info(f"OTP email sent successfully: email={email}")
