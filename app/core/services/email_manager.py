"""
Email Manager Service for rendering and sending application emails.

Templates are rendered with :class:`Renderer` and delivered through
:class:`BrevoService`.

Example usage:
    await EmailManagerService.send_otp_email(
        email="john@gmail.com",
        otp_code="123456",
        user_name="John Doe",
    )
"""

from datetime import datetime, timezone
from typing import Any

from jinja2 import TemplateError

from app.core.config import email_manager_logger, settings
from app.core.exceptions.types import AppException
from app.core.services.brevo import BrevoService, Contact, ListContact
from app.core.services.template import Renderer


__all__ = ["EmailManagerService", "OTP_EMAIL_SUBJECT"]

OTP_EMAIL_SUBJECT = "User Otp Mail"


class EmailManagerService:
    """
    Centralized email sending.

    Requires BrevoService and Renderer to be initialized.
    """

    @classmethod
    async def send_email(
        cls,
        email: str,
        subject: str,
        html_template: str,
        context: dict[str, Any],
        text_template: str | None = None,
        recipient_name: str | None = None,
    ) -> bool:
        """
        Render templates and send the result to one recipient.

        Args:
            email: Recipient email address.
            subject: Email subject line.
            html_template: Name of the HTML template file.
            context: Template variables.
            text_template: Optional plain text template file.
            recipient_name: Optional recipient display name.

        Returns:
            bool: True if Brevo accepted the email, False otherwise.
        """
        try:
            html_content = await Renderer.render_template(
                html_template, context=context
            )
            text_content = None
            if text_template:
                text_content = await Renderer.render_template(
                    text_template, context=context
                )

            await BrevoService.send_transactional_email(
                subject=subject,
                to=ListContact(to=[Contact(email=email, name=recipient_name)]),
                htmlContent=html_content,
                textContent=text_content,
            )
        except (AppException, TemplateError, RuntimeError, ValueError) as e:
            email_manager_logger.error(
                f"Failed to send email: subject='{subject}', to='{email}', error={e}"
            )
            return False

        email_manager_logger.info(
            f"Email sent successfully: subject='{subject}', to='{email}'"
        )
        return True

    @classmethod
    async def send_otp_email(
        cls,
        email: str,
        otp_code: str,
        user_name: str | None = None,
        app_name: str | None = None,
    ) -> bool:
        """
        Send the registration verification code.

        Args:
            email: Recipient email address.
            otp_code: The 6 digit code.
            user_name: Recipient name shown in the greeting.
            app_name: Display name of the sending application.

        Returns:
            bool: True if the email was sent.
        """
        display_name = user_name or "User"
        context = {
            "app_name": app_name or settings.APP_NAME,
            "user_name": display_name,
            "otp": otp_code,
            "expiry_minutes": settings.OTP_EXPIRY_MINUTES,
            "year": datetime.now(timezone.utc).year,
        }

        return await cls.send_email(
            email=email,
            subject=OTP_EMAIL_SUBJECT,
            html_template="otp_email.html",
            text_template="otp_email.txt",
            context=context,
            recipient_name=display_name,
        )
