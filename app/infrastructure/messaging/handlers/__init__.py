"""
Message handlers for the messaging infrastructure.

- email_handler: sends OTP verification emails
"""

from app.infrastructure.messaging.handlers.email_handler import handle_otp_email

__all__ = ["handle_otp_email"]
