"""E-mail service for account verification and password recovery messages."""

import asyncio
import smtplib
from datetime import UTC, datetime
from email.message import EmailMessage
from email.utils import formataddr

import structlog

from app.config import Settings, settings

CLINIC_NAME = "LittleFalls"


def _layout(title: str, greeting_name: str, body: str, code: str | None = None) -> str:
    code_block = (
        f'<p style="font-size:32px;letter-spacing:8px;font-weight:bold">{code}</p>'
        if code
        else ""
    )
    return (
        f"<h1>{CLINIC_NAME}</h1>"
        f"<h2>{title}</h2>"
        f"<p>Hello {greeting_name}!</p>"
        f"<p>{body}</p>"
        f"{code_block}"
        f"<p>&copy; {datetime.now(UTC).year} {CLINIC_NAME} - Veterinary Clinic</p>"
    )


class EmailService:
    """Sends HTML e-mail over SMTP."""

    def __init__(
        self,
        config: Settings | None = None,
        logger: structlog.stdlib.BoundLogger | None = None,
    ):
        """Initialize service with SMTP settings and a logger."""
        self.config = config or settings
        self.logger = logger or structlog.get_logger(__name__)

    def _deliver(self, message: EmailMessage) -> None:
        with smtplib.SMTP(
            self.config.smtp_host,
            self.config.smtp_port,
            timeout=self.config.smtp_timeout_seconds,
        ) as smtp:
            if self.config.smtp_use_tls:
                smtp.starttls()
            if self.config.smtp_username:
                smtp.login(self.config.smtp_username, self.config.smtp_password)
            smtp.send_message(message)

    async def send(self, to: str, subject: str, html_body: str) -> bool:
        """
        Send one HTML message.

        The blocking SMTP exchange runs in a worker thread.

        Returns:
            True if the message was accepted by the SMTP server, False otherwise
        """
        message = EmailMessage()
        message["From"] = formataddr((self.config.email_from_name, self.config.email_from_address))
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable e-mail client.")
        message.add_alternative(html_body, subtype="html")

        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error("email_send_failed", to=to, subject=subject, error=str(e))
            return False

        self.logger.info("email_sent", to=to, subject=subject)
        return True

    async def send_verification_code(self, to: str, name: str, code: str) -> bool:
        """Send the account verification code."""
        html = _layout(
            "Verify your account",
            name,
            "Thanks for signing up. Enter the following code to verify your account:",
            code,
        )
        return await self.send(to, f"Verify your {CLINIC_NAME} account", html)

    async def send_recovery_code(self, to: str, name: str, code: str) -> bool:
        """Send the password recovery code."""
        html = _layout(
            "Password recovery",
            name,
            "We received a request to reset your password. Use this code to continue:",
            code,
        )
        return await self.send(to, f"{CLINIC_NAME} password recovery code", html)

    async def send_password_changed(self, to: str, name: str) -> bool:
        """Confirm a completed password reset."""
        html = _layout(
            "Password updated",
            name,
            "Your password has been updated. You can now log in with your new password.",
        )
        return await self.send(to, f"Your {CLINIC_NAME} password was changed", html)
