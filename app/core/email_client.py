# app/core/email_client.py
"""
Email client used to deliver verification codes.

Responsibilities:
  - Hold SMTP configuration (from Settings) on a constructed client that
    services receive as a dependency.
  - Provide send_email(...) plus the verification-code message.
  - Support both TLS (STARTTLS) and SSL connections.
  - Turn every transport failure, timeouts included, into NotifyFailed.

Typical .env configuration (Gmail example with App Password):

    SMTP_HOST=smtp.gmail.com
    SMTP_PORT=465
    SMTP_USERNAME=no-reply@example.org
    SMTP_PASSWORD=<app password>
    SMTP_FROM_EMAIL=no-reply@example.org
    SMTP_FROM_NAME=Account Service
    SMTP_USE_TLS=false
    SMTP_USE_SSL=true
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from functools import lru_cache
from typing import Protocol

from app.core.config import Settings, get_settings
from app.core.errors import NotifyFailed

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """What the verification flow needs from an email transport."""

    def send_verification_code(
        self, to_email: str, full_name: str, code: str, ttl_minutes: int
    ) -> None: ...


def render_verification_email(
    full_name: str, code: str, ttl_minutes: int, sender_name: str
) -> tuple[str, str, str]:
    """
    Build (subject, text_body, html_body) for a verification-code email.
    """
    subject = f"Email Verification Code - {sender_name}"
    text_body = (
        f"Hello {full_name},\n\n"
        f"Thank you for registering with {sender_name}.\n"
        f"Your verification code is: {code}\n\n"
        f"This code will expire in {ttl_minutes} minutes.\n"
        "If you didn't request this, please ignore this email.\n"
    )
    html_body = f"""
        <div style="font-family: Arial, sans-serif; line-height: 1.6;">
          <h2>Hello {full_name},</h2>
          <p>Thank you for registering with <b>{sender_name}</b>.</p>
          <p>Your verification code is:</p>
          <h1 style="background:#222;color:#fff;display:inline-block;padding:10px 20px;border-radius:8px;">
            {code}
          </h1>
          <p>This code will expire in {ttl_minutes} minutes.</p>
          <p>If you didn't request this, please ignore this email.</p>
        </div>
    """
    return subject, text_body, html_body


class EmailClient:
    """
    SMTP-backed Notifier.

    One SMTP connection is opened per message; nothing is shared between
    requests.
    """

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.username = settings.SMTP_USERNAME
        self.password = settings.SMTP_PASSWORD
        # Fallback: if FROM_EMAIL is not set, default to username
        self.from_email = settings.SMTP_FROM_EMAIL or settings.SMTP_USERNAME or ""
        self.from_name = settings.SMTP_FROM_NAME
        self.use_tls = settings.SMTP_USE_TLS
        self.use_ssl = settings.SMTP_USE_SSL
        self.timeout = settings.SMTP_TIMEOUT_SECONDS

    def _create_smtp_client(self) -> smtplib.SMTP:
        """
        Create and return an SMTP client configured for TLS or SSL.

        Priority:
          - If use_ssl → smtplib.SMTP_SSL (e.g., Gmail on 465).
          - Else → smtplib.SMTP + optional STARTTLS if use_tls.
        """
        if self.use_ssl:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout)

        server = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        if self.use_tls:
            server.starttls()
        return server

    def send_email(
        self,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None:
        """
        Send an email to a single recipient.

        Raises
        ------
        NotifyFailed:
            SMTP is not configured, or the connection / send failed or
            timed out.
        """
        if not (self.host and self.username and self.password):
            logger.error("SMTP is not configured (SMTP_HOST/USERNAME/PASSWORD)")
            raise NotifyFailed()

        msg = EmailMessage()
        msg["From"] = (
            f"{self.from_name} <{self.from_email}>" if self.from_email else self.username
        )
        msg["To"] = to_email
        msg["Subject"] = subject

        # Always add a plain-text part
        msg.set_content(text_body)

        if html_body:
            msg.add_alternative(html_body, subtype="html")

        try:
            server = self._create_smtp_client()
            try:
                server.login(self.username, self.password)
                server.send_message(msg)
            finally:
                try:
                    server.quit()
                except (smtplib.SMTPException, OSError):
                    # Connection is being torn down anyway.
                    pass
        except (smtplib.SMTPException, OSError) as exc:
            # OSError covers socket timeouts and refused connections.
            logger.warning("Email to %s failed: %s", to_email, exc)
            raise NotifyFailed() from exc

    def send_verification_code(
        self, to_email: str, full_name: str, code: str, ttl_minutes: int
    ) -> None:
        subject, text_body, html_body = render_verification_email(
            full_name, code, ttl_minutes, self.from_name
        )
        self.send_email(to_email, subject, text_body, html_body)


@lru_cache
def get_email_client() -> EmailClient:
    """Process-wide SMTP client built from settings (override in tests)."""
    return EmailClient(get_settings())
