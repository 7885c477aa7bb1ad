"""
auth/mailer.py -- Outbound email for verification and password reset.

Two senders satisfy the Mailer protocol:

  SMTPMailer -- opens an smtplib session per message (STARTTLS + login when
      configured). Failures raise MailDeliveryError; nothing is retried here.
      AuthService lets the error propagate, so a failed send after the user
      record is written is reported to the caller while the record stays.

  LogMailer -- writes the link to the log instead of sending it. Selected by
      build_mailer() when SMTP_HOST is empty in development. Outside
      DEBUG mode a missing SMTP_HOST is a startup error, so live tokens
      never reach the log.

The link format matches the public routes in api/routes/v1/auth.py:
  GET  /api/v1/auth/verify-email/{token}
  POST /api/v1/auth/reset-password/{token}

Layer rule: no imports from api/ or projects/.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Protocol

from core.config import Settings

logger = logging.getLogger("taskboard.mail")


class MailDeliveryError(RuntimeError):
    """The message could not be handed to the mail server."""


class Mailer(Protocol):
    def send_verification_email(self, to: str, token: str) -> None: ...

    def send_password_reset_email(self, to: str, token: str) -> None: ...


def _verification_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/api/v1/auth/verify-email/{token}"


def _reset_link(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}/api/v1/auth/reset-password/{token}"


class SMTPMailer:
    def __init__(self, settings: Settings) -> None:
        self._host = settings.smtp_host
        self._port = settings.smtp_port
        self._username = settings.smtp_username
        self._password = settings.smtp_password
        self._from = settings.smtp_from
        self._use_tls = settings.smtp_use_tls
        self._timeout = settings.smtp_timeout_seconds
        self._base_url = settings.app_base_url
        self._app_name = settings.app_name
        self._reset_minutes = settings.reset_token_expire_minutes

    def send_verification_email(self, to: str, token: str) -> None:
        link = _verification_link(self._base_url, token)
        self._send(
            to,
            f"Verify your {self._app_name} email",
            f"Click the link to verify your email:\n\n{link}\n",
        )

    def send_password_reset_email(self, to: str, token: str) -> None:
        link = _reset_link(self._base_url, token)
        self._send(
            to,
            f"Reset your {self._app_name} password",
            f"Use the link below to choose a new password. It expires in {self._reset_minutes} minutes.\n\n"
            f"{link}\n\n"
            "If you did not request this, you can ignore this email.\n",
        )

    def _send(self, to: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self._from
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(body)
        try:
            with smtplib.SMTP(self._host, self._port, timeout=self._timeout) as smtp:
                if self._use_tls:
                    smtp.starttls()
                if self._username:
                    smtp.login(self._username, self._password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Mail delivery to %s failed: %s", to, exc)
            raise MailDeliveryError(f"Could not deliver email: {exc}") from exc
        logger.info("Sent '%s' to %s", subject, to)


class LogMailer:
    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.app_base_url

    def send_verification_email(self, to: str, token: str) -> None:
        logger.info("Verification link for %s: %s", to, _verification_link(self._base_url, token))

    def send_password_reset_email(self, to: str, token: str) -> None:
        logger.info("Password reset link for %s: %s", to, _reset_link(self._base_url, token))


def build_mailer(settings: Settings) -> Mailer:
    """Return the sender for this configuration.

    Raises ValueError in production mode when SMTP_HOST is not set.
    """
    if settings.smtp_host:
        return SMTPMailer(settings)
    if not settings.debug:
        raise ValueError(
            "SMTP_HOST is required in production mode. "
            "Set it in your environment or .env file. "
            "To log email links instead, set DEBUG=true."
        )
    logger.warning("SMTP_HOST is not set -- email links will be written to the log.")
    return LogMailer(settings)
