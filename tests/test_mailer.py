"""
tests/test_mailer.py -- Unit tests for auth/mailer.py.

smtplib.SMTP is patched with a MagicMock, so no network connection is made.
"""

from __future__ import annotations

import smtplib
from unittest.mock import MagicMock, patch

import pytest

from auth.mailer import LogMailer, MailDeliveryError, SMTPMailer, build_mailer
from core.config import Settings


@pytest.fixture
def smtp_settings(test_settings: Settings) -> Settings:
    return test_settings.model_copy(
        update={"smtp_host": "mail.example.com", "smtp_username": "bot", "smtp_password": "pw"}
    )


def test_build_mailer_selects_backend(test_settings: Settings, smtp_settings: Settings):
    assert isinstance(build_mailer(test_settings), LogMailer)
    assert isinstance(build_mailer(smtp_settings), SMTPMailer)


def test_production_without_smtp_host_refuses_to_start(test_settings: Settings):
    production = test_settings.model_copy(update={"debug": False, "smtp_host": ""})
    with pytest.raises(ValueError, match="SMTP_HOST is required"):
        build_mailer(production)


def test_verification_email_contains_link(smtp_settings: Settings):
    with patch("auth.mailer.smtplib.SMTP") as smtp_cls:
        session = MagicMock()
        smtp_cls.return_value.__enter__.return_value = session
        SMTPMailer(smtp_settings).send_verification_email("ada@example.com", "tok123")

    smtp_cls.assert_called_once_with("mail.example.com", 587, timeout=10)
    session.starttls.assert_called_once()
    session.login.assert_called_once_with("bot", "pw")
    message = session.send_message.call_args.args[0]
    assert message["To"] == "ada@example.com"
    assert "http://localhost:8000/api/v1/auth/verify-email/tok123" in message.get_content()


def test_reset_email_contains_link(smtp_settings: Settings):
    with patch("auth.mailer.smtplib.SMTP") as smtp_cls:
        session = MagicMock()
        smtp_cls.return_value.__enter__.return_value = session
        SMTPMailer(smtp_settings).send_password_reset_email("ada@example.com", "tok456")

    message = session.send_message.call_args.args[0]
    assert "/api/v1/auth/reset-password/tok456" in message.get_content()


def test_smtp_failure_raises_delivery_error(smtp_settings: Settings):
    with patch("auth.mailer.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
        with pytest.raises(MailDeliveryError):
            SMTPMailer(smtp_settings).send_verification_email("ada@example.com", "tok")
