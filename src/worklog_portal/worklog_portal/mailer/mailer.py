from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Optional, Protocol

from ..core.constants import INVITATION_HOURS, RESET_TOKEN_HOURS

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def send(self, to: str, subject: str, body: str) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class SMTPConfig:
    host: str
    port: int = 587
    username: Optional[str] = None
    password: Optional[str] = None
    use_tls: bool = True
    sender: str = "no-reply@localhost"
    timeout: int = 10


class SMTPMailer:
    """Plain-text mail over SMTP (STARTTLS when configured)."""

    def __init__(self, config: SMTPConfig):
        self._config = config

    def send(self, to: str, subject: str, body: str) -> bool:
        cfg = self._config
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = cfg.sender
        msg["To"] = to
        msg.set_content(body)

        try:
            with smtplib.SMTP(cfg.host, cfg.port, timeout=cfg.timeout) as smtp:
                if cfg.use_tls:
                    smtp.starttls()
                if cfg.username:
                    smtp.login(cfg.username, cfg.password or "")
                smtp.send_message(msg)
            return True
        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send mail to %s", to)
            return False


class LogMailer:
    """Writes messages to the log instead of sending them."""

    def send(self, to: str, subject: str, body: str) -> bool:
        logger.info("Mail to %s: %s\n%s", to, subject, body)
        return True


def invitation_message(*, first_name: str, last_name: str, company_name: str, link: str) -> tuple[str, str]:
    subject = f"Welcome to {company_name} - Complete Your Account Setup"
    body = (
        f"Hello {first_name} {last_name},\n\n"
        f"You have been invited to join {company_name}.\n\n"
        "Click the following link to complete your account setup and set your password:\n"
        f"{link}\n\n"
        f"IMPORTANT: This invitation link will expire in {INVITATION_HOURS} hours for security reasons.\n"
    )
    return subject, body


def reset_password_message(*, first_name: str, company_name: str, link: str) -> tuple[str, str]:
    subject = f"{company_name} - Reset Your Password"
    body = (
        f"Hello {first_name or 'there'},\n\n"
        "We received a request to reset your password. Use the link below to choose a new one:\n"
        f"{link}\n\n"
        f"This link will expire in {RESET_TOKEN_HOURS} hour. "
        "If you did not request a reset, you can ignore this email.\n"
    )
    return subject, body
