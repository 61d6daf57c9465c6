"""
Out-of-band delivery of one-time codes.

SmtpNotifier sends a templated email. LoggingNotifier is a development
stand-in used when no SMTP account is configured outside production.
"""

from __future__ import annotations

import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from typing import Protocol

from jinja2 import Environment, PackageLoader, select_autoescape
from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.config import EmailSettings, Settings
from ..utils.exceptions import DeliveryError
from ..utils.logger import get_logger

logger = get_logger(__name__)

SUBJECT = "Your Login Code - PromptEnhancer"

_templates = Environment(
    loader=PackageLoader("prompt_enhancer", "templates"),
    autoescape=select_autoescape(["html"]),
)


class Notifier(Protocol):
    def deliver(self, email: str, code: str) -> None:
        """Send code to email. Raises DeliveryError on failure."""
        ...


def render_code_email(code: str, ttl_minutes: int, app_name: str = "PromptEnhancer") -> tuple:
    """Return (plain_text, html) bodies for a code email."""
    context = {"code": code, "ttl_minutes": ttl_minutes, "app_name": app_name}
    text = _templates.get_template("otp_email.txt").render(**context)
    html = _templates.get_template("otp_email.html").render(**context)
    return text, html


class SmtpNotifier:
    """Send codes through an SMTP relay with a bounded timeout and retries."""

    def __init__(self, settings: EmailSettings, code_ttl_minutes: int = 10):
        self.settings = settings
        self.code_ttl_minutes = code_ttl_minutes

    def _build_message(self, email: str, code: str) -> EmailMessage:
        text, html = render_code_email(code, self.code_ttl_minutes, self.settings.from_name)
        msg = EmailMessage()
        msg["Subject"] = SUBJECT
        msg["From"] = formataddr((self.settings.from_name, self.settings.sender))
        msg["To"] = email
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")
        return msg

    def _send(self, msg: EmailMessage) -> None:
        s = self.settings
        if s.port == 465:
            smtp = smtplib.SMTP_SSL(s.host, s.port, timeout=s.timeout_seconds)
        else:
            smtp = smtplib.SMTP(s.host, s.port, timeout=s.timeout_seconds)
        with smtp as conn:
            if s.port != 465:
                conn.starttls()
            conn.login(s.username, s.password)
            conn.send_message(msg)

    def deliver(self, email: str, code: str) -> None:
        if not self.settings.username or not self.settings.password:
            raise DeliveryError("EMAIL_SERVER_USER and EMAIL_SERVER_PASSWORD must be set")

        msg = self._build_message(email, code)
        sender = retry(
            stop=stop_after_attempt(self.settings.max_attempts),
            wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
            retry=retry_if_exception_type((smtplib.SMTPException, OSError)),
        )(self._send)
        try:
            sender(msg)
        except RetryError as e:
            cause = e.last_attempt.exception()
            logger.error("OTP email delivery failed", error=str(cause), host=self.settings.host)
            raise DeliveryError(f"SMTP delivery failed: {cause}")
        logger.info("OTP email sent", to=email)


class LoggingNotifier:
    """Development notifier: logs instead of sending."""

    def __init__(self, reveal_code: bool = False):
        self.reveal_code = reveal_code

    def deliver(self, email: str, code: str) -> None:
        if self.reveal_code:
            logger.warning("OTP not emailed (no SMTP account configured)", to=email, code=code)
        else:
            logger.warning("OTP not emailed (no SMTP account configured)", to=email)


def build_notifier(settings: Settings) -> Notifier:
    """Pick SMTP when an account is configured or in production, else log."""
    if settings.email.username or settings.is_production:
        return SmtpNotifier(settings.email, settings.auth.code_ttl_minutes)
    return LoggingNotifier(reveal_code=True)
