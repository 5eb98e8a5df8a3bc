from __future__ import annotations

import logging
from datetime import datetime
from email.message import EmailMessage
from email.utils import formataddr
from pathlib import Path
from typing import Optional

import aiosmtplib
from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..config import Settings, get_settings

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

_jinja_env: Optional[Environment] = None


def get_jinja_env() -> Environment:
    global _jinja_env
    if _jinja_env is None:
        _jinja_env = Environment(
            loader=FileSystemLoader(str(TEMPLATES_DIR)),
            autoescape=select_autoescape(["html", "xml"]),
        )
    return _jinja_env


def render_otp_email(*, code: str, name: str = "", now: datetime, ttl_minutes: int = 10) -> str:
    template = get_jinja_env().get_template("otp_email.html")
    return template.render(code=code, name=name, ttl_minutes=ttl_minutes, date=now.strftime("%a %b %d %Y"))


class SmtpMailer:
    """aiosmtplib transport. ``configured`` is False unless host, user and password are all set."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        s = settings or get_settings()
        self._host = s.SMTP_HOST
        self._port = s.SMTP_PORT
        self._user = s.SMTP_USER
        self._password = s.SMTP_PASS
        self._use_tls = bool(s.SMTP_USE_TLS)
        self._timeout = s.SMTP_TIMEOUT
        self._from = s.mail_from
        self._app_name = s.APP_NAME

        if not s.smtp_configured:
            missing = [
                key
                for key, value in [
                    ("SMTP_HOST", self._host),
                    ("SMTP_USER", self._user),
                    ("SMTP_PASS", self._password),
                ]
                if not value
            ]
            logger.warning("SMTP disabled; OTPs will be logged instead of sent. Missing settings: %s", ", ".join(missing))

    @property
    def configured(self) -> bool:
        return bool(self._host and self._user and self._password)

    def build_message(self, *, to: str, subject: str, html_body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = formataddr((self._app_name, self._from))
        message["To"] = to
        message["Subject"] = subject
        message.set_content("Please enable HTML to view this email.")
        message.add_alternative(html_body, subtype="html")
        return message

    async def send(self, *, to: str, subject: str, html_body: str) -> None:
        """Deliver one message. Raises on SMTP errors and on timeout; never retries."""
        message = self.build_message(to=to, subject=subject, html_body=html_body)
        await aiosmtplib.send(
            message,
            hostname=self._host,
            port=self._port,
            username=self._user,
            password=self._password,
            use_tls=self._use_tls,
            timeout=self._timeout,
        )
        logger.info("email sent to %s", to)
