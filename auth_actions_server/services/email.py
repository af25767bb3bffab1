# Copyright (C) 2024 Mayor Exchange Contributors
# SPDX-License-Identifier: GPL-3.0-or-later

"""Email delivery of verification codes over Gmail SMTP."""

import asyncio
import logging
import smtplib
from datetime import datetime, timezone
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from auth_actions_server.config import Settings
from auth_actions_server.errors import ConfigurationError, DependencyError

logger = logging.getLogger(__name__)

templates_dir = Path(__file__).resolve().parent.parent / "templates"
templates = Environment(
    loader=FileSystemLoader(str(templates_dir)),
    autoescape=select_autoescape(["html"]),
)


def render_code_email(code: str, ttl_minutes: int, brand: str = "Mayor Exchange") -> str:
    """Render the HTML body that carries a verification code."""
    return templates.get_template("verification_email.html").render(
        code=code,
        ttl_minutes=ttl_minutes,
        brand=brand,
        year=datetime.now(timezone.utc).year,
    )


class Mailer:
    """Sends HTML email through the configured Gmail account."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    @property
    def sender(self) -> str:
        return f"{self.settings.mail_from_name} <{self.settings.gmail_user}>"

    def _check_credentials(self) -> None:
        user = self.settings.gmail_user
        password = self.settings.gmail_app_password
        if not user or not password:
            logger.error(
                "Missing Gmail credentials. GMAIL_USER present: %s, GMAIL_APP_PASSWORD present: %s",
                bool(user),
                bool(password),
            )
            raise ConfigurationError("Server misconfiguration: Missing email credentials.")

    def _send_sync(self, to: str, subject: str, html: str) -> None:
        s = self.settings
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.attach(MIMEText(html, "html"))
        with smtplib.SMTP(s.smtp_host, s.smtp_port, timeout=s.smtp_timeout_seconds) as server:
            server.starttls()
            server.login(s.gmail_user, s.gmail_app_password)
            server.sendmail(s.gmail_user, [to], msg.as_string())

    async def send(self, to: str, subject: str, html: str) -> None:
        """Send one email. Raises ConfigurationError if credentials are missing."""
        self._check_credentials()
        try:
            await asyncio.to_thread(self._send_sync, to, subject, html)
        except (smtplib.SMTPException, OSError) as e:
            logger.exception("Failed to send email to %s: %s", to, e)
            raise DependencyError("Failed to send email") from e
        logger.info("Email sent: To=%s Subject=%s", to, subject)
