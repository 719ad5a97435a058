"""Outbound mail over SMTP."""

import logging
import smtplib
from email.message import EmailMessage
from urllib.parse import urlencode

from config import Settings

logger = logging.getLogger(__name__)

RESET_SUBJECT = "Reset your Quiz Campus password"


class SmtpMailer(object):
    """Sends plain-text mail, opening one SMTP connection per message."""

    def __init__(self, host: str, port: int, sender: str, username: str = "",
                 password: str = "", use_tls: bool = True, timeout: float = 10.0) -> None:
        self._host = host
        self._port = port
        self._sender = sender
        self._username = username
        self._password = password
        self._use_tls = use_tls
        self._timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailer":
        return cls(
            host=settings.mail_host,
            port=settings.mail_port,
            sender=settings.mail_from,
            username=settings.mail_username,
            password=settings.mail_password,
            use_tls=settings.mail_use_tls,
            timeout=settings.mail_timeout,
        )

    def _new_connection(self) -> smtplib.SMTP:
        return smtplib.SMTP(host=self._host, port=self._port, timeout=self._timeout)

    def send(self, to: str, subject: str, body: str) -> None:
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)

        with self._new_connection() as conn:
            if self._use_tls:
                conn.starttls()
            if self._username:
                conn.login(self._username, self._password)
            conn.send_message(message)
        logger.info("Sent '%s' mail", subject)


def reset_link(base_url: str, token: str) -> str:
    separator = "&" if "?" in base_url else "?"
    return f"{base_url}{separator}{urlencode({'token': token})}"


def reset_mail_body(fullname: str, link: str, ttl_minutes: int = 60) -> str:
    greeting = f"Hello {fullname}," if fullname else "Hello,"
    return (
        f"{greeting}\n\n"
        "We received a request to reset your password. "
        f"Open the link below to choose a new one. It expires in {ttl_minutes} minutes.\n\n"
        f"{link}\n\n"
        "If you did not ask for this, you can ignore this email.\n"
    )
