"""Outbound email for invitations, reminders and account welcomes.

A Notifier renders a template and hands the result to one provider chosen at
startup from `EmailConfig.provider`. Providers raise NotificationError on any
delivery failure; the lifecycle decides whether that is fatal (it never is
for invitation operations).
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

import httpx

from h1b_portal.config import EmailConfig
from h1b_portal.logic.email_templates import InvitationEmailContext, render_invitation, render_welcome
from h1b_portal.logic.errors import ConfigurationError, NotificationError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
SENDGRID_API_URL = "https://api.sendgrid.com/v3/mail/send"


@dataclass(frozen=True)
class OutboundEmail:
    to: str
    subject: str
    html: str
    text: str
    sender: str


class EmailProvider(Protocol):
    name: str

    def send(self, message: OutboundEmail) -> None: ...


class ConsoleEmailProvider:
    """Writes messages to the log instead of delivering them (development default)."""

    name = "console"

    def send(self, message: OutboundEmail) -> None:
        logger.info(
            "email_console to=%s subject=%r sender=%r\n%s",
            message.to,
            message.subject,
            message.sender,
            message.text,
        )


class SmtpEmailProvider:
    name = "smtp"

    def __init__(
        self,
        host: str,
        port: int = 587,
        *,
        secure: bool = False,
        username: str | None = None,
        password: str | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.host = host
        self.port = port
        self.secure = secure
        self.username = username
        self.password = password
        self.timeout = timeout

    def _build(self, message: OutboundEmail) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = message.subject
        msg["From"] = message.sender
        msg["To"] = message.to
        msg.set_content(message.text)
        msg.add_alternative(message.html, subtype="html")
        return msg

    def send(self, message: OutboundEmail) -> None:
        msg = self._build(message)
        try:
            if self.secure:
                client = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=ssl.create_default_context())
            else:
                client = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
            with client:
                if not self.secure:
                    client.starttls(context=ssl.create_default_context())
                if self.username:
                    client.login(self.username, self.password or "")
                client.send_message(msg)
        except (smtplib.SMTPException, OSError) as exc:
            raise NotificationError("smtp delivery failed", provider=self.name) from exc


class _HttpEmailProvider:
    """Shared POST-and-check logic for JSON email APIs."""

    name = "http"
    url = ""

    def __init__(self, api_key: str, *, timeout: float = 10.0, client: httpx.Client | None = None) -> None:
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    def _payload(self, message: OutboundEmail) -> dict:
        raise NotImplementedError

    def send(self, message: OutboundEmail) -> None:
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        try:
            if self._client is not None:
                resp = self._client.post(self.url, json=self._payload(message), headers=headers, timeout=self.timeout)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    resp = client.post(self.url, json=self._payload(message), headers=headers)
        except httpx.HTTPError as exc:
            raise NotificationError(f"{self.name} request failed", provider=self.name) from exc
        if resp.status_code >= 400:
            raise NotificationError(
                f"{self.name} rejected message with status {resp.status_code}",
                provider=self.name,
                status_code=resp.status_code,
            )


class ResendEmailProvider(_HttpEmailProvider):
    name = "resend"
    url = RESEND_API_URL

    def _payload(self, message: OutboundEmail) -> dict:
        return {
            "from": message.sender,
            "to": [message.to],
            "subject": message.subject,
            "html": message.html,
            "text": message.text,
        }


class SendGridEmailProvider(_HttpEmailProvider):
    name = "sendgrid"
    url = SENDGRID_API_URL

    def _payload(self, message: OutboundEmail) -> dict:
        return {
            "personalizations": [{"to": [{"email": message.to}]}],
            "from": {"email": message.sender},
            "subject": message.subject,
            "content": [
                {"type": "text/plain", "value": message.text},
                {"type": "text/html", "value": message.html},
            ],
        }


def build_email_provider(cfg: EmailConfig) -> EmailProvider:
    if cfg.provider == "console":
        return ConsoleEmailProvider()
    if cfg.provider == "resend":
        if not cfg.resend_api_key:
            raise ConfigurationError("RESEND_API_KEY is required for the resend provider")
        return ResendEmailProvider(cfg.resend_api_key, timeout=cfg.timeout_seconds)
    if cfg.provider == "sendgrid":
        if not cfg.sendgrid_api_key:
            raise ConfigurationError("SENDGRID_API_KEY is required for the sendgrid provider")
        return SendGridEmailProvider(cfg.sendgrid_api_key, timeout=cfg.timeout_seconds)
    if cfg.provider == "smtp":
        if not cfg.smtp_host:
            raise ConfigurationError("SMTP_HOST is required for the smtp provider")
        return SmtpEmailProvider(
            cfg.smtp_host,
            cfg.smtp_port,
            secure=cfg.smtp_secure,
            username=cfg.smtp_user,
            password=cfg.smtp_password,
            timeout=cfg.timeout_seconds,
        )
    raise ConfigurationError(f"unknown email provider {cfg.provider!r}")


class Notifier:
    def __init__(self, provider: EmailProvider, sender: str) -> None:
        self.provider = provider
        self.sender = sender

    def _dispatch(self, to: str, subject: str, html: str, text: str, kind: str) -> None:
        message = OutboundEmail(to=to, subject=subject, html=html, text=text, sender=self.sender)
        try:
            self.provider.send(message)
        except NotificationError:
            logger.warning("email_failed kind=%s provider=%s to=%s", kind, self.provider.name, to)
            raise
        logger.info("email_sent kind=%s provider=%s to=%s", kind, self.provider.name, to)

    def send_invitation(self, email: str, ctx: InvitationEmailContext) -> None:
        """Send the invitation, or the reminder variant when `ctx.is_reminder`."""
        subject, body_html, body_text = render_invitation(ctx)
        self._dispatch(email, subject, body_html, body_text, "reminder" if ctx.is_reminder else "invitation")

    def send_welcome(self, email: str, first_name: str, dashboard_url: str) -> None:
        subject, body_html, body_text = render_welcome(first_name, dashboard_url)
        self._dispatch(email, subject, body_html, body_text, "welcome")


__all__ = [
    "OutboundEmail",
    "EmailProvider",
    "ConsoleEmailProvider",
    "SmtpEmailProvider",
    "ResendEmailProvider",
    "SendGridEmailProvider",
    "build_email_provider",
    "Notifier",
]
