"""Functional tests for email rendering and delivery providers."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import httpx
import pytest

from h1b_portal.config import EmailConfig
from h1b_portal.logic.email_templates import (
    INVITATION_SUBJECT,
    REMINDER_SUBJECT,
    WELCOME_SUBJECT,
    InvitationEmailContext,
    display_case_type,
    render_invitation,
)
from h1b_portal.logic.errors import ConfigurationError, NotificationError
from h1b_portal.logic.notifier import (
    RESEND_API_URL,
    SENDGRID_API_URL,
    ConsoleEmailProvider,
    Notifier,
    OutboundEmail,
    ResendEmailProvider,
    SendGridEmailProvider,
    SmtpEmailProvider,
    build_email_provider,
)


def _ctx(**overrides) -> InvitationEmailContext:
    base = dict(
        first_name="Jane",
        last_name="Doe",
        employer_name="Acme <Robotics> & Co",
        case_type="h1b_initial",
        job_title="Software Engineer",
        login_url="https://portal.example.com/signin?email=jane%40example.com&redirect=dashboard",
        expires_at=datetime(2026, 1, 5, 12, 0, tzinfo=timezone.utc),
    )
    base.update(overrides)
    return InvitationEmailContext(**base)


def _message() -> OutboundEmail:
    return OutboundEmail(
        to="jane@example.com",
        subject="Hello",
        html="<p>Hi</p>",
        text="Hi",
        sender="H1-B Portal <noreply@h1bportal.com>",
    )


def test_invitation_and_reminder_differ_only_in_wording():
    subject, html, text = render_invitation(_ctx())
    r_subject, r_html, r_text = render_invitation(_ctx(is_reminder=True))

    assert subject == INVITATION_SUBJECT
    assert r_subject == REMINDER_SUBJECT
    assert "This is a reminder that you have" in r_text
    assert "This is a reminder" not in text
    for body in (text, r_text):
        assert "Monday, January 5, 2026" in body
        assert "Petition Type: H1B INITIAL" in body
        assert "Position: Software Engineer" in body


def test_html_body_escapes_interpolated_values():
    _, html, text = render_invitation(_ctx())
    assert "Acme &lt;Robotics&gt; &amp; Co" in html
    assert "Acme <Robotics> & Co" in text
    assert 'href="https://portal.example.com/signin?email=jane%40example.com&amp;redirect=dashboard"' in html


def test_case_type_replaces_only_first_underscore():
    assert display_case_type("h1b_initial") == "H1B INITIAL"
    assert display_case_type("h1b_cap_exempt") == "H1B CAP_EXEMPT"


def test_notifier_sends_welcome():
    sent: list[OutboundEmail] = []

    class Capture:
        name = "capture"

        def send(self, message):
            sent.append(message)

    Notifier(Capture(), "Portal <p@example.com>").send_welcome("jane@example.com", "Jane", "https://x/dashboard")
    assert sent[0].subject == WELCOME_SUBJECT
    assert sent[0].sender == "Portal <p@example.com>"
    assert "Welcome, Jane!" in sent[0].html
    assert "https://x/dashboard" in sent[0].text


def test_console_provider_logs_instead_of_sending(caplog):
    with caplog.at_level("INFO", logger="h1b_portal.logic.notifier"):
        ConsoleEmailProvider().send(_message())
    assert any("email_console" in r.getMessage() for r in caplog.records)


def test_resend_provider_posts_json():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "msg_1"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    ResendEmailProvider("re_key", client=client).send(_message())

    assert seen["url"] == RESEND_API_URL
    assert seen["auth"] == "Bearer re_key"
    assert seen["body"]["to"] == ["jane@example.com"]
    assert seen["body"]["subject"] == "Hello"
    assert seen["body"]["text"] == "Hi"


def test_sendgrid_provider_posts_personalizations():
    seen: dict = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(202)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    SendGridEmailProvider("sg_key", client=client).send(_message())

    assert seen["url"] == SENDGRID_API_URL
    assert seen["body"]["personalizations"] == [{"to": [{"email": "jane@example.com"}]}]
    assert [c["type"] for c in seen["body"]["content"]] == ["text/plain", "text/html"]


@pytest.mark.parametrize("status", [400, 401, 500])
def test_http_provider_rejection_is_notification_error(status):
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(status)))
    with pytest.raises(NotificationError) as exc_info:
        ResendEmailProvider("k", client=client).send(_message())
    assert exc_info.value.context["status_code"] == status


def test_http_provider_transport_error_is_notification_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectTimeout("timed out", request=request)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    with pytest.raises(NotificationError):
        SendGridEmailProvider("k", client=client).send(_message())


def test_smtp_provider_wraps_connection_failure(monkeypatch):
    import smtplib

    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("no smtp here")

    monkeypatch.setattr(smtplib, "SMTP", refuse)
    with pytest.raises(NotificationError):
        SmtpEmailProvider("localhost", 2525).send(_message())


def test_smtp_provider_uses_starttls_and_login(monkeypatch):
    import smtplib

    calls: list = []

    class FakeSMTP:
        def __init__(self, host, port, timeout):
            calls.append(("connect", host, port, timeout))

        def __enter__(self):
            return self

        def __exit__(self, *exc):
            return False

        def starttls(self, context=None):
            calls.append(("starttls",))

        def login(self, user, password):
            calls.append(("login", user, password))

        def send_message(self, msg):
            calls.append(("send", msg["To"], msg["Subject"]))

    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    SmtpEmailProvider("mail.example.com", 587, username="u", password="p", timeout=3).send(_message())
    assert calls == [
        ("connect", "mail.example.com", 587, 3),
        ("starttls",),
        ("login", "u", "p"),
        ("send", "jane@example.com", "Hello"),
    ]


def test_notifier_propagates_provider_failure():
    class Broken:
        name = "broken"

        def send(self, message):
            raise NotificationError("down")

    with pytest.raises(NotificationError):
        Notifier(Broken(), "x@example.com").send_invitation("jane@example.com", _ctx())


def test_build_provider_from_config():
    assert isinstance(build_email_provider(EmailConfig()), ConsoleEmailProvider)
    assert isinstance(build_email_provider(EmailConfig(provider="resend", resend_api_key="k")), ResendEmailProvider)
    assert isinstance(
        build_email_provider(EmailConfig(provider="sendgrid", sendgrid_api_key="k")), SendGridEmailProvider
    )
    smtp = build_email_provider(EmailConfig(provider="nodemailer", smtp_host="mail", smtp_port=465, smtp_secure=True))
    assert isinstance(smtp, SmtpEmailProvider)
    assert smtp.secure is True


@pytest.mark.parametrize(
    "cfg",
    [
        EmailConfig(provider="resend"),
        EmailConfig(provider="sendgrid"),
        EmailConfig(provider="smtp"),
    ],
)
def test_build_provider_without_credentials_fails(cfg):
    with pytest.raises(ConfigurationError):
        build_email_provider(cfg)
