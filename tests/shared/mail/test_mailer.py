"""Tests for the mail collaborator."""

import pytest

from src.shared.mail import mailer as mailer_module
from src.shared.mail.mailer import Mailer, SMTPMailer


class FakeSMTP:
    instances: list["FakeSMTP"] = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.started_tls = False
        self.credentials = None
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.credentials = (username, password)

    def send_message(self, message):
        self.messages.append(message)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(mailer_module.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


class TestMailerInterface:
    def test_base_mailer_cannot_be_instantiated(self):
        with pytest.raises(TypeError):
            Mailer()

    def test_implementation_must_define_send(self):
        class Incomplete(Mailer):
            pass

        with pytest.raises(TypeError):
            Incomplete()


class TestSMTPMailer:
    async def test_sends_html_message(self, fake_smtp):
        mailer = SMTPMailer("smtp.test", 2525, username="bot", password="secret", sender="noreply@test")

        await mailer.send("alice@example.com", "Reset your password", '<a href="x">reset</a>')

        (smtp,) = fake_smtp.instances
        assert (smtp.host, smtp.port) == ("smtp.test", 2525)
        assert smtp.started_tls is True
        assert smtp.credentials == ("bot", "secret")
        message = smtp.messages[0]
        assert message["To"] == "alice@example.com"
        assert message["From"] == "noreply@test"
        assert message["Subject"] == "Reset your password"
        assert '<a href="x">reset</a>' in message.get_body(preferencelist=("html",)).get_content()

    async def test_skips_login_without_credentials(self, fake_smtp):
        mailer = SMTPMailer("smtp.test", 25, use_tls=False)

        await mailer.send("alice@example.com", "Hello", "<p>hi</p>")

        (smtp,) = fake_smtp.instances
        assert smtp.started_tls is False
        assert smtp.credentials is None
