"""
Gmail SMTP 발송기 테스트 (SMTP 연결은 가짜로 대체)
"""

import smtplib

import pytest

from weatherpulse.mailer import GmailSender
from weatherpulse.mailer import gmail_sender


class FakeSMTP:
    """smtplib.SMTP 대체"""

    instances = []
    login_error = None

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, user, password):
        if FakeSMTP.login_error is not None:
            raise FakeSMTP.login_error

    def sendmail(self, sender, recipient, message):
        self.sent.append((sender, recipient, message))


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    FakeSMTP.login_error = None
    monkeypatch.setattr(gmail_sender.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


@pytest.fixture
def sender():
    return GmailSender(sender_email="bot@gmail.com", app_password="secret", sender_name="WeatherPulse", timeout=3)


class TestGmailSender:
    """GmailSender 테스트"""

    def test_send_success(self, sender, fake_smtp):
        result = sender.send("a@x.com", "제목", "<p>본문</p>")

        assert result.success is True
        smtp = fake_smtp.instances[0]
        assert (smtp.host, smtp.port, smtp.timeout) == ("smtp.gmail.com", 587, 3)
        assert smtp.sent[0][:2] == ("bot@gmail.com", "a@x.com")

    def test_auth_failure_is_reported(self, sender, fake_smtp):
        fake_smtp.login_error = smtplib.SMTPAuthenticationError(535, b"bad credentials")

        result = sender.send("a@x.com", "제목", "<p>본문</p>")

        assert result.success is False
        assert "인증" in result.error_message

    def test_timeout_is_reported(self, sender, fake_smtp):
        fake_smtp.login_error = TimeoutError("timed out")

        result = sender.send("a@x.com", "제목", "<p>본문</p>")

        assert result.success is False
        assert result.error_message == "timed out"

    def test_unconfigured_sender(self, fake_smtp):
        sender = GmailSender()
        sender.sender_email = ""
        sender.app_password = ""

        result = sender.send("a@x.com", "제목", "<p>본문</p>")

        assert sender.is_configured is False
        assert result.success is False
        assert fake_smtp.instances == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
