import logging

import pytest

from latest_drop import notify
from latest_drop.notify import MailNotifier, build_message
from latest_drop.outcome import Priority, Report

REPORT = Report(subject="File copied", body="Copy the most recently edited file", priority=Priority.NORMAL)


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []
        self.messages = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, user, password):
        self.calls.append(("login", user, password))

    def send_message(self, msg):
        self.messages.append(msg)


@pytest.fixture
def fake_smtp(monkeypatch):
    FakeSMTP.instances = []
    monkeypatch.setattr(notify.smtplib, "SMTP", FakeSMTP)
    return FakeSMTP


def test_build_message_headers():
    msg = build_message(
        Report("FAILURE", "boom", Priority.HIGH), "bot@example.com", ["a@example.com", "b@example.com"]
    )
    assert msg["Subject"] == "FAILURE"
    assert msg["To"] == "a@example.com, b@example.com"
    assert msg["X-Priority"].startswith("1")
    assert msg["Importance"] == "High"
    assert "boom" in msg.get_content()


def test_normal_priority_headers():
    msg = build_message(REPORT, "bot@example.com", ["a@example.com"])
    assert msg["X-Priority"].startswith("3")
    assert msg["Importance"] == "Normal"


def test_send_over_smtp(fake_smtp):
    notifier = MailNotifier(
        host="smtp.example.com", port=587, sender="bot@example.com",
        use_tls=True, username="bot", password="secret",
    )
    notifier.send(REPORT, ["ops@example.com"])
    smtp = fake_smtp.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.example.com", 587)
    assert smtp.calls == ["starttls", ("login", "bot", "secret")]
    assert smtp.messages[0]["Subject"] == "File copied"


def test_plain_smtp_skips_tls_and_login(fake_smtp):
    MailNotifier(host="smtp.example.com").send(REPORT, ["ops@example.com"])
    assert fake_smtp.instances[0].calls == []


def test_without_host_only_logs(fake_smtp, caplog):
    with caplog.at_level(logging.INFO, logger="latest_drop.notify"):
        MailNotifier().send(REPORT, ["ops@example.com"])
    assert fake_smtp.instances == []
    assert "File copied" in caplog.text


def test_no_recipients_sends_nothing(fake_smtp):
    MailNotifier(host="smtp.example.com").send(REPORT, [])
    assert fake_smtp.instances == []
