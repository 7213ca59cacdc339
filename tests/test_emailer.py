# tests/test_emailer.py
from unittest import mock

import pytest

from service import emailer


@pytest.fixture
def smtp_env(monkeypatch):
    monkeypatch.setenv("SMTP_HOST", "smtp.example.com")
    monkeypatch.setenv("SMTP_PORT", "587")
    monkeypatch.setenv("SMTP_USERNAME", "watcher@example.com")
    monkeypatch.setenv("SMTP_PASSWORD", "hunter2")


def test_send_text_uses_starttls_and_bcc_envelope(smtp_env):
    with mock.patch("smtplib.SMTP") as smtp_cls:
        server = smtp_cls.return_value
        message_id = emailer.send_text(subject="New items", body="hello", bcc=["a@example.com", "b@example.com"])

    smtp_cls.assert_called_once_with("smtp.example.com", 587)
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("watcher@example.com", "hunter2")
    msg = server.send_message.call_args.args[0]
    assert server.send_message.call_args.kwargs["to_addrs"] == ["a@example.com", "b@example.com"]
    assert "To" not in msg
    assert msg["Subject"] == "New items"
    assert msg.get_content().strip() == "hello"
    assert message_id == msg["Message-ID"]


def test_send_text_plain_relay_skips_tls_and_login(monkeypatch):
    monkeypatch.setenv("SMTP_FROM", "watcher@example.com")
    monkeypatch.setenv("SMTP_TIMEOUT", "5")
    with mock.patch("smtplib.SMTP") as smtp_cls:
        server = smtp_cls.return_value
        emailer.send_text(subject="s", body="b", to="ops@example.com")

    smtp_cls.assert_called_once_with("127.0.0.1", 25, timeout=5.0)
    server.starttls.assert_not_called()
    server.login.assert_not_called()


def test_send_text_requires_sender_and_recipients(smtp_env, monkeypatch):
    with pytest.raises(emailer.EmailSendError):
        emailer.send_text(subject="s", body="b")

    monkeypatch.delenv("SMTP_USERNAME")
    with pytest.raises(emailer.EmailSendError):
        emailer.send_text(subject="s", body="b", to=["a@example.com"])


def test_smtp_failures_become_email_send_errors(smtp_env):
    with mock.patch("smtplib.SMTP", side_effect=OSError("connection refused")):
        with pytest.raises(emailer.EmailSendError, match="connection refused"):
            emailer.send_text(subject="s", body="b", to=["a@example.com"])
