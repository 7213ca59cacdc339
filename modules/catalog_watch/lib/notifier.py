"""
Notification sinks. Each one broadcasts a plain-text message to every
subscriber of its channel and raises NotifyError on failure.
"""

from __future__ import annotations

import unicodedata
from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from . import logging_bridge
from .config import Settings
from .errors import NotifyError


class Notifier(ABC):
    """Implementations must tolerate concurrent send() calls from site workers."""

    @abstractmethod
    def send(self, message: str, *, subject: str | None = None) -> None:
        raise NotImplementedError


class EmailNotifier(Notifier):
    """SMTP delivery through service.emailer; subscribers are Bcc'd."""

    def __init__(self, recipients: Sequence[str]) -> None:
        self.recipients = list(recipients)

    def send(self, message: str, *, subject: str | None = None) -> None:
        from service.emailer import send_text

        try:
            send_text(subject=subject or "Catalog Watch", body=message, bcc=self.recipients)
        except Exception as e:
            raise NotifyError(f"email delivery failed: {e}") from e


class SnsNotifier(Notifier):
    def __init__(self, topic_arn: str, *, client: Any = None) -> None:
        self.topic_arn = topic_arn
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("sns")
        return self._client

    def send(self, message: str, *, subject: str | None = None) -> None:
        kwargs: dict[str, Any] = {"TopicArn": self.topic_arn, "Message": message}
        subject = sns_subject(subject)
        if subject:
            kwargs["Subject"] = subject
        try:
            self.client.publish(**kwargs)
        except (BotoCoreError, ClientError) as e:
            raise NotifyError(f"sns publish to {self.topic_arn} failed: {e}") from e


def sns_subject(subject: str | None) -> str | None:
    """
    SNS subjects must be printable ASCII on one line, at most 100 characters.
    Accents are folded ('Café' -> 'Cafe'); anything else unrepresentable is dropped.
    """
    if not subject:
        return None
    folded = unicodedata.normalize("NFKD", subject).encode("ascii", "ignore").decode("ascii")
    printable = "".join(ch if " " <= ch <= "~" else " " for ch in folded)
    cleaned = " ".join(printable.split())[:100]
    return cleaned or None


class LogNotifier(Notifier):
    """Dry-run sink: records the message in the activity log only."""

    def send(self, message: str, *, subject: str | None = None) -> None:
        logging_bridge.activity({
            "component": "catalog_watch.notifier",
            "op": "dry_run_message",
            "subject": subject,
            "message": message,
        })


def build_notifier(settings: Settings) -> Notifier:
    if settings.notifier == "email":
        return EmailNotifier(settings.channel)
    if settings.notifier == "sns":
        try:
            client = boto3.client("sns", region_name=settings.aws_region)
        except (BotoCoreError, ValueError) as e:
            raise NotifyError(f"cannot create sns client: {e}") from e
        return SnsNotifier(settings.channel[0], client=client)
    return LogNotifier()
