# service/emailer.py
from __future__ import annotations

import os
import smtplib
import ssl
from collections.abc import Iterable
from email.message import EmailMessage
from email.utils import formatdate, make_msgid

# ---- Errors -----------------------------------------------------------------


class EmailSendError(RuntimeError):
    """Raised when an email cannot be delivered."""


# ---- Env / Settings ----------------------------------------------------------


def _getenv_any(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v != "":
            return v
    return default


def _resolve_smtp_settings() -> dict:
    """
    Resolve SMTP settings from env:
      - SMTP_HOST / SMTP_PORT (default 127.0.0.1:25)
      - SMTP_USERNAME / SMTP_PASSWORD (optional; login is skipped when unset)
      - SMTP_USE_SSL = "true" | "false"
      - SMTP_STARTTLS = "true" | "false" | "auto" (default)
      - SMTP_FROM, SMTP_FROM_NAME
      - SMTP_TIMEOUT seconds (optional)
    """
    host = _getenv_any("SMTP_HOST", default="127.0.0.1")
    port = int(_getenv_any("SMTP_PORT", default="25") or 25)

    username = _getenv_any("SMTP_USERNAME")
    password = _getenv_any("SMTP_PASSWORD")

    use_ssl = (_getenv_any("SMTP_USE_SSL", default="false") or "false").strip().lower() == "true"
    starttls = (_getenv_any("SMTP_STARTTLS", default="auto") or "auto").strip().lower()
    if use_ssl:
        # If explicit SSL, ignore STARTTLS
        starttls = "false"

    timeout_raw = _getenv_any("SMTP_TIMEOUT")
    return {
        "host": host,
        "port": port,
        "username": username,
        "password": password,
        "use_ssl": use_ssl,
        "starttls": starttls,  # "true" | "false" | "auto"
        "from_addr": _getenv_any("SMTP_FROM", default=username or ""),
        "from_name": _getenv_any("SMTP_FROM_NAME", default="Catalog Watch"),
        "timeout": float(timeout_raw) if timeout_raw else None,
    }


# ---- Helpers ----------------------------------------------------------------


def _as_list(values: Iterable[str] | str | None) -> list[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = [values]
    return [v for v in (s.strip() for s in values) if v]


def _should_starttls(port: int, starttls_setting: str) -> bool:
    if starttls_setting == "true":
        return True
    if starttls_setting == "false":
        return False
    # "auto": enable STARTTLS except on plain relay ports
    return port not in (25, 2525)


def _build_message(*, subject: str, body: str, to: list[str], from_name: str | None, from_addr: str) -> EmailMessage:
    if not subject or not subject.strip():
        raise EmailSendError("Missing subject.")
    if not body or not body.strip():
        raise EmailSendError("Missing body.")

    msg = EmailMessage()
    msg["From"] = f"{from_name} <{from_addr}>" if from_name else from_addr
    if to:
        msg["To"] = ", ".join(to)
    msg["Subject"] = subject
    msg["Date"] = formatdate(localtime=True)
    msg["Message-ID"] = make_msgid()
    msg.set_content(body, charset="utf-8")
    return msg


def _send_via_smtp(msg: EmailMessage, *, rcpt_to: list[str], settings: dict) -> None:
    host = settings["host"]
    port = settings["port"]
    timeout = settings["timeout"]
    context = ssl.create_default_context()

    kwargs = {"timeout": timeout} if timeout else {}
    try:
        if settings["use_ssl"]:
            server = smtplib.SMTP_SSL(host, port, context=context, **kwargs)
        else:
            server = smtplib.SMTP(host, port, **kwargs)
        with server:
            server.ehlo()
            if not settings["use_ssl"] and _should_starttls(port, settings["starttls"]):
                server.starttls(context=context)
                server.ehlo()
            if settings["username"] and settings["password"]:
                server.login(settings["username"], settings["password"])
            server.send_message(msg, to_addrs=rcpt_to)
    except Exception as e:
        raise EmailSendError(f"SMTP send failed: {e}") from e


# ---- Public API --------------------------------------------------------------


def send_text(
    *,
    subject: str,
    body: str,
    to: Iterable[str] | str | None = None,
    bcc: Iterable[str] | str | None = None,
) -> str:
    """
    Send a plain-text email in a single attempt.

    Returns:
        message_id (str): RFC-822 Message-ID generated by the sender.

    Raises:
        EmailSendError on any failure (connection/auth/SMTP/validation/etc).
    """
    settings = _resolve_smtp_settings()
    to_l = _as_list(to)
    bcc_l = _as_list(bcc)

    from_addr = (settings["from_addr"] or "").strip()
    if not from_addr:
        raise EmailSendError("No from address resolved. Set SMTP_FROM or SMTP_USERNAME.")

    rcpt_to = [*to_l, *bcc_l]
    if not rcpt_to:
        raise EmailSendError("No recipients (to/bcc).")

    msg = _build_message(
        subject=subject,
        body=body,
        to=to_l,
        from_name=(settings["from_name"] or "").strip() or None,
        from_addr=from_addr,
    )
    _send_via_smtp(msg, rcpt_to=rcpt_to, settings=settings)
    return str(msg["Message-ID"])
