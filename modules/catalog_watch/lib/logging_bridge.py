"""
Structured activity/error records for catalog_watch.

Records are plain dicts with at least `component` and `op`. They go to the
service JSONL sink when it is importable and to stdlib logging otherwise, so
the core can run (and be tested) without the service package.
"""

from __future__ import annotations

import logging
from typing import Any

try:
    from service import logging_utils as _sink  # type: ignore
except Exception:  # pragma: no cover
    _sink = None

_ACTIVITY_LOG = logging.getLogger("catalog_watch.activity")
_ERROR_LOG = logging.getLogger("catalog_watch.error")

_REDACT_KEYS = {
    "password",
    "token",
    "secret",
    "api_key",
    "apikey",
    "authorization",
    "aws_secret_access_key",
    "aws_session_token",
}


def _redact(record: dict[str, Any]) -> dict[str, Any]:
    out = dict(record)
    for k in list(out.keys()):
        lk = str(k).lower()
        if lk in _REDACT_KEYS or lk.startswith("smtp_") or lk.endswith("_secret"):
            out[k] = "***REDACTED***"
    return out


def activity(record: dict[str, Any]) -> None:
    payload = _redact(record)
    _ACTIVITY_LOG.info("%s", payload)
    if _sink is not None:
        try:
            _sink.write_activity_log(payload)
        except Exception:
            _ACTIVITY_LOG.debug("activity sink write failed", exc_info=True)


def error(record: dict[str, Any]) -> None:
    payload = _redact(record)
    _ERROR_LOG.error("%s", payload)
    if _sink is not None:
        try:
            _sink.write_error_log(payload)
        except Exception:
            _ERROR_LOG.debug("error sink write failed", exc_info=True)
