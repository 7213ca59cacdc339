from __future__ import annotations

import os
from datetime import datetime, timezone
from typing import Any


def now_iso() -> str:
    """UTC ISO-8601 timestamp with 'Z' suffix."""
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def getenv_str(name: str, default: str | None = None) -> str | None:
    """Environment lookup that treats empty strings as unset."""
    val = os.getenv(name)
    if val is None or not val.strip():
        return default
    return val.strip()


def split_csv(value: Any) -> list[str]:
    """
    Accept "a@x, b@y" or ["a@x", "b@y"] and return a clean list of non-empty strings.
    """
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        parts = [str(v) for v in value]
    else:
        parts = str(value).split(",")
    return [p.strip() for p in parts if p and p.strip()]


def elapsed_us(start_ns: int, end_ns: int) -> int:
    return int((end_ns - start_ns) // 1000)
