from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from .http_client import DEFAULT_USER_AGENT
from .utils import getenv_str, split_csv


# -----------------------------
# Exceptions
# -----------------------------
class ConfigError(ValueError):
    """Raised when provided kwargs/env cannot form a valid Settings."""


STORE_BACKENDS = ("local", "sqlite", "s3")
NOTIFIERS = ("email", "sns", "log")

# kwarg name -> environment variable consulted when the kwarg is absent
_ENV_NAMES: dict[str, tuple[str, ...]] = {
    "store_backend": ("CATALOG_WATCH_STORE",),
    "store_path": ("CATALOG_WATCH_STORE_PATH",),
    "bucket": ("CATALOG_WATCH_BUCKET",),
    "prefix": ("CATALOG_WATCH_PREFIX",),
    "registry_key": ("CATALOG_WATCH_REGISTRY_KEY",),
    "notifier": ("CATALOG_WATCH_NOTIFIER",),
    "channel": ("CATALOG_WATCH_CHANNEL",),
    "max_workers": ("CATALOG_WATCH_MAX_WORKERS",),
    "fetch_timeout": ("CATALOG_WATCH_FETCH_TIMEOUT",),
    "user_agent": ("CATALOG_WATCH_USER_AGENT",),
    "aws_region": ("AWS_REGION", "AWS_DEFAULT_REGION"),
    "endpoint_url": ("CATALOG_WATCH_ENDPOINT_URL",),
}


# -----------------------------
# Model
# -----------------------------
@dataclass(frozen=True)
class Settings:
    """
    Canonical configuration for one catalog_watch run.

    Built once at startup (see `from_env_and_kwargs`) and handed to the engine;
    nothing below the entry point reads the environment.
    """

    # Storage
    store_backend: str = "local"
    store_path: str = "/app/local/state/catalog_watch"
    bucket: str | None = None
    prefix: str = ""
    registry_key: str = "websites.json"

    # Notification
    notifier: str = "log"
    channel: list[str] = field(default_factory=list)

    # Runtime behavior
    max_workers: int | None = None  # None -> one worker per site
    fetch_timeout: float | None = None  # None -> no bound
    user_agent: str = DEFAULT_USER_AGENT

    # AWS (s3 store / sns notifier)
    aws_region: str | None = None
    endpoint_url: str | None = None

    @classmethod
    def from_env_and_kwargs(cls, kwargs: Mapping[str, Any] | None = None) -> Settings:
        """
        Build Settings with validation. Explicit kwargs win over the environment:

            store_backend: "local" | "sqlite" | "s3"     (CATALOG_WATCH_STORE)
            store_path: str                               (CATALOG_WATCH_STORE_PATH)
            bucket: str, required for s3                  (CATALOG_WATCH_BUCKET)
            prefix: str                                   (CATALOG_WATCH_PREFIX)
            registry_key: str = "websites.json"           (CATALOG_WATCH_REGISTRY_KEY)
            notifier: "email" | "sns" | "log"             (CATALOG_WATCH_NOTIFIER)
            channel: recipients (comma list) or topic ARN (CATALOG_WATCH_CHANNEL)
            max_workers: int                              (CATALOG_WATCH_MAX_WORKERS)
            fetch_timeout: float seconds                  (CATALOG_WATCH_FETCH_TIMEOUT)
            user_agent: str                               (CATALOG_WATCH_USER_AGENT)
            aws_region, endpoint_url                      (AWS_REGION, CATALOG_WATCH_ENDPOINT_URL)
        """
        kw = dict(kwargs or {})

        def pick(name: str) -> Any:
            if kw.get(name) not in (None, ""):
                return kw[name]
            for env_name in _ENV_NAMES.get(name, ()):
                val = getenv_str(env_name)
                if val is not None:
                    return val
            return None

        defaults = cls()
        settings = cls(
            store_backend=str(pick("store_backend") or defaults.store_backend).strip().lower(),
            store_path=str(pick("store_path") or defaults.store_path).strip(),
            bucket=_opt_str(pick("bucket")),
            prefix=str(pick("prefix") or "").strip(),
            registry_key=str(pick("registry_key") or defaults.registry_key).strip(),
            notifier=str(pick("notifier") or defaults.notifier).strip().lower(),
            channel=split_csv(pick("channel")),
            max_workers=_opt_int(pick("max_workers"), "max_workers"),
            fetch_timeout=_opt_float(pick("fetch_timeout"), "fetch_timeout"),
            user_agent=str(pick("user_agent") or defaults.user_agent).strip(),
            aws_region=_opt_str(pick("aws_region")),
            endpoint_url=_opt_str(pick("endpoint_url")),
        )
        _validate_settings(settings)
        return settings


# -----------------------------
# Helpers
# -----------------------------
def _opt_str(value: Any) -> str | None:
    s = str(value).strip() if value is not None else ""
    return s or None


def _opt_int(value: Any, name: str) -> int | None:
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be an integer (got {value!r}).") from e


def _opt_float(value: Any, name: str) -> float | None:
    if value in (None, ""):
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"'{name}' must be a number (got {value!r}).") from e


def _validate_settings(s: Settings) -> None:
    if s.store_backend not in STORE_BACKENDS:
        raise ConfigError(f"Unknown store backend {s.store_backend!r}; expected one of {STORE_BACKENDS}.")
    if s.store_backend in ("local", "sqlite") and not s.store_path:
        raise ConfigError("'store_path' cannot be empty for local/sqlite storage.")
    if s.store_backend == "s3" and not s.bucket:
        raise ConfigError("'bucket' is required when store_backend is 's3'.")
    if not s.registry_key:
        raise ConfigError("'registry_key' cannot be empty.")

    if s.notifier not in NOTIFIERS:
        raise ConfigError(f"Unknown notifier {s.notifier!r}; expected one of {NOTIFIERS}.")
    if s.notifier == "email" and not s.channel:
        raise ConfigError("'channel' must list at least one recipient for the email notifier.")
    if s.notifier == "sns" and len(s.channel) != 1:
        raise ConfigError("'channel' must be exactly one SNS topic ARN for the sns notifier.")
    if s.notifier == "sns" and not s.aws_region:
        raise ConfigError("'aws_region' (AWS_REGION) is required for the sns notifier.")

    if s.max_workers is not None and s.max_workers <= 0:
        raise ConfigError("'max_workers' must be >= 1.")
    if s.fetch_timeout is not None and s.fetch_timeout <= 0:
        raise ConfigError("'fetch_timeout' must be > 0.")
