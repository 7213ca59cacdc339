from __future__ import annotations

from typing import Any

from .lib.config import Settings
from .lib.engine import run_once as _run_engine
from .lib.logging_bridge import activity as log_activity


def run(**kwargs: Any) -> dict[str, Any]:
    """
    Entry point for the 'catalog_watch' module.

    Accepts kwargs (from the CLI/scheduler), all optional; anything not given
    falls back to CATALOG_WATCH_* environment variables:
      store_backend: str = "local"      # local | sqlite | s3
      store_path: str = "/app/local/state/catalog_watch"
      bucket / prefix: str              # s3 only
      registry_key: str = "websites.json"
      notifier: str = "log"             # email | sns | log
      channel: str | list[str]          # recipients or SNS topic ARN
      max_workers: int | None
      fetch_timeout: float | None

    Returns:
      {"ok": True, "count": N, "results": [...]} after a run, or
      {"ok": False, "error": "..."} when the site registry could not be loaded.

    Raises:
      ConfigError if the settings are invalid.
    """
    settings = Settings.from_env_and_kwargs(kwargs)

    log_activity({
        "component": "catalog_watch.main",
        "op": "start",
        "store_backend": settings.store_backend,
        "registry_key": settings.registry_key,
        "notifier": settings.notifier,
    })

    summary = _run_engine(settings)
    return summary.to_dict()
