# service/scheduler.py
from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from typing import Any

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .logging_utils import write_activity_log, write_error_log

LOG = logging.getLogger(__name__)

JOB_ID = "catalog_watch"
DEFAULT_INTERVAL_MINUTES = 60


# ---- Public controller ------------------------------------------------------


class SchedulerController:
    """
    A small façade around APScheduler so the CLI can manage lifecycle cleanly.
    """

    def __init__(self, scheduler: BackgroundScheduler) -> None:
        self._scheduler = scheduler
        self._stopped_evt = threading.Event()

    def stop(self) -> None:
        if self._scheduler.running:
            LOG.info("Shutting down scheduler...")
            # wait=False -> stop immediately; an in-flight run is allowed to finish.
            self._scheduler.shutdown(wait=False)
        self._stopped_evt.set()
        LOG.info("Scheduler shut down complete.")

    def join(self, timeout: float | None = None) -> bool:
        """Block until stopped (or timeout). Returns True if stopped before timeout."""
        return self._stopped_evt.wait(timeout=timeout)

    def get_job_ids(self) -> Iterable[str]:
        return (job.id for job in self._scheduler.get_jobs())


# ---- Module API -------------------------------------------------------------


def start(
    job_kwargs: dict[str, Any] | None = None,
    *,
    trigger_def: dict[str, Any] | None = None,
    job_func: Callable[..., Any] | None = None,
) -> SchedulerController:
    """
    Build a BackgroundScheduler with a single catalog_watch job and start it.

    trigger_def defaults to `trigger_from_env()`; job_func defaults to
    `run_catalog_watch` and receives `job_kwargs` as keyword arguments.
    """
    tz = _resolve_timezone()
    trigger = _build_trigger(trigger_def or trigger_from_env(), tz)

    scheduler = BackgroundScheduler(
        timezone=tz,
        # Only one run at a time; collapse missed fires into one.
        job_defaults={"coalesce": True, "max_instances": 1},
        executors={"default": ThreadPoolExecutor(1)},
        jobstores={"default": MemoryJobStore()},
    )
    scheduler.add_job(
        job_func or run_catalog_watch,
        trigger=trigger,
        id=JOB_ID,
        name=JOB_ID,
        kwargs=dict(job_kwargs or {}),
        replace_existing=True,
    )
    scheduler.start()
    LOG.info("Scheduler started: %s with trigger %s", JOB_ID, trigger)
    write_activity_log({"event": "scheduler_start", "job": JOB_ID, "trigger": str(trigger)})
    return SchedulerController(scheduler)


def run_catalog_watch(**kwargs: Any) -> dict[str, Any] | None:
    """Scheduled job body. Errors are logged, never raised into APScheduler."""
    from modules.catalog_watch.main import run

    started = datetime.now(timezone.utc)
    try:
        result = run(**kwargs)
    except Exception as e:
        LOG.exception("Scheduled catalog_watch run failed")
        write_error_log({"where": "scheduler.run", "job": JOB_ID, "error": repr(e)})
        return None
    write_activity_log({
        "event": "scheduled_run",
        "job": JOB_ID,
        "ok": result.get("ok"),
        "count": result.get("count"),
        "error": result.get("error"),
        "duration_ms": int((datetime.now(timezone.utc) - started).total_seconds() * 1000),
    })
    return result


def trigger_from_env() -> dict[str, Any]:
    """
    CATALOG_WATCH_CRON (crontab string) wins over
    CATALOG_WATCH_INTERVAL_MINUTES (default 60).
    """
    cron = (os.getenv("CATALOG_WATCH_CRON") or "").strip()
    if cron:
        return {"cron": cron}
    minutes_raw = (os.getenv("CATALOG_WATCH_INTERVAL_MINUTES") or "").strip()
    minutes = int(minutes_raw) if minutes_raw else DEFAULT_INTERVAL_MINUTES
    return {"interval": {"minutes": minutes}}


# ---- Helpers ----------------------------------------------------------------


def _resolve_timezone():
    """APScheduler 3.x expects a pytz timezone: env TZ, else UTC."""
    import pytz

    tz_name = os.getenv("TZ") or "UTC"
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        LOG.warning("Falling back to UTC timezone (invalid tz '%s')", tz_name)
        return pytz.UTC


def _build_trigger(trig_def: dict[str, Any], tz: Any) -> Any:
    """
    Build an APScheduler trigger from a dict.

    Supported shapes:
      {"interval": {weeks|days|hours|minutes|seconds}}
      {"cron":     "*/15 * * * *"}                       # crontab
      {"cron":     {second?, minute?, hour?, day?, day_of_week?, month?}}
    """
    if not isinstance(trig_def, dict):
        raise ValueError("trigger spec must be a dict")

    present = [k for k in ("interval", "cron") if trig_def.get(k) is not None]
    if len(present) != 1:
        raise ValueError("exactly one of {'interval','cron'} must be provided")

    if present[0] == "interval":
        spec = trig_def["interval"]
        if not isinstance(spec, dict):
            raise ValueError("interval must be an object with time fields")
        allowed = {"weeks", "days", "hours", "minutes", "seconds"}
        unknown = set(spec) - allowed
        if unknown:
            raise ValueError(f"interval has unknown field(s): {sorted(unknown)}")
        iv: dict[str, int] = {}
        for name, raw in spec.items():
            try:
                v = int(raw)
            except (TypeError, ValueError) as err:
                raise ValueError(f"interval.{name} must be an integer") from err
            if v < 0:
                raise ValueError(f"interval.{name} must be >= 0")
            if v:
                iv[name] = v
        if not iv:
            raise ValueError("interval must be greater than 0 (provide at least one nonzero time field)")
        return IntervalTrigger(timezone=tz, **iv)

    spec = trig_def["cron"]
    if isinstance(spec, str):
        return CronTrigger.from_crontab(spec, timezone=tz)
    if isinstance(spec, dict):
        allowed = {"second", "minute", "hour", "day", "day_of_week", "month"}
        unknown = set(spec) - allowed
        if unknown:
            raise ValueError(f"cron has unknown field(s): {sorted(unknown)}")
        return CronTrigger(timezone=tz, **spec)
    raise ValueError("cron must be a crontab string or an object of cron fields")
