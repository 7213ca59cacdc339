"""
Engine for one catalog_watch run: load the registry, process every site
concurrently, and summarize.

Features:
  - One worker per site (or `settings.max_workers` when capped)
  - Join-before-summary: every site finishes before the summary is built
  - Per-site failure isolation via `site_runner.run_site`
  - Dependency injection for testability (`objects`, `notifier`, `fetch`)
"""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor

from . import logging_bridge
from .config import Settings
from .errors import NotifyError, RegistryLoadError, StoreError
from .http_client import HttpClient
from .models import Outcome, RunSummary, SiteDescriptor, SiteResult
from .notifier import Notifier, build_notifier
from .registry import load_registry
from .site_runner import Fetch, run_site
from .store import ObjectStore, SnapshotStore, build_object_store
from .utils import elapsed_us

_COMPONENT = "catalog_watch.engine"


# =============================================================================
# DEFAULT FETCH (PRODUCTION)
# =============================================================================
def _default_fetch(settings: Settings) -> Fetch:
    """A fresh HTTP session per call, so site workers share nothing."""

    def fetch(url: str) -> str:
        with HttpClient(timeout=settings.fetch_timeout, user_agent=settings.user_agent) as client:
            return client.get_text(url)

    return fetch


# =============================================================================
# MAIN ORCHESTRATOR
# =============================================================================
def run_once(
    settings: Settings,
    *,
    objects: ObjectStore | None = None,
    notifier: Notifier | None = None,
    fetch: Fetch | None = None,
) -> RunSummary:
    """
    Run one complete scrape/diff/notify/persist cycle over the registry.

    Args:
        settings: Validated configuration.
        objects: Optional object store override (tests).
        notifier: Optional notifier override (tests).
        fetch: Optional `url -> markup` override (tests).

    Returns:
        RunSummary with ok=False only when the store, notifier or registry
        could not be set up.
        Per-site outcomes are in `results`, in registry order.
    """
    start_ns = time.perf_counter_ns()

    # A store or notifier that cannot be built fails the run like an unreadable registry.
    try:
        objects = objects or build_object_store(settings)
        notifier = notifier or build_notifier(settings)
    except (StoreError, NotifyError) as e:
        logging_bridge.error({
            "component": _COMPONENT,
            "op": "setup",
            "store_backend": settings.store_backend,
            "notifier": settings.notifier,
            "error": repr(e),
        })
        return RunSummary(ok=False, error=str(e), duration_us=elapsed_us(start_ns, time.perf_counter_ns()))
    fetch = fetch or _default_fetch(settings)
    snapshots = SnapshotStore(objects)

    # -------------------------------------------------------------------------
    # LOAD REGISTRY (fatal on failure)
    # -------------------------------------------------------------------------
    try:
        sites = load_registry(objects, settings.registry_key)
    except RegistryLoadError as e:
        logging_bridge.error({
            "component": _COMPONENT,
            "op": "registry_load",
            "registry_key": settings.registry_key,
            "error": repr(e),
        })
        return RunSummary(ok=False, error=str(e), duration_us=elapsed_us(start_ns, time.perf_counter_ns()))

    logging_bridge.activity({
        "component": _COMPONENT,
        "op": "start",
        "sites": [s.name for s in sites],
        "max_workers": settings.max_workers,
    })

    # -------------------------------------------------------------------------
    # FAN OUT (one task per site), FAN IN (in dispatch order)
    # -------------------------------------------------------------------------
    results: list[SiteResult] = []
    if sites:
        workers = min(len(sites), settings.max_workers or len(sites))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="catalog-watch") as pool:
            futures: list[tuple[SiteDescriptor, Future[SiteResult]]] = [
                (site, pool.submit(run_site, site, fetch=fetch, snapshots=snapshots, notifier=notifier))
                for site in sites
            ]
            for site, fut in futures:
                results.append(_collect(site, fut))

    summary = RunSummary(ok=True, results=results, duration_us=elapsed_us(start_ns, time.perf_counter_ns()))

    # -------------------------------------------------------------------------
    # SUMMARY LOG (always emitted)
    # -------------------------------------------------------------------------
    logging_bridge.activity({
        "component": _COMPONENT,
        "op": "summary",
        "site_count": len(results),
        "outcomes": summary.counts_by_outcome(),
        "new_by_site": {r.site: r.new for r in results},
        "durations_us": {r.site: r.duration_us for r in results},
        "total_us": summary.duration_us,
    })
    return summary


def _collect(site: SiteDescriptor, fut: Future[SiteResult]) -> SiteResult:
    # run_site contains its own failures; this guards against anything that still escapes.
    try:
        return fut.result()
    except Exception as e:
        logging_bridge.error({
            "component": _COMPONENT,
            "op": "site_task",
            "site": site.name,
            "error": repr(e),
        })
        return SiteResult(site=site.name, outcome=Outcome.FAILED, error=repr(e))
