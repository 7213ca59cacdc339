"""
Process one site: fetch -> extract -> load previous snapshot -> diff ->
(notify + persist) or no-op.

Every failure is contained in the returned SiteResult:
  - fetch/parse failure: scrape_failed, nothing read or written
  - snapshot read failure (other than absence): snapshot_read_failed
  - notify failure: logged, the snapshot is still written
  - persist failure: logged, no retry
"""

from __future__ import annotations

import time
from collections.abc import Callable

from . import logging_bridge
from .differ import diff
from .errors import NotifyError, PersistError, ScrapeError, SnapshotReadError, StoreError
from .extractor import extract
from .models import Outcome, Record, SiteDescriptor, SiteResult
from .notifier import Notifier
from .render import compose_message, compose_subject
from .store import SnapshotStore
from .utils import elapsed_us

Fetch = Callable[[str], str]

_COMPONENT = "catalog_watch.site_runner"


def run_site(
    site: SiteDescriptor,
    *,
    fetch: Fetch,
    snapshots: SnapshotStore,
    notifier: Notifier,
) -> SiteResult:
    """Never raises; the outcome is reported in the returned SiteResult."""
    t0 = time.perf_counter_ns()
    result = SiteResult(site=site.name)
    try:
        _run(site, result, fetch=fetch, snapshots=snapshots, notifier=notifier)
    except Exception as e:
        result.outcome = Outcome.FAILED
        result.error = repr(e)
        _log_error(site, "unexpected", e)
    result.duration_us = elapsed_us(t0, time.perf_counter_ns())

    logging_bridge.activity({"component": _COMPONENT, "op": "done", **result.to_dict()})
    return result


def _run(
    site: SiteDescriptor,
    result: SiteResult,
    *,
    fetch: Fetch,
    snapshots: SnapshotStore,
    notifier: Notifier,
) -> None:
    # Fetching + Extracting
    try:
        current = _scrape(site, fetch)
    except ScrapeError as e:
        result.outcome = Outcome.SCRAPE_FAILED
        result.error = str(e)
        _log_error(site, "scrape", e)
        return
    result.extracted = len(current)

    # Diffing
    try:
        previous = _read_previous(site, snapshots)
    except SnapshotReadError as e:
        result.outcome = Outcome.SNAPSHOT_READ_FAILED
        result.error = str(e)
        _log_error(site, "snapshot_read", e)
        return

    new_items = diff(previous, current)
    result.new = len(new_items)
    if not new_items:
        logging_bridge.activity({
            "component": _COMPONENT,
            "op": "no_change",
            "site": site.name,
            "extracted": result.extracted,
        })
        return

    # Notifying: a failure here must not stop the snapshot write below.
    errors: list[str] = []
    try:
        notifier.send(
            compose_message(site.name, new_items),
            subject=compose_subject(site.name, len(new_items)),
        )
        result.notified = True
    except Exception as e:
        err = e if isinstance(e, NotifyError) else NotifyError(repr(e))
        result.notified = False
        errors.append(str(err))
        _log_error(site, "notify", err)

    # Persisting: the full current set becomes the new baseline.
    try:
        _persist(site, snapshots, current)
        result.persisted = True
    except PersistError as e:
        result.persisted = False
        errors.append(str(e))
        _log_error(site, "persist", e)

    if result.persisted is False:
        result.outcome = Outcome.PERSIST_FAILED
    elif result.notified is False:
        result.outcome = Outcome.NOTIFY_FAILED
    result.error = "; ".join(errors) or None


def _scrape(site: SiteDescriptor, fetch: Fetch) -> list[Record]:
    try:
        markup = fetch(site.url)
    except Exception as e:
        raise ScrapeError(f"fetch failed for {site.url}: {e!r}") from e
    return extract(markup, site.rule)


def _read_previous(site: SiteDescriptor, snapshots: SnapshotStore) -> list[Record]:
    try:
        previous = snapshots.read(site.storage_key)
    except StoreError as e:
        raise SnapshotReadError(f"cannot read snapshot {site.storage_key!r}: {e}") from e
    return previous or []


def _persist(site: SiteDescriptor, snapshots: SnapshotStore, records: list[Record]) -> None:
    try:
        snapshots.write(site.storage_key, records)
    except Exception as e:
        raise PersistError(f"cannot write snapshot {site.storage_key!r}: {e}") from e


def _log_error(site: SiteDescriptor, op: str, exc: BaseException) -> None:
    logging_bridge.error({
        "component": _COMPONENT,
        "op": op,
        "site": site.name,
        "url": site.url,
        "storage_key": site.storage_key,
        "error": repr(exc),
    })
