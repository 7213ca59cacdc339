# service/cli.py
"""
Command-line entrypoints for the container.

Subcommands
-----------
run [--kwargs k=v ...] [--json]
    - Executes one catalog_watch run and prints a per-site summary
    - Exit 0 when the registry loaded (regardless of per-site outcomes),
      1 when the run failed, 2 on configuration errors

serve [--kwargs k=v ...]
    - Starts the APScheduler loop via service.scheduler.start()
    - Registers signal handlers for graceful shutdown

upload-registry PATH
    - Validates a local websites.json and writes it to the configured store

validate-registry
    - Loads the registry from the configured store and lists its sites

All storage/notifier settings come from CATALOG_WATCH_* environment
variables; --kwargs overrides them for a single invocation.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import signal
import sys
import threading
import time
from collections.abc import Iterable
from datetime import datetime
from typing import Any

from modules.catalog_watch.lib.config import ConfigError, Settings
from modules.catalog_watch.lib.errors import RegistryLoadError, StoreError
from modules.catalog_watch.lib.registry import load_registry, upload_registry
from modules.catalog_watch.lib.store import build_object_store
from modules.catalog_watch.main import run as run_catalog_watch
from service import logging_utils as L
from service import scheduler as _scheduler

LOG = logging.getLogger("service.cli")


# ----------------------------- Logging setup ---------------------------------
def _ensure_logging() -> None:
    """Initialize a reasonable logging setup if none exists yet."""
    root = logging.getLogger()
    if not root.handlers:
        level = os.getenv("LOG_LEVEL", "INFO").upper()
        logging.basicConfig(
            level=getattr(logging, level, logging.INFO),
            format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        )


# -------------------------- Utility / glue code ------------------------------
def _parse_kv_pairs(pairs: Iterable[str]) -> dict[str, Any]:
    """
    Parse key=value strings into a dict.
    - Values that look like JSON (true/false/null/number/object/array) are parsed.
    - Otherwise keep as raw strings.
    """
    out: dict[str, Any] = {}
    for raw in pairs:
        if "=" not in raw:
            raise argparse.ArgumentTypeError(f"--kwargs item must be key=value (got {raw!r})")
        k, v = raw.split("=", 1)
        k = k.strip()
        v = v.strip()
        if not k:
            raise argparse.ArgumentTypeError(f"Invalid key in --kwargs item {raw!r}")
        try:
            out[k] = json.loads(v)
        except ValueError:
            out[k] = v
    return out


def _print_table(rows: Iterable[tuple[str, ...]], headers: tuple[str, ...]) -> None:
    """Very simple fixed-width table printer."""
    rows = list(rows)
    widths = [max(len(h), *(len(r[i]) for r in rows)) if rows else len(h) for i, h in enumerate(headers)]
    sep = "+-" + "-+-".join("-" * w for w in widths) + "-+"
    print(sep)
    print("| " + " | ".join(h.ljust(w) for h, w in zip(headers, widths)) + " |")
    print(sep)
    for r in rows:
        print("| " + " | ".join(c.ljust(w) for c, w in zip(r, widths)) + " |")
    print(sep)


def _now_iso() -> str:
    return datetime.now().astimezone().isoformat()


# ------------------------------ Subcommands ----------------------------------
def cmd_run(args: argparse.Namespace) -> int:
    start_time = time.monotonic()
    kwargs = _parse_kv_pairs(args.kwargs or [])
    LOG.debug("catalog_watch run with kwargs=%s", kwargs)

    try:
        result = run_catalog_watch(**kwargs)
    except ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        print(f"FAILURE: {e}", file=sys.stderr)
        L.write_error_log({
            "ts": _now_iso(),
            "where": "cli.run",
            "kwargs": kwargs,
            "error": repr(e),
            "duration_ms": int((time.monotonic() - start_time) * 1000),
        })
        return 1

    duration_ms = int((time.monotonic() - start_time) * 1000)
    L.write_activity_log({
        "ts": _now_iso(),
        "event": "cli_run",
        "trigger_type": "adhoc",
        "ok": result.get("ok"),
        "count": result.get("count"),
        "duration_ms": duration_ms,
    })

    if args.json:
        print(json.dumps(result, indent=2))
    elif result.get("ok"):
        rows = [
            (r["site"], r["outcome"], str(r["extracted"]), str(r["new"]))
            for r in result.get("results", [])
        ]
        if rows:
            _print_table(rows, headers=("SITE", "OUTCOME", "FOUND", "NEW"))
        print(f"DONE: {result.get('count', 0)} site(s) processed.")
    else:
        print(f"FAILURE: {result.get('error')}", file=sys.stderr)
    return 0 if result.get("ok") else 1


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the scheduler loop until a termination signal is received."""
    kwargs = _parse_kv_pairs(args.kwargs or [])
    try:
        # Fail fast on bad configuration before anything is scheduled.
        Settings.from_env_and_kwargs(kwargs)
    except ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2

    L.write_activity_log({"ts": _now_iso(), "event": "serve_start"})
    stop_event = threading.Event()
    controller = None

    def _graceful_shutdown(signum=None, frame=None):
        LOG.info("Signal %s received; initiating shutdown...", signum)
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        signal.signal(sig, _graceful_shutdown)

    try:
        controller = _scheduler.start(kwargs)
        while not stop_event.is_set():
            time.sleep(0.3)
        return 0
    except KeyboardInterrupt:
        return 130
    except Exception as e:
        LOG.exception("Fatal error in serve: %s", e)
        return 1
    finally:
        if controller is not None:
            controller.stop()
            controller.join(timeout=10.0)
        L.write_activity_log({"ts": _now_iso(), "event": "serve_stop"})


def cmd_upload_registry(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env_and_kwargs(_parse_kv_pairs(args.kwargs or []))
        objects = build_object_store(settings)
        sites = upload_registry(objects, args.path, settings.registry_key)
    except ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2
    except (RegistryLoadError, StoreError) as e:
        print(f"ERROR: upload failed: {e}", file=sys.stderr)
        return 1
    print(f"OK: uploaded {len(sites)} site(s) from {args.path!r} as {settings.registry_key!r}.")
    return 0


def cmd_validate_registry(args: argparse.Namespace) -> int:
    try:
        settings = Settings.from_env_and_kwargs(_parse_kv_pairs(args.kwargs or []))
        sites = load_registry(build_object_store(settings), settings.registry_key)
    except ConfigError as e:
        print(f"ERROR: configuration invalid: {e}", file=sys.stderr)
        return 2
    except (RegistryLoadError, StoreError) as e:
        print(f"ERROR: registry invalid: {e}", file=sys.stderr)
        return 1
    if not sites:
        print("Registry is empty.")
        return 0
    _print_table(((s.name, s.url, s.storage_key) for s in sites), headers=("SITE", "URL", "SNAPSHOT KEY"))
    return 0


# ------------------------------- Argparse ------------------------------------
def _add_kwargs_option(sp: argparse.ArgumentParser) -> None:
    sp.add_argument(
        "--kwargs",
        metavar="k=v",
        nargs="*",
        help="Settings overrides (e.g. store_backend=sqlite notifier=log).",
    )


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="python -m service.cli",
        description="Catalog watch command-line tools",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    sp = sub.add_parser("run", help="Execute one catalog_watch run.")
    _add_kwargs_option(sp)
    sp.add_argument("--json", action="store_true", help="Print the raw run result as JSON.")
    sp.set_defaults(func=cmd_run)

    sp = sub.add_parser("serve", help="Run the scheduler loop.")
    _add_kwargs_option(sp)
    sp.set_defaults(func=cmd_serve)

    sp = sub.add_parser("upload-registry", help="Validate and upload a local websites.json.")
    sp.add_argument("path", help="Path to the registry JSON file.")
    _add_kwargs_option(sp)
    sp.set_defaults(func=cmd_upload_registry)

    sp = sub.add_parser("validate-registry", help="Load the stored registry and list its sites.")
    _add_kwargs_option(sp)
    sp.set_defaults(func=cmd_validate_registry)

    return p


# --------------------------------- Main --------------------------------------
def main(argv: Iterable[str] | None = None) -> int:
    _ensure_logging()
    parser = _build_parser()
    args = parser.parse_args(args=list(argv) if argv is not None else None)
    return args.func(args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
