# tests/conftest.py
import json
import os
import pathlib

import pytest
from freezegun import freeze_time

from modules.catalog_watch.lib.config import Settings
from modules.catalog_watch.lib.errors import NotifyError
from modules.catalog_watch.lib.notifier import Notifier
from modules.catalog_watch.lib.store import LocalObjectStore


# ---------------------------------------------------------------------
# Live tests are opt-in: use --live or RUN_LIVE_TESTS=1
# ---------------------------------------------------------------------
def pytest_addoption(parser: pytest.Parser) -> None:
    parser.addoption(
        "--live",
        action="store_true",
        default=False,
        help="Run tests marked as 'live' (network calls or external services).",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    run_live = config.getoption("--live") or os.getenv("RUN_LIVE_TESTS") == "1"
    if run_live:
        return
    skip_live = pytest.mark.skip(reason="live tests disabled (use --live or RUN_LIVE_TESTS=1)")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


# ---------------------------------------------------------------------
# Test-wide env defaults (autouse, function-scoped)
# ---------------------------------------------------------------------
@pytest.fixture(autouse=True)
def _env_defaults(monkeypatch, tmp_path):
    # Write logs to a throwaway dir so real logs stay clean (per test)
    log_dir = tmp_path / "logs"
    monkeypatch.setenv("LOG_DIR", str(log_dir))
    monkeypatch.setenv("ACTIVITY_LOG_PREFIX", "activity-test")
    monkeypatch.setenv("ERROR_LOG_PREFIX", "error-test")

    # No ambient configuration leaks into Settings
    for name in list(os.environ):
        if name.startswith("CATALOG_WATCH_") or name.startswith("SMTP_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.delenv("AWS_REGION", raising=False)
    monkeypatch.delenv("AWS_DEFAULT_REGION", raising=False)
    yield


@pytest.fixture
def frozen_utc():
    with freeze_time("2025-01-01T00:00:00Z"):
        yield


# ---------------------------------------------------------------------
# Pages, stores, notifiers
# ---------------------------------------------------------------------
def product_page(*items: tuple) -> str:
    """Build a listing page with one .product-item per (name, price, link) tuple."""
    blocks = []
    for name, price, link in items:
        anchor = f'<a href="{link}">view</a>' if link is not None else ""
        blocks.append(
            "<div class='product-item'>"
            f"<span class='product-name'> {name} </span>"
            f"<span class='product-price'>{price}</span>"
            f"{anchor}"
            "</div>"
        )
    return "<html><body><div class='grid'>" + "".join(blocks) + "</div></body></html>"


@pytest.fixture
def page():
    return product_page


class RecordingNotifier(Notifier):
    """Collects messages; with fail=True every send raises NotifyError."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.messages: list[dict] = []

    def send(self, message, *, subject=None):
        if self.fail:
            raise NotifyError("sink rejected the message")
        self.messages.append({"message": message, "subject": subject})


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def failing_notifier():
    return RecordingNotifier(fail=True)


@pytest.fixture
def store_dir(tmp_path: pathlib.Path) -> pathlib.Path:
    d = tmp_path / "state"
    d.mkdir()
    return d


@pytest.fixture
def objects(store_dir):
    return LocalObjectStore(str(store_dir))


@pytest.fixture
def write_registry(store_dir):
    """Write websites.json into the local store directory."""

    def _write(sites: list[dict], key: str = "websites.json") -> pathlib.Path:
        path = store_dir / key
        path.write_text(json.dumps(sites), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings(store_dir):
    return Settings.from_env_and_kwargs({
        "store_backend": "local",
        "store_path": str(store_dir),
        "notifier": "log",
    })


@pytest.fixture
def pages():
    """Mutable url -> markup map; values that are exceptions are raised on fetch."""
    content: dict[str, object] = {}

    def fetch(url: str) -> str:
        value = content[url]
        if isinstance(value, BaseException):
            raise value
        return value

    fetch.content = content
    return fetch
